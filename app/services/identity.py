"""Map a Google profile to a local user, creating it on first login."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.user import ROLE_USER, User
from app.schemas.auth import GoogleProfile

logger = logging.getLogger(__name__)


def _apply_tokens(user: User, access_token: str, refresh_token: str | None) -> None:
    user.google_access_token = access_token
    # Google only sends a refresh token on consent; keep the stored one otherwise
    if refresh_token:
        user.google_refresh_token = refresh_token


def resolve_or_create_user(
    db: Session,
    profile: GoogleProfile,
    access_token: str,
    refresh_token: str | None,
) -> User:
    """
    Return the user for profile.sub, creating it (role 'user') if absent.

    Existing users get their access token overwritten and their refresh token
    replaced only when a new one is supplied. Idempotent on google_id: when a
    concurrent login wins the insert race, the winner's row is updated instead.
    Persistence errors propagate.
    """
    user = db.query(User).filter(User.google_id == profile.sub).first()
    if user is not None:
        _apply_tokens(user, access_token, refresh_token)
        db.commit()
        db.refresh(user)
        return user

    user = User(
        google_id=profile.sub,
        email=profile.email,
        name=profile.name,
        avatar=profile.picture,
        role=ROLE_USER,
        google_access_token=access_token,
        google_refresh_token=refresh_token,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = db.query(User).filter(User.google_id == profile.sub).first()
        if existing is None:
            raise
        logger.info("Concurrent first login resolved to existing user id=%s", existing.id)
        _apply_tokens(existing, access_token, refresh_token)
        db.commit()
        db.refresh(existing)
        return existing
    db.refresh(user)
    logger.info("Created user id=%s for new Google identity", user.id)
    return user
