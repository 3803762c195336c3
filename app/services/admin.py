"""Admin operations across all users and letters. Callers must already be admins."""

import logging

from sqlalchemy.orm import Session, joinedload

from app.models import Letter, User
from app.models.user import ROLE_ADMIN, ROLE_USER
from app.schemas.auth import CurrentUser
from app.services.letters import LetterNotFoundError

logger = logging.getLogger(__name__)


class UserNotFoundError(Exception):
    """Raised when a user id does not exist."""

    def __init__(self, message: str = "User not found") -> None:
        self.message = message
        super().__init__(message)


class InvalidOperationError(Exception):
    """Raised for requests that are well-formed but not allowed (e.g. self-demotion)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.id).all()


def list_all_letters(db: Session) -> list[Letter]:
    return db.query(Letter).order_by(Letter.updated_at.desc(), Letter.id.desc()).all()


def get_any_letter(db: Session, letter_id: int) -> Letter:
    """Return the letter with its owner loaded; raises LetterNotFoundError."""
    letter = (
        db.query(Letter)
        .options(joinedload(Letter.user))
        .filter(Letter.id == letter_id)
        .first()
    )
    if letter is None:
        raise LetterNotFoundError()
    return letter


def delete_any_letter(db: Session, letter_id: int, admin: CurrentUser) -> None:
    letter = db.get(Letter, letter_id)
    if letter is None:
        raise LetterNotFoundError()
    db.delete(letter)
    db.commit()
    logger.info("Admin deleted letter", extra={"letter_id": letter_id, "admin_id": admin.id})


def set_role(db: Session, user_id: int, role: str, admin: CurrentUser) -> User:
    """
    Promote or demote a user.

    Raises UserNotFoundError for an unknown id and InvalidOperationError when an
    admin tries to demote themselves (role left unchanged).
    """
    if role not in (ROLE_ADMIN, ROLE_USER):
        raise InvalidOperationError(f"Unknown role '{role}'")
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFoundError()
    if role == ROLE_USER and user.id == admin.id:
        raise InvalidOperationError("Cannot demote yourself")
    user.role = role
    db.commit()
    db.refresh(user)
    logger.info(
        "User role changed",
        extra={"user_id": user.id, "role": role, "admin_id": admin.id},
    )
    return user
