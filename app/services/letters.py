"""
Letter service: owner-scoped CRUD plus best-effort mirroring to Google Drive.

The local row is always written and committed first. Drive sync runs after
and can only add a warning to the result; it never fails or rolls back the
local write, and a failed sync leaves google_drive_id untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.models import Letter, User
from app.models.user import ROLE_ADMIN
from app.schemas.auth import CurrentUser
from app.services.google_drive import DriveDocument, DriveError, GoogleDriveClient
from app.services.google_oauth import GoogleOAuthClient, TokenRefreshError

logger = logging.getLogger(__name__)

CREATE_SYNC_WARNING = "Letter saved locally but could not be saved to Google Drive"
UPDATE_SYNC_WARNING = "Letter updated locally but could not be saved to Google Drive"


class LetterNotFoundError(Exception):
    """Raised when a letter id does not exist."""

    def __init__(self, message: str = "Letter not found") -> None:
        self.message = message
        super().__init__(message)


class LetterForbiddenError(Exception):
    """Raised when the caller is neither the letter's owner nor an admin."""

    def __init__(self, message: str = "Not authorized to access this letter") -> None:
        self.message = message
        super().__init__(message)


class DriveAccessUnavailableError(Exception):
    """Raised when a Drive read is requested but the owner has no stored access token."""

    def __init__(self, message: str = "Google Drive access not available") -> None:
        self.message = message
        super().__init__(message)


@dataclass
class LetterWriteResult:
    """A committed letter and, when the Drive mirror failed, a warning for the caller."""

    letter: Letter
    warning: str | None = None


def can_access(letter: Letter, user: CurrentUser) -> bool:
    return letter.user_id == user.id or user.role == ROLE_ADMIN


def list_letters(db: Session, user: CurrentUser) -> list[Letter]:
    """Letters owned by user, most recently updated first."""
    return (
        db.query(Letter)
        .filter(Letter.user_id == user.id)
        .order_by(Letter.updated_at.desc(), Letter.id.desc())
        .all()
    )


def get_letter(db: Session, letter_id: int, user: CurrentUser) -> Letter:
    """Return the letter if user owns it or is admin; raises LetterNotFoundError / LetterForbiddenError."""
    letter = db.get(Letter, letter_id)
    if letter is None:
        raise LetterNotFoundError()
    if not can_access(letter, user):
        raise LetterForbiddenError()
    return letter


def delete_letter(db: Session, letter_id: int, user: CurrentUser) -> None:
    """Delete locally only; the Drive copy, if any, is left in place."""
    letter = get_letter(db, letter_id, user)
    db.delete(letter)
    db.commit()
    logger.info("Letter deleted", extra={"letter_id": letter_id, "user_id": user.id})


async def sync_letter_to_drive(
    db: Session,
    letter: Letter,
    oauth: GoogleOAuthClient,
    drive: GoogleDriveClient,
) -> bool:
    """
    Mirror a committed letter into its owner's Drive.

    Returns False when the owner has no stored access token (sync skipped).
    A failed refresh falls back to the stored token. Raises DriveError when
    the folder or file call fails; the letter row is not modified in that case.
    """
    owner = db.get(User, letter.user_id)
    if owner is None or not owner.google_access_token:
        logger.info("Drive sync skipped: no stored access token", extra={"letter_id": letter.id})
        return False

    access_token = owner.google_access_token
    if owner.google_refresh_token:
        try:
            access_token = await oauth.refresh_access_token(owner.google_refresh_token)
        except TokenRefreshError as e:
            logger.warning(
                "Token refresh failed; continuing with stored access token: %s",
                e.message,
                extra={"user_id": owner.id},
            )
        else:
            owner.google_access_token = access_token
            db.commit()

    folder_id = await drive.ensure_folder(access_token)
    drive_file = await drive.upsert_file(
        access_token,
        letter.title,
        letter.content,
        folder_id,
        letter.google_drive_id,
    )
    if not letter.google_drive_id:
        letter.google_drive_id = drive_file.id
        db.commit()
    logger.info(
        "Letter mirrored to Google Drive",
        extra={"letter_id": letter.id, "drive_file_id": drive_file.id},
    )
    return True


async def _sync_best_effort(
    db: Session,
    letter: Letter,
    oauth: GoogleOAuthClient,
    drive: GoogleDriveClient,
    warning: str,
) -> str | None:
    try:
        await sync_letter_to_drive(db, letter, oauth, drive)
    except DriveError as e:
        logger.error(
            "Drive sync failed",
            extra={"letter_id": letter.id, "reason": (e.message or str(e))[:500]},
        )
        db.rollback()
        return warning
    except Exception:
        # Malformed provider responses must not fail the committed local write either
        logger.exception("Drive sync failed unexpectedly", extra={"letter_id": letter.id})
        db.rollback()
        return warning
    return None


async def create_letter(
    db: Session,
    user: CurrentUser,
    title: str,
    content: str,
    save_to_google_drive: bool,
    oauth: GoogleOAuthClient,
    drive: GoogleDriveClient,
) -> LetterWriteResult:
    """Persist a new letter owned by user, then optionally mirror it to Drive."""
    letter = Letter(title=title, content=content, user_id=user.id)
    db.add(letter)
    db.commit()
    db.refresh(letter)

    warning = None
    if save_to_google_drive:
        warning = await _sync_best_effort(db, letter, oauth, drive, CREATE_SYNC_WARNING)
        db.refresh(letter)
    return LetterWriteResult(letter=letter, warning=warning)


async def update_letter(
    db: Session,
    letter_id: int,
    user: CurrentUser,
    title: str,
    content: str,
    save_to_google_drive: bool,
    oauth: GoogleOAuthClient,
    drive: GoogleDriveClient,
) -> LetterWriteResult:
    """Overwrite title and content, then optionally update (or create) the Drive mirror."""
    letter = get_letter(db, letter_id, user)
    letter.title = title
    letter.content = content
    db.commit()
    db.refresh(letter)

    warning = None
    if save_to_google_drive:
        warning = await _sync_best_effort(db, letter, oauth, drive, UPDATE_SYNC_WARNING)
        db.refresh(letter)
    return LetterWriteResult(letter=letter, warning=warning)


async def read_drive_copy(
    db: Session,
    letter_id: int,
    user: CurrentUser,
    drive: GoogleDriveClient,
) -> DriveDocument:
    """
    Read a letter's Drive mirror using the owner's stored access token.

    Raises LetterNotFoundError when the letter has no mirror, DriveAccessUnavailableError
    without a stored token, and DriveError when Drive fails.
    """
    letter = get_letter(db, letter_id, user)
    if not letter.google_drive_id:
        raise LetterNotFoundError("Letter has no Google Drive copy")
    owner = db.get(User, letter.user_id)
    if owner is None or not owner.google_access_token:
        raise DriveAccessUnavailableError()
    return await drive.get_file(owner.google_access_token, letter.google_drive_id)
