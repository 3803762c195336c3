"""Letters endpoints: owner-scoped CRUD with optional best-effort Google Drive mirroring."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user
from app.api.v1.deps import get_drive_client, get_oauth_client
from app.core.database import get_db
from app.schemas.auth import CurrentUser
from app.schemas.letter import (
    LetterDriveResponse,
    LetterResponse,
    LetterWriteRequest,
    LetterWriteResponse,
    MessageResponse,
)
from app.services import letters as letter_service
from app.services.google_drive import DriveError, GoogleDriveClient
from app.services.google_oauth import GoogleOAuthClient
from app.services.letters import (
    DriveAccessUnavailableError,
    LetterForbiddenError,
    LetterNotFoundError,
    LetterWriteResult,
)

router = APIRouter()


def _write_response(result: LetterWriteResult) -> LetterWriteResponse:
    response = LetterWriteResponse.model_validate(result.letter)
    response.warning = result.warning
    return response


@router.get("", response_model=list[LetterResponse])
def list_letters(
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
) -> list[LetterResponse]:
    """Return the caller's letters, most recently updated first."""
    return [LetterResponse.model_validate(letter) for letter in letter_service.list_letters(db, user)]


@router.get("/{letter_id}", response_model=LetterResponse)
def get_letter(
    letter_id: int,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
) -> LetterResponse:
    """Return one letter; 404 if missing, 403 if the caller is neither owner nor admin."""
    try:
        letter = letter_service.get_letter(db, letter_id, user)
    except LetterNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    except LetterForbiddenError as e:
        raise HTTPException(status_code=403, detail=e.message) from e
    return LetterResponse.model_validate(letter)


@router.post("", response_model=LetterWriteResponse, status_code=201)
async def create_letter(
    body: LetterWriteRequest,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
    oauth: Annotated[GoogleOAuthClient, Depends(get_oauth_client)],
    drive: Annotated[GoogleDriveClient, Depends(get_drive_client)],
) -> LetterWriteResponse:
    """
    Create a letter owned by the caller.

    With saveToGoogleDrive=true the letter is then mirrored to the caller's
    Drive. A mirror failure does not fail the request: the stored letter is
    returned with a `warning`.
    """
    result = await letter_service.create_letter(
        db,
        user,
        body.title,
        body.content,
        body.save_to_google_drive,
        oauth,
        drive,
    )
    return _write_response(result)


@router.put("/{letter_id}", response_model=LetterWriteResponse)
async def update_letter(
    letter_id: int,
    body: LetterWriteRequest,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
    oauth: Annotated[GoogleOAuthClient, Depends(get_oauth_client)],
    drive: Annotated[GoogleDriveClient, Depends(get_drive_client)],
) -> LetterWriteResponse:
    """
    Replace a letter's title and content.

    With saveToGoogleDrive=true the existing Drive copy is updated in place (or
    created if there is none yet). Mirror failures only add a `warning`.
    """
    try:
        result = await letter_service.update_letter(
            db,
            letter_id,
            user,
            body.title,
            body.content,
            body.save_to_google_drive,
            oauth,
            drive,
        )
    except LetterNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    except LetterForbiddenError as e:
        raise HTTPException(status_code=403, detail=e.message) from e
    return _write_response(result)


@router.delete("/{letter_id}", response_model=MessageResponse)
def delete_letter(
    letter_id: int,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
) -> MessageResponse:
    """Delete a letter locally. Its Google Drive copy is intentionally kept."""
    try:
        letter_service.delete_letter(db, letter_id, user)
    except LetterNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    except LetterForbiddenError as e:
        raise HTTPException(status_code=403, detail=e.message) from e
    return MessageResponse(message="Letter deleted successfully")


@router.get("/{letter_id}/drive", response_model=LetterDriveResponse)
async def get_letter_drive_copy(
    letter_id: int,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
    drive: Annotated[GoogleDriveClient, Depends(get_drive_client)],
) -> LetterDriveResponse:
    """Read the letter's Google Drive copy back as plain text."""
    try:
        doc = await letter_service.read_drive_copy(db, letter_id, user, drive)
    except LetterNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    except LetterForbiddenError as e:
        raise HTTPException(status_code=403, detail=e.message) from e
    except DriveAccessUnavailableError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    except DriveError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message
        ) from e
    return LetterDriveResponse(id=doc.id, title=doc.title, content=doc.content, link=doc.link)
