"""Admin endpoints. Every route requires a bearer token with role 'admin'."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.v1.auth import require_admin
from app.core.database import get_db
from app.models.user import ROLE_ADMIN, ROLE_USER
from app.schemas.admin import (
    AdminLetterDetail,
    AdminUserItem,
    LetterOwner,
    RoleChangeResponse,
)
from app.schemas.auth import CurrentUser
from app.schemas.letter import LetterResponse, MessageResponse
from app.services import admin as admin_service
from app.services.admin import InvalidOperationError, UserNotFoundError
from app.services.letters import LetterNotFoundError

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/users", response_model=list[AdminUserItem])
def list_users(
    db: Annotated[Session, Depends(get_db)],
) -> list[AdminUserItem]:
    """List all users. OAuth tokens are never included."""
    return [AdminUserItem.model_validate(u) for u in admin_service.list_users(db)]


@router.get("/letters", response_model=list[LetterResponse])
def list_letters(
    db: Annotated[Session, Depends(get_db)],
) -> list[LetterResponse]:
    """List every letter from every user."""
    return [LetterResponse.model_validate(letter) for letter in admin_service.list_all_letters(db)]


@router.get("/letters/{letter_id}", response_model=AdminLetterDetail)
def get_letter(
    letter_id: int,
    db: Annotated[Session, Depends(get_db)],
) -> AdminLetterDetail:
    """Return any letter with its owner's name and email."""
    try:
        letter = admin_service.get_any_letter(db, letter_id)
    except LetterNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    return AdminLetterDetail(
        **LetterResponse.model_validate(letter).model_dump(),
        owner=LetterOwner.model_validate(letter.user),
    )


@router.delete("/letters/{letter_id}", response_model=MessageResponse)
def delete_letter(
    letter_id: int,
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[CurrentUser, Depends(require_admin)],
) -> MessageResponse:
    """Delete any letter (local only; Drive copies are kept)."""
    try:
        admin_service.delete_any_letter(db, letter_id, admin)
    except LetterNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    return MessageResponse(message="Letter deleted successfully")


def _change_role(db: Session, user_id: int, role: str, admin: CurrentUser) -> AdminUserItem:
    try:
        user = admin_service.set_role(db, user_id, role, admin)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    except InvalidOperationError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    return AdminUserItem.model_validate(user)


@router.put("/users/{user_id}/promote", response_model=RoleChangeResponse)
def promote_user(
    user_id: int,
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[CurrentUser, Depends(require_admin)],
) -> RoleChangeResponse:
    """Give a user the admin role."""
    user = _change_role(db, user_id, ROLE_ADMIN, admin)
    return RoleChangeResponse(message="User promoted to admin successfully", user=user)


@router.put("/users/{user_id}/demote", response_model=RoleChangeResponse)
def demote_user(
    user_id: int,
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[CurrentUser, Depends(require_admin)],
) -> RoleChangeResponse:
    """Return an admin to the regular user role. Admins cannot demote themselves (400)."""
    user = _change_role(db, user_id, ROLE_USER, admin)
    return RoleChangeResponse(message="Admin demoted to regular user successfully", user=user)
