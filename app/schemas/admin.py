"""Response schemas for admin endpoints. OAuth tokens are never part of these."""

from datetime import datetime

from app.schemas.base import CamelModel
from app.schemas.letter import LetterResponse


class AdminUserItem(CamelModel):
    """User entry for admin views (no tokens)."""

    id: int
    google_id: str
    email: str
    name: str | None = None
    avatar: str | None = None
    role: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LetterOwner(CamelModel):
    """Owner summary attached to an admin letter view."""

    id: int
    name: str | None = None
    email: str


class AdminLetterDetail(LetterResponse):
    """Letter with its owner's name and email."""

    owner: LetterOwner


class RoleChangeResponse(CamelModel):
    """Response for promote/demote."""

    message: str
    user: AdminUserItem
