"""Pydantic request/response schemas."""

from app.schemas.admin import (
    AdminLetterDetail,
    AdminUserItem,
    LetterOwner,
    RoleChangeResponse,
)
from app.schemas.auth import AuthCheckResponse, CurrentUser, GoogleProfile, LogoutResponse
from app.schemas.health import HealthResponse
from app.schemas.letter import (
    LetterDriveResponse,
    LetterResponse,
    LetterWriteRequest,
    LetterWriteResponse,
    MessageResponse,
)

__all__ = [
    "AdminLetterDetail",
    "AdminUserItem",
    "AuthCheckResponse",
    "CurrentUser",
    "GoogleProfile",
    "HealthResponse",
    "LetterDriveResponse",
    "LetterOwner",
    "LetterResponse",
    "LetterWriteRequest",
    "LetterWriteResponse",
    "LogoutResponse",
    "MessageResponse",
    "RoleChangeResponse",
]
