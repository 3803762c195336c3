"""Request/response schemas for auth endpoints."""

from pydantic import BaseModel, Field

from app.schemas.base import CamelModel


class CurrentUser(BaseModel):
    """Authenticated user decoded from the bearer token (id, email, name, role)."""

    id: int
    email: str
    name: str = ""
    role: str

    class Config:
        from_attributes = True


class GoogleProfile(BaseModel):
    """Subset of the Google userinfo response used to resolve a local user."""

    sub: str = Field(..., min_length=1, description="Google subject id")
    email: str = Field(..., min_length=1)
    name: str | None = None
    picture: str | None = None


class AuthCheckResponse(CamelModel):
    """Response for GET /auth/check."""

    is_authenticated: bool = True
    user: CurrentUser


class LogoutResponse(BaseModel):
    """Response for GET /auth/logout; the client discards its token."""

    success: bool = True
    message: str = "Logged out successfully"
