"""JWT bearer credential creation and verification."""

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import jwt

from app.core.config import settings

if TYPE_CHECKING:
    from app.models.user import User

# Claims every bearer credential must carry besides exp/iat.
REQUIRED_CLAIMS = ("sub", "email", "name", "role")


def create_access_token(user: "User", expires_delta: timedelta | None = None) -> str:
    """Create a signed JWT carrying the user's id (sub), email, name, role and exp."""
    now = datetime.now(UTC)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.name or "",
        "role": user.role,
        "exp": now + expires_delta,
        "iat": now,
    }
    secret = settings.JWT_SECRET.get_secret_value()
    return jwt.encode(
        payload,
        secret,
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate JWT; return payload (sub, email, name, role, exp, iat).
    Raises jwt.PyJWTError on invalid, expired or incomplete token.
    """
    secret = settings.JWT_SECRET.get_secret_value()
    return jwt.decode(
        token,
        secret,
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["exp", *REQUIRED_CLAIMS]},
    )
