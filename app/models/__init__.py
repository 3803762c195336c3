"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.letter import Letter
from app.models.user import User

__all__ = ["Base", "Letter", "User"]
