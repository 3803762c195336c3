"""ORM model for application users (Google identity, OAuth tokens and RBAC)."""

from sqlalchemy import Column, DateTime, Integer, String, Text, func
from sqlalchemy.orm import relationship

from app.models.base import Base

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


class User(Base):
    """
    User account created on first Google login.

    google_id: Google subject id, unique and immutable.
    role: 'admin' or 'user'
    google_access_token: overwritten on every login and token refresh.
    google_refresh_token: overwritten only when Google issues a new one.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    google_id = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=False)
    name = Column(String(255), nullable=True)
    avatar = Column(String(2048), nullable=True)
    role = Column(String(32), nullable=False, default=ROLE_USER)
    google_access_token = Column(Text, nullable=True)
    google_refresh_token = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    letters = relationship("Letter", back_populates="user")
