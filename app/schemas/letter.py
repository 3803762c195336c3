"""Request/response schemas for letters."""

from datetime import datetime

from pydantic import Field, field_validator

from app.schemas.base import CamelModel

TITLE_MAX_LENGTH = 500
CONTENT_MAX_LENGTH = 1_000_000


class LetterWriteRequest(CamelModel):
    """Body for POST /letters and PUT /letters/{id}."""

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    content: str = Field(..., min_length=1, max_length=CONTENT_MAX_LENGTH)
    save_to_google_drive: bool = Field(
        default=False,
        description="If true, mirror the letter into the owner's Google Drive (best-effort).",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be blank")
        return v.strip()


class LetterResponse(CamelModel):
    """A stored letter."""

    id: int
    title: str
    content: str
    user_id: int
    google_drive_id: str | None = None
    is_published: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LetterWriteResponse(LetterResponse):
    """A stored letter plus a non-fatal warning when the Drive mirror failed."""

    warning: str | None = Field(
        default=None,
        description="Set when the letter was saved locally but not to Google Drive.",
    )


class LetterDriveResponse(CamelModel):
    """Remote mirror of a letter as read back from Google Drive."""

    id: str
    title: str
    content: str
    link: str | None = None


class MessageResponse(CamelModel):
    """Plain acknowledgement."""

    message: str
