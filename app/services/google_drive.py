"""Google Drive mirror for letters: well-known folder, create-or-update file, read back."""

from __future__ import annotations

import json
import re
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from app.core.config import Settings

DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"

FOLDER_MIME = "application/vnd.google-apps.folder"
DOCUMENT_MIME = "application/vnd.google-apps.document"

_TAG_RE = re.compile(r"<[^>]*>?")


class DriveError(Exception):
    """Raised when a Drive API call fails (transport error or non-2xx response)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class TokenExpiredError(DriveError):
    """Raised when Drive rejects the access token (401)."""


@dataclass(frozen=True)
class DriveFile:
    """Result of an upsert: remote file id and its web link (if returned)."""

    id: str
    link: str | None = None


@dataclass(frozen=True)
class DriveDocument:
    """A mirrored letter read back from Drive as plain text."""

    id: str
    title: str
    content: str
    link: str | None = None


def strip_markup(content: str) -> str:
    """Remove markup tags, keeping the text between them."""
    return _TAG_RE.sub("", content or "")


def _raise_for_drive_status(resp: httpx.Response, action: str) -> None:
    if resp.status_code == 401:
        raise TokenExpiredError(
            "Google Drive access token expired or invalid.", 401
        )
    if resp.status_code >= 400:
        try:
            body = resp.json()
            detail = body.get("error", {}).get("message") or json.dumps(body)[:500]
        except Exception:
            detail = resp.text[:500] if resp.text else "Unknown error"
        raise DriveError(
            f"Drive {action} returned {resp.status_code}: {detail}", resp.status_code
        )


def _multipart_related(metadata: dict[str, Any], text: str) -> tuple[bytes, str]:
    """Build a multipart/related body (JSON metadata + text/plain media) for Drive uploads."""
    boundary = f"letterdrive-{secrets.token_hex(12)}"
    parts = [
        f"--{boundary}",
        "Content-Type: application/json; charset=UTF-8",
        "",
        json.dumps(metadata),
        f"--{boundary}",
        "Content-Type: text/plain; charset=UTF-8",
        "",
        text,
        f"--{boundary}--",
        "",
    ]
    body = "\r\n".join(parts).encode("utf-8")
    return body, f"multipart/related; boundary={boundary}"


class GoogleDriveClient:
    """Drive v3 REST calls made with the user's OAuth access token."""

    def __init__(self, folder_name: str = "Letters", timeout: float = 30.0) -> None:
        self.folder_name = folder_name
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> GoogleDriveClient:
        return cls(
            folder_name=settings.DRIVE_FOLDER_NAME,
            timeout=settings.GOOGLE_REQUEST_TIMEOUT_SEC,
        )

    @staticmethod
    def _auth_headers(access_token: str) -> dict[str, str]:
        if not access_token:
            raise DriveError("Access token is required to access Google Drive")
        return {"Authorization": f"Bearer {access_token}"}

    async def ensure_folder(self, access_token: str) -> str:
        """
        Return the id of the non-trashed letters folder, creating it if missing.

        Two concurrent first-time calls for the same user may both create it.
        """
        headers = self._auth_headers(access_token)
        query = (
            f"mimeType='{FOLDER_MIME}' and name='{self.folder_name}' and trashed=false"
        )
        try:
            async with httpx.AsyncClient(headers=headers) as client:
                resp = await client.get(
                    DRIVE_FILES_URL,
                    params={"q": query, "fields": "files(id, name)", "spaces": "drive"},
                    timeout=self.timeout,
                )
                _raise_for_drive_status(resp, "folder lookup")
                files = resp.json().get("files") or []
                if files and files[0].get("id"):
                    return files[0]["id"]

                resp = await client.post(
                    DRIVE_FILES_URL,
                    params={"fields": "id"},
                    json={"name": self.folder_name, "mimeType": FOLDER_MIME},
                    timeout=self.timeout,
                )
                _raise_for_drive_status(resp, "folder create")
        except httpx.HTTPError as e:
            raise DriveError(f"Drive request failed: {e!s}") from e
        folder_id = resp.json().get("id")
        if not folder_id:
            raise DriveError("Drive response missing folder id.")
        return folder_id

    async def upsert_file(
        self,
        access_token: str,
        title: str,
        content: str,
        folder_id: str | None,
        existing_file_id: str | None = None,
    ) -> DriveFile:
        """
        Write a letter to Drive as a Google Doc with markup stripped.

        Updates existing_file_id in place when given; otherwise creates a new
        file under folder_id. Raises TokenExpiredError on 401, DriveError otherwise.
        """
        headers = self._auth_headers(access_token)
        text = strip_markup(content)
        metadata: dict[str, Any] = {"name": title}
        if existing_file_id:
            # Drive does not accept parents in an update body
            method = "PATCH"
            url = f"{DRIVE_UPLOAD_URL}/{existing_file_id}"
        else:
            method = "POST"
            url = DRIVE_UPLOAD_URL
            metadata["mimeType"] = DOCUMENT_MIME
            if folder_id:
                metadata["parents"] = [folder_id]
        body, content_type = _multipart_related(metadata, text)
        try:
            async with httpx.AsyncClient(headers=headers) as client:
                resp = await client.request(
                    method,
                    url,
                    params={"uploadType": "multipart", "fields": "id,webViewLink"},
                    content=body,
                    headers={"Content-Type": content_type},
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            raise DriveError(f"Drive request failed: {e!s}") from e
        _raise_for_drive_status(resp, "file update" if existing_file_id else "file create")
        data = resp.json() if resp.content else {}
        file_id = data.get("id") or existing_file_id
        if not file_id:
            raise DriveError("Drive response missing file id.")
        return DriveFile(id=file_id, link=data.get("webViewLink"))

    async def get_file(self, access_token: str, file_id: str) -> DriveDocument:
        """Read a mirrored letter back: name, web link and plain-text export."""
        headers = self._auth_headers(access_token)
        try:
            async with httpx.AsyncClient(headers=headers) as client:
                meta = await client.get(
                    f"{DRIVE_FILES_URL}/{file_id}",
                    params={"fields": "id,name,webViewLink"},
                    timeout=self.timeout,
                )
                _raise_for_drive_status(meta, "file lookup")
                exported = await client.get(
                    f"{DRIVE_FILES_URL}/{file_id}/export",
                    params={"mimeType": "text/plain"},
                    timeout=self.timeout,
                )
                _raise_for_drive_status(exported, "file export")
        except httpx.HTTPError as e:
            raise DriveError(f"Drive request failed: {e!s}") from e
        data = meta.json()
        return DriveDocument(
            id=data.get("id") or file_id,
            title=data.get("name") or "",
            # Docs exports start with a UTF-8 BOM
            content=exported.text.lstrip("\ufeff"),
            link=data.get("webViewLink"),
        )
