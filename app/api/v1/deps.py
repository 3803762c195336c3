"""Dependency providers for the Google clients built at startup."""

from fastapi import Request

from app.services.google_drive import GoogleDriveClient
from app.services.google_oauth import GoogleOAuthClient


def get_oauth_client(request: Request) -> GoogleOAuthClient:
    """Return the OAuth client created once in app.main."""
    return request.app.state.oauth_client


def get_drive_client(request: Request) -> GoogleDriveClient:
    """Return the Drive client created once in app.main."""
    return request.app.state.drive_client
