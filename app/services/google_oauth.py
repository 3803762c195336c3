"""Google OAuth 2.0 client: consent URL, code exchange, userinfo and access-token refresh."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import httpx

from app.schemas.auth import GoogleProfile

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

# drive.file: only files this app creates or opens.
OAUTH_SCOPES = (
    "openid",
    "email",
    "profile",
    "https://www.googleapis.com/auth/drive.file",
)


class OAuthExchangeError(Exception):
    """Raised when the authorization code exchange or userinfo lookup fails."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TokenRefreshError(Exception):
    """Raised when no refresh token is available or Google rejects the refresh."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class OAuthTokens:
    """Tokens returned by a successful code exchange. refresh_token may be absent."""

    access_token: str
    refresh_token: str | None = None


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
        return str(body.get("error_description") or body.get("error") or resp.status_code)
    except Exception:
        return resp.text[:500] if resp.text else str(resp.status_code)


def _json_object(resp: httpx.Response) -> dict[str, Any] | None:
    """Parse a success body; None when it is not a JSON object."""
    try:
        body = resp.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


class GoogleOAuthClient:
    """
    Thin client over Google's OAuth endpoints.

    Built once at startup (see app.main) and injected with get_oauth_client.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = 30.0,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> GoogleOAuthClient:
        return cls(
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET.get_secret_value(),
            redirect_uri=settings.GOOGLE_CALLBACK_URL,
            timeout=settings.GOOGLE_REQUEST_TIMEOUT_SEC,
        )

    def authorization_url(self, state: str) -> str:
        """Consent URL with offline access and forced consent so a refresh token is issued."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(OAUTH_SCOPES),
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> OAuthTokens:
        """Exchange an authorization code for access (and usually refresh) tokens."""
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        }
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(GOOGLE_TOKEN_URL, data=data, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise OAuthExchangeError(f"Token exchange request failed: {e!s}") from e
        if resp.status_code >= 400:
            raise OAuthExchangeError(f"Token exchange failed: {_error_detail(resp)}")
        body = _json_object(resp)
        if body is None:
            raise OAuthExchangeError("Token exchange returned a non-JSON body")
        access_token = body.get("access_token")
        if not access_token:
            raise OAuthExchangeError("Token exchange did not return access_token")
        return OAuthTokens(
            access_token=access_token,
            refresh_token=body.get("refresh_token") or None,
        )

    async def fetch_profile(self, access_token: str) -> GoogleProfile:
        """Return the signed-in user's Google profile (sub, email, name, picture)."""
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            raise OAuthExchangeError(f"Userinfo request failed: {e!s}") from e
        if resp.status_code >= 400:
            raise OAuthExchangeError(f"Userinfo lookup failed: {_error_detail(resp)}")
        info = _json_object(resp)
        if info is None:
            raise OAuthExchangeError("Userinfo lookup returned a non-JSON body")
        if not info.get("sub") or not info.get("email"):
            raise OAuthExchangeError("Google userinfo missing sub or email")
        return GoogleProfile.model_validate(info)

    async def refresh_access_token(self, refresh_token: str | None) -> str:
        """
        Exchange a stored refresh token for a new access token.

        Does not persist anything; the caller stores the returned token.
        Raises TokenRefreshError when refresh_token is empty or the exchange fails.
        """
        if not refresh_token:
            raise TokenRefreshError("No refresh token available")
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(GOOGLE_TOKEN_URL, data=data, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise TokenRefreshError(f"Token refresh request failed: {e!s}") from e
        if resp.status_code >= 400:
            raise TokenRefreshError(
                f"Token refresh rejected: {_error_detail(resp)}", resp.status_code
            )
        body = _json_object(resp)
        if body is None:
            raise TokenRefreshError(
                "Token refresh returned a non-JSON body", resp.status_code
            )
        access_token = body.get("access_token")
        if not access_token:
            raise TokenRefreshError("Token refresh did not return access_token")
        return access_token
