"""Google login, bearer token check/logout, and auth dependencies (get_current_user, require_role)."""

import logging
import secrets
from collections.abc import Callable
from typing import Annotated, Any
from urllib.parse import urlencode

import jwt
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.v1.deps import get_oauth_client
from app.core.config import get_settings
from app.core.database import get_db
from app.core.security import create_access_token, decode_access_token
from app.models.user import ROLE_ADMIN
from app.schemas.auth import AuthCheckResponse, CurrentUser, LogoutResponse
from app.services.google_oauth import GoogleOAuthClient, OAuthExchangeError
from app.services.identity import resolve_or_create_user

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)

OAUTH_STATE_COOKIE_NAME = "oauth_state"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_from_token(token: str) -> CurrentUser:
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError:
        raise _unauthorized("Invalid or expired token")
    try:
        return CurrentUser(
            id=int(payload["sub"]),
            email=payload["email"],
            name=payload.get("name") or "",
            role=payload["role"],
        )
    except (KeyError, TypeError, ValueError):
        raise _unauthorized("Invalid token payload")


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> CurrentUser:
    """
    Dependency: require a valid Bearer JWT and return the user encoded in it.

    Stateless: trusts signature and expiry only, no database lookup. Raises 401
    if the token is missing, malformed, wrongly signed or expired.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")
    return _user_from_token(credentials.credentials)


def require_role(*roles: str) -> Callable[..., CurrentUser]:
    """Build a dependency that admits only users whose token role is in roles (403 otherwise)."""

    def dependency(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Admin role required."
                if roles == (ROLE_ADMIN,)
                else "Access denied.",
            )
        return current_user

    return dependency


require_admin = require_role(ROLE_ADMIN)


def _login_redirect(**params: str) -> RedirectResponse:
    url = f"{get_settings().CLIENT_URL}/login?{urlencode(params)}"
    redirect = RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)
    redirect.delete_cookie(OAUTH_STATE_COOKIE_NAME, path="/")
    return redirect


@router.get("/google")
def google_login(
    oauth: Annotated[GoogleOAuthClient, Depends(get_oauth_client)],
) -> RedirectResponse:
    """
    Redirect to the Google consent screen (profile, email, drive.file; offline; forced consent).
    A random state is stored in a short-lived cookie and checked on callback.
    """
    settings = get_settings()
    state = secrets.token_urlsafe(32)
    redirect = RedirectResponse(
        url=oauth.authorization_url(state), status_code=status.HTTP_302_FOUND
    )
    redirect.set_cookie(
        OAUTH_STATE_COOKIE_NAME,
        state,
        max_age=settings.OAUTH_STATE_MAX_AGE_SEC,
        httponly=True,
        samesite="lax",
        secure=settings.APP_ENV == "prod",
        path="/",
    )
    logger.info("Starting Google OAuth flow")
    return redirect


@router.get("/google/callback")
async def google_callback(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    oauth: Annotated[GoogleOAuthClient, Depends(get_oauth_client)],
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
) -> RedirectResponse:
    """
    Handle Google's redirect: verify state, exchange the code, create or update
    the user, then redirect to the frontend with the bearer token as ?token=.
    Any OAuth or storage failure redirects to the frontend login page with ?error=.
    """
    if error:
        logger.warning("Google OAuth returned error: %s", error)
        return _login_redirect(error=error)
    if not code or not state:
        return _login_redirect(error="missing_code")
    state_cookie = request.cookies.get(OAUTH_STATE_COOKIE_NAME)
    if not state_cookie or not secrets.compare_digest(state, state_cookie):
        return _login_redirect(error="invalid_state")

    try:
        tokens = await oauth.exchange_code(code)
        profile = await oauth.fetch_profile(tokens.access_token)
    except OAuthExchangeError as e:
        logger.error("Google OAuth callback failed", extra={"reason": e.message[:500]})
        return _login_redirect(error="oauth_failed")

    try:
        user = resolve_or_create_user(db, profile, tokens.access_token, tokens.refresh_token)
    except SQLAlchemyError:
        logger.exception("Could not store user after Google login")
        db.rollback()
        return _login_redirect(error="server_error")
    token = create_access_token(user)
    logger.info("Google login succeeded", extra={"user_id": user.id})
    return _login_redirect(token=token)


@router.get("/check", response_model=AuthCheckResponse)
def check(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Any:
    """Return {isAuthenticated, user} for a valid bearer token; 401 with isAuthenticated=false otherwise."""
    try:
        if credentials is None:
            raise _unauthorized("Unauthorized: No token provided")
        user = _user_from_token(credentials.credentials)
    except HTTPException as e:
        return JSONResponse(
            status_code=e.status_code,
            content={"isAuthenticated": False, "detail": e.detail},
            headers=e.headers,
        )
    return AuthCheckResponse(is_authenticated=True, user=user)


@router.get("/logout", response_model=LogoutResponse)
def logout() -> LogoutResponse:
    """Stateless acknowledgement; the client is responsible for discarding its token."""
    logger.info("User logout requested")
    return LogoutResponse()
