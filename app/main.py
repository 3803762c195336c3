"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from app.api.v1 import router as api_router
from app.core.config import settings
from app.services.google_drive import GoogleDriveClient
from app.services.google_oauth import GoogleOAuthClient

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%SZ"


class UTCFormatter(logging.Formatter):
    """Timestamps in UTC so the trailing Z in LOG_DATEFMT holds."""

    converter = time.gmtime


_log_handler = logging.StreamHandler()
_log_handler.setFormatter(UTCFormatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    handlers=[_log_handler],
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Letter Drive API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Google clients are built once per process and injected via app.api.v1.deps
app.state.oauth_client = GoogleOAuthClient.from_settings(settings)
app.state.drive_client = GoogleDriveClient.from_settings(settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and duration for every request."""
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "%s %s %s %.1fms",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
    )
    return response


if settings.APP_ENV == "prod":

    @app.middleware("http")
    async def force_https(request: Request, call_next):
        """Behind a TLS-terminating proxy, redirect plain-HTTP requests to https."""
        if request.headers.get("x-forwarded-proto", request.url.scheme) != "https":
            return RedirectResponse(
                url=str(request.url.replace(scheme="https")), status_code=307
            )
        return await call_next(request)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected errors and return 500 with the error message."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Server error", "error": str(exc)},
    )


app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Letter Drive API is running!"}


def run() -> None:
    """Console entrypoint: serve the app with uvicorn on PORT."""
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.PORT)
