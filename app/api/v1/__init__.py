"""API routes mounted under API_PREFIX."""

from fastapi import APIRouter

from app.api.v1 import admin, auth, health, letters

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(letters.router, prefix="/letters", tags=["letters"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
