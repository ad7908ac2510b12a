from __future__ import annotations

from fastapi import APIRouter

from app.config import settings

router = APIRouter()


@router.get("")
async def health_check():
    """Basic health check endpoint."""
    return {
        "ok": True,
        "provider": "openai",
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }
