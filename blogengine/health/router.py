"""Health check endpoints."""

from fastapi import APIRouter, Request

from blogengine.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness probe - ready once the comment service is wired."""
    settings = get_settings()
    ready = getattr(request.app.state, "comment_service", None) is not None
    return {
        "status": "ready" if ready else "starting",
        "ready": ready,
        "storage": settings.storage_backend,
        "environment": settings.environment,
    }


@router.get("")
def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
