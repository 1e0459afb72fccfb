"""Health check endpoint for hashvault."""

from fastapi import APIRouter

from hashvault.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Reports the configured storage backend without contacting it, so the
    check stays fast even while the store is unreachable.

    Returns:
        dict: Health status response with status, service, version and
        storage_backend fields
    """
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "storage_backend": settings.STORAGE_BACKEND,
    }
