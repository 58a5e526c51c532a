from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...core.config import settings
from ...core.container import get_storage, storage_healthy
from ...core.error_handling import handle_exceptions
from ...core.exceptions.base import ExternalServiceError
from ...storage.base import StorageBackend

router = APIRouter()


@router.get("/health")
@handle_exceptions({ExternalServiceError: (503, "Service health check failed")})
async def health_check(storage: StorageBackend = Depends(get_storage)):
    """
    Perform system health check.

    Args:
        storage (StorageBackend): Project storage backend

    Returns:
        JSONResponse: Health check results, 503 if storage is unreachable
    """
    healthy = await storage_healthy(storage)
    status = "healthy" if healthy else "unhealthy"
    return JSONResponse(
        content={"status": status, "services": {"storage": {"type": settings.storage_type, "ok": healthy}}},
        status_code=200 if healthy else 503,
    )
