import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from catalog.api.dependencies import get_backend
from catalog.exceptions import StorageError
from catalog.models.product import utcnow
from catalog.storage.base import StorageBackend

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(backend: StorageBackend = Depends(get_backend)):
    """Report whether the storage backend is reachable."""
    try:
        await backend.ping()
    except StorageError as e:
        logger.error("Health check failed: %s", e.message)
        return JSONResponse(
            status_code=503,
            content={"status": "Error", "database": "Disconnected"}
        )
    return {
        "status": "OK",
        "database": "Connected",
        "backend": backend.name,
        "timestamp": utcnow().isoformat(),
    }
