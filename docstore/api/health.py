"""Health check endpoints.

Provides endpoints for:
- Basic health checks with database connectivity
- Kubernetes readiness/liveness probes
"""

import time
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from docstore.api.v1.common import get_store
from docstore.core.config import settings
from docstore.core.logging import get_logger
from docstore.services.store import DocumentStore

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(store: DocumentStore = Depends(get_store)):
    """
    Health check endpoint with database connectivity verification.

    Returns 200 if healthy, 503 if the database is unavailable.
    """
    if not await store.test_connection(timeout=5.0):
        logger.warning("Health check failed: database unavailable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "timestamp": time.time(),
                "version": settings.VERSION,
                "database": "unavailable",
            },
        )

    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "database": "connected",
    }


@router.get("/live")
async def liveness_check() -> Dict[str, Any]:
    """Liveness probe: the process is up."""
    return {"status": "alive", "timestamp": time.time()}


@router.get("/ready")
async def readiness_check(store: DocumentStore = Depends(get_store)):
    """Readiness probe: the store accepts connections."""
    if await store.test_connection(timeout=5.0):
        return {"status": "ready", "timestamp": time.time()}

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", "timestamp": time.time()},
    )
