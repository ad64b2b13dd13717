"""
Health Check Endpoints.

Provides health status for the API and its credential store.
"""
import time
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text

from ..models import HealthStatus
from ..deps import get_auth_service
from ... import __version__
from ...auth.service import AuthService
from ...database.auth_db import AuthDB

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["Health"])


@router.get("", response_model=HealthStatus)
async def health_check(service: AuthService = Depends(get_auth_service)):
    """
    Basic health check endpoint.

    Returns overall system status.
    """
    services = {}
    overall_healthy = True

    store = service.store
    if isinstance(store, AuthDB):
        try:
            start = time.time()
            with store.get_session() as session:
                session.execute(text("SELECT 1"))
            latency = (time.time() - start) * 1000
            services["database"] = f"healthy ({latency:.1f}ms)"
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            services["database"] = "unhealthy"
            overall_healthy = False
    else:
        services["database"] = "in_memory"

    return HealthStatus(
        status="healthy" if overall_healthy else "unhealthy",
        version=__version__,
        services=services,
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/live")
async def liveness():
    """
    Kubernetes liveness probe.

    Returns 200 if the service is running.
    """
    return {"status": "alive"}
