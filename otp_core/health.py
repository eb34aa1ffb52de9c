"""
Store Health Checks
===================
Health probes for the shared store, mountable in the host service.
"""

import time
from typing import Dict, Optional
from enum import Enum
from fastapi import APIRouter, Response
from pydantic import BaseModel
import structlog

from .errors import StoreUnavailableError
from .store import EphemeralStore

logger = structlog.get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class ComponentHealth(BaseModel):
    status: str
    latency_ms: Optional[float] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: HealthStatus
    service: str
    version: str
    components: Dict[str, ComponentHealth]
    timestamp: float


async def check_store(store: EphemeralStore) -> ComponentHealth:
    """Check store connectivity and latency."""
    try:
        start = time.time()
        await store.ping()
        latency = (time.time() - start) * 1000
        return ComponentHealth(status="connected", latency_ms=round(latency, 2))
    except (StoreUnavailableError, RuntimeError) as e:
        logger.error("Store health check failed", store=store.name, error=str(e))
        return ComponentHealth(status="error", error=str(e))


def create_health_router(
    service_name: str,
    store: EphemeralStore,
    version: str = "1.0.0",
) -> APIRouter:
    """
    Create a health router for a service built on the OTP core.

    The store is the only hard dependency, so an unreachable store makes the
    service unhealthy and not ready.

    Returns:
        FastAPI router with /health, /health/live, and /health/ready endpoints
    """
    router = APIRouter(tags=["Health"])

    @router.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        store_health = await check_store(store)
        overall = HealthStatus.UNHEALTHY if store_health.status == "error" else HealthStatus.HEALTHY
        return HealthResponse(
            status=overall,
            service=service_name,
            version=version,
            components={store.name: store_health},
            timestamp=time.time(),
        )

    @router.get("/health/live")
    async def liveness_probe():
        return {"status": "alive"}

    @router.get("/health/ready")
    async def readiness_probe():
        store_health = await check_store(store)
        if store_health.status == "error":
            return Response(
                content='{"status": "not_ready", "reason": "store_unavailable"}',
                status_code=503,
                media_type="application/json",
            )
        return {"status": "ready"}

    return router
