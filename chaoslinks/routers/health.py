# chaoslinks/routers/health.py
# Health check endpoints for monitoring and load balancers
# Provides liveness and readiness probes

import time
import asyncio
import logging
from typing import Dict, Any
from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from chaoslinks.db.base import ping, pool_status

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

DB_CHECK_TIMEOUT_SECONDS = 5.0


class HealthStatus(BaseModel):
    """Health check response model."""
    status: str  # "healthy", "degraded", "unhealthy"
    timestamp: float
    version: str = "1.0.0"
    checks: Dict[str, Dict[str, Any]] = {}


class ComponentHealth(BaseModel):
    """Individual component health."""
    status: str
    latency_ms: float = 0.0
    message: str = ""


async def check_database_health() -> ComponentHealth:
    """Check that the share store answers a trivial query."""
    start = time.time()

    try:
        await asyncio.wait_for(ping(), timeout=DB_CHECK_TIMEOUT_SECONDS)
        latency_ms = (time.time() - start) * 1000
        stats = pool_status()
        return ComponentHealth(
            status="healthy",
            latency_ms=latency_ms,
            message=f"Pool: {stats['checked_out']} in use, {stats['checked_in']} idle"
        )

    except asyncio.TimeoutError:
        return ComponentHealth(
            status="unhealthy",
            latency_ms=(time.time() - start) * 1000,
            message="Database connection timeout"
        )
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return ComponentHealth(
            status="unhealthy",
            latency_ms=(time.time() - start) * 1000,
            message=f"Database error: {type(e).__name__}"
        )


@router.get("/health", response_model=HealthStatus)
async def health_check(response: Response):
    """
    Full health check endpoint.
    Returns status of all components.
    """
    checks = {}

    db_health = await check_database_health()
    checks["database"] = {
        "status": db_health.status,
        "latency_ms": round(db_health.latency_ms, 2),
        "message": db_health.message
    }

    statuses = [c["status"] for c in checks.values()]
    if "unhealthy" in statuses:
        overall_status = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif "degraded" in statuses:
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return HealthStatus(
        status=overall_status,
        timestamp=time.time(),
        checks=checks
    )


@router.get("/health/live")
async def liveness_probe():
    """
    Kubernetes liveness probe.
    Does NOT check external dependencies.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_probe(response: Response):
    """
    Kubernetes readiness probe.
    Returns 200 only if the share store is reachable.
    """
    db_health = await check_database_health()

    if db_health.status == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {
            "status": "not_ready",
            "reason": db_health.message
        }

    return {"status": "ready"}
