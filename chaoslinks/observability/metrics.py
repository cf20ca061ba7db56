# chaoslinks/observability/metrics.py
# prometheus instrumentation: HTTP requests and share link outcomes

from __future__ import annotations

import os
import time
from typing import Optional

from fastapi import APIRouter, Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from prometheus_client.multiprocess import MultiProcessCollector
from starlette.middleware.base import BaseHTTPMiddleware

# Detect multiprocess mode via environment.
# NOTE: PROMETHEUS_MULTIPROC_DIR must be set BEFORE importing this module in real multi-proc setups.
PROM_MP_DIR = os.environ.get("PROMETHEUS_MULTIPROC_DIR")
HAVE_MP = bool(PROM_MP_DIR and os.path.isdir(PROM_MP_DIR))

# Exposition registry: a dedicated multiprocess one, or None for the default global registry
REGISTRY: Optional[CollectorRegistry] = None
if HAVE_MP:
    REGISTRY = CollectorRegistry()
    MultiProcessCollector(REGISTRY)


# --- Share link outcomes ---
SHARES_CREATED = Counter(
    "shares_created_total",
    "Share links created",
    labelnames=("map_type",),
)
SHARES_RATE_LIMITED = Counter(
    "shares_rate_limited_total",
    "Share requests rejected by the per-owner quota",
)
SHORT_CODE_COLLISIONS = Counter(
    "short_code_collisions_total",
    "Generated short codes that were already taken",
)
CODE_GENERATION_EXHAUSTED = Counter(
    "short_code_generation_exhausted_total",
    "Share requests that ran out of short code attempts",
)
SHARES_EXPIRED_ON_READ = Counter(
    "shares_expired_on_read_total",
    "Expired shares deleted when accessed",
)
VIEW_COUNT_FAILURES = Counter(
    "share_view_count_failures_total",
    "View count increments that failed",
)

# --- HTTP ---
REQUEST_COUNT = Counter(
    "request_count",
    "Total request count",
    labelnames=("method", "path", "status"),
)
REQUEST_LATENCY = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
)
# In multiprocess mode, Gauge must set a multiprocess_mode.
# Labeled by method only: the path is not routed yet when the request starts.
REQUEST_IN_PROGRESS = Gauge(
    "request_in_progress",
    "Requests currently in progress",
    ("method",),
    **({"multiprocess_mode": "livesum"} if HAVE_MP else {}),
)

# Label for requests no route matched; raw paths would be unbounded
UNMATCHED_PATH = "<unmatched>"


def _route_path(request: Request) -> str:
    # Use the route template so /api/shared/{code} stays one label value
    route = request.scope.get("route")
    return getattr(route, "path", UNMATCHED_PATH)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Count requests and observe latency per method/route/status."""

    async def dispatch(self, request: Request, call_next):
        method = request.method
        start = time.perf_counter()
        in_progress = REQUEST_IN_PROGRESS.labels(method)
        in_progress.inc()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            in_progress.dec()
            REQUEST_LATENCY.observe(time.perf_counter() - start)
            REQUEST_COUNT.labels(method, _route_path(request), str(status)).inc()


router = APIRouter(tags=["Metrics"])


@router.get("/metrics", include_in_schema=False)
async def prometheus_metrics() -> Response:
    """Expose collected metrics in Prometheus text format."""
    payload = generate_latest(REGISTRY) if REGISTRY is not None else generate_latest()
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
