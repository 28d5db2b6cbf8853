# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
HTTP middleware: X-Request-ID propagation and per-route request metrics.
"""

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from schedule_sync.core.logging import get_logger
from schedule_sync.metrics.prometheus import HTTP_ERRORS, REQUEST_COUNT, REQUEST_LATENCY

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Probes and docs are scraped constantly and would drown the API series.
UNMETERED_PATHS = frozenset(
    {"/health", "/health/ready", "/metrics", "/openapi.json", "/docs", "/redoc"}
)

STATIC_SEGMENTS = frozenset({"api", "v1", "schedules", "import", "plan"})


def normalize_path(path: str) -> str:
    """Replace ids in a raw URL path with {param}."""
    segments = [s for s in path.split("/") if s]
    if not segments:
        return "/"
    return "/" + "/".join(s if s in STATIC_SEGMENTS else "{param}" for s in segments)


def endpoint_label(request: Request) -> str:
    """Route template when the router matched one, normalized raw path otherwise."""
    route = request.scope.get("route")
    return getattr(route, "path_format", None) or normalize_path(request.url.path)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Echo the caller's X-Request-ID, or mint one, and keep it on request.state."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.debug(
            "%s %s -> %d",
            request.method,
            request.url.path,
            response.status_code,
            extra={"request_id": request_id},
        )
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count, time and error-count every API request."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in UNMETERED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        endpoint = endpoint_label(request)
        status = str(response.status_code)
        REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=status).inc()
        REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(elapsed)
        if response.status_code >= 400:
            HTTP_ERRORS.labels(method=request.method, endpoint=endpoint, status=status).inc()
        return response
