# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
HTTP Middleware: request id propagation and per-route Prometheus metrics.
"""

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from rosca.core.logging import get_logger
from rosca.metrics.prometheus import HTTP_ERRORS, REQUEST_COUNT, REQUEST_LATENCY

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Literal path segments of the API; anything else is an id
KNOWN_SEGMENTS: frozenset[str] = frozenset({
    "api", "v1", "groups", "join", "members", "summary", "assignment",
    "auto", "validate", "save", "draft", "raffle", "confirm", "timeline",
    "complete", "requests", "approve", "deny", "history", "stats", "health",
    "ready", "metrics",
})

UNMETERED_PATHS: frozenset[str] = frozenset({
    "/health", "/health/ready", "/metrics", "/openapi.json", "/docs", "/redoc",
})


def normalize_path(path: str) -> str:
    """Replace group, member and draft ids with {param} to bound label cardinality."""
    segments = [s for s in path.split("/") if s]
    if not segments:
        return path
    return "/" + "/".join(s if s in KNOWN_SEGMENTS else "{param}" for s in segments)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID or mint one, and echo it back."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count requests, errors and latency per normalised route."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        if request.url.path in UNMETERED_PATHS:
            return response

        endpoint = normalize_path(request.url.path)
        status = str(response.status_code)
        REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=status).inc()
        REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(elapsed)
        if response.status_code >= 400:
            HTTP_ERRORS.labels(method=request.method, endpoint=endpoint, status=status).inc()
            logger.info(
                "Request failed: %s %s -> %s",
                request.method, endpoint, status,
                extra={"request_id": getattr(request.state, "request_id", None)},
            )
        return response
