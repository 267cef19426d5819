"""
API Middleware.

Request ID / trace context for every request, a per-IP rate limit, and one
structured ``api_request`` log line per request.
"""

from __future__ import annotations

import time
from collections import defaultdict
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.logging_config import (
    generate_trace_id,
    get_logger,
    organization_id_var,
    trace_id_var,
    user_id_var,
)

logger = get_logger(__name__)

# Per-process limiter; every instance counts on its own
_rate_counts: dict[str, list[float]] = defaultdict(list)
RATE_LIMIT_WINDOW = 60  # seconds
RATE_LIMIT_MAX = 100    # requests per window per IP
_last_sweep = 0.0


def _evict_idle_clients(now: float) -> None:
    """Drop IPs with no request inside the window, at most once per window."""
    global _last_sweep
    if now - _last_sweep < RATE_LIMIT_WINDOW:
        return
    _last_sweep = now
    for client_ip in [ip for ip, hits in _rate_counts.items() if not hits or now - hits[-1] >= RATE_LIMIT_WINDOW]:
        del _rate_counts[client_ip]


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request ID to the log context and echo it on the response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_trace_id()
        trace_id_var.set(request_id)
        # Filled in by the auth dependency once the caller is known
        organization_id_var.set("")
        user_id_var.set("")

        start = time.monotonic()
        response = await call_next(request)
        elapsed_ms = round((time.monotonic() - start) * 1000, 1)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = str(elapsed_ms)

        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "api_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            elapsed_ms=elapsed_ms,
        )
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window request limit per client IP."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        _evict_idle_clients(now)

        recent = [t for t in _rate_counts[client_ip] if now - t < RATE_LIMIT_WINDOW]
        if len(recent) >= RATE_LIMIT_MAX:
            _rate_counts[client_ip] = recent
            logger.warning("rate_limit_exceeded", client_ip=client_ip)
            return Response(
                content='{"error": "RATE_LIMITED", "message": "Rate limit exceeded"}',
                status_code=429,
                media_type="application/json",
                headers={"Retry-After": str(RATE_LIMIT_WINDOW)},
            )

        recent.append(now)
        _rate_counts[client_ip] = recent
        return await call_next(request)
