from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

from salesboard.core.metrics import http_request_duration_seconds, http_requests_total


_UNMATCHED = "unmatched"


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        return getattr(route, "path", _UNMATCHED)
    # Middleware may run before routing has stored the matched route.
    for candidate in request.app.routes:
        match, _ = candidate.matches(request.scope)
        if match == Match.FULL:
            return getattr(candidate, "path", _UNMATCHED)
    return _UNMATCHED


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record request counts and latency labelled by route template, never by raw path."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)
        started_at = time.perf_counter()
        response = await call_next(request)
        route_path = _route_template(request)
        http_requests_total.labels(
            method=request.method,
            path=route_path,
            status=str(response.status_code),
        ).inc()
        http_request_duration_seconds.labels(method=request.method, path=route_path).observe(
            time.perf_counter() - started_at
        )
        return response
