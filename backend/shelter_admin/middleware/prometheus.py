"""Request instrumentation: count, latency and in-flight gauge per route."""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from shelter_admin.core.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

_UNINSTRUMENTED = frozenset({"/api/health", "/metrics"})


def _normalise_path(path: str) -> str:
    """Fallback label for requests no route matched: UUID segments become ``{id}``."""
    segments = []
    for segment in path.rstrip("/").split("/"):
        hex_digits = segment.replace("-", "").lower()
        is_uuid = len(hex_digits) == 32 and all(c in "0123456789abcdef" for c in hex_digits)
        segments.append("{id}" if is_uuid else segment)
    return "/".join(segments) or "/"


def endpoint_label(request: Request) -> str:
    """The matched route template (``/api/v1/roles/{role_id}``), else the normalised path.

    The router stores the matched route in the shared scope, so this is only
    meaningful once the request has been dispatched.
    """
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    if template:
        return template
    return _normalise_path(request.url.path)


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _UNINSTRUMENTED:
            return await call_next(request)

        method = request.method
        in_progress = http_requests_in_progress.labels(method=method)
        in_progress.inc()
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            endpoint = endpoint_label(request)
            http_requests_total.labels(
                method=method, endpoint=endpoint, status=str(status_code)
            ).inc()
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - started
            )
            in_progress.dec()
