"""Per-request Prometheus metrics for the action-dispatch API.

Both routers multiplex on ``?action=``, so requests are labelled by route
path and action rather than by path alone.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from prometheus_client import CollectorRegistry
    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.types import ASGIApp


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Counts and times every request by method, path and action."""

    def __init__(self, app: ASGIApp, *, registry: CollectorRegistry) -> None:
        super().__init__(app)
        self._requests = Counter(
            "server_wallet_http_requests",
            "HTTP requests by method, path, action and status",
            ("method", "path", "action", "status_code"),
            registry=registry,
        )
        self._latency = Histogram(
            "server_wallet_http_request_duration_seconds",
            "HTTP request latency by method, path and action",
            ("method", "path", "action"),
            registry=registry,
        )

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        labels = {
            "method": request.method,
            "path": request.url.path,
            "action": request.query_params.get("action", ""),
        }
        status = 500
        start = time.monotonic()
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            self._latency.labels(**labels).observe(time.monotonic() - start)
            self._requests.labels(**labels, status_code=str(status)).inc()
