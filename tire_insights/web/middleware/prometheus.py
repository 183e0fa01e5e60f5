"""Prometheus metrics middleware for FastAPI."""

from __future__ import annotations

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from tire_insights.core.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to collect Prometheus metrics for HTTP requests."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        endpoint = self._normalize_path(request.url.path)

        http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()

        start_time = time.time()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                time.time() - start_time
            )
            http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
            http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()

    def _normalize_path(self, path: str) -> str:
        """Collapse id-like path segments so label cardinality stays bounded.

        Examples:
            /api/v1/insights/inventory/restock -> unchanged
            /api/v1/stores/42/inventory -> /api/v1/stores/{id}/inventory

        """
        path = path.split("?")[0]

        normalized = []
        for part in path.split("/"):
            if part.isdigit() or (len(part) > 10 and part.isupper()):
                normalized.append("{id}")
            else:
                normalized.append(part)

        return "/".join(normalized)
