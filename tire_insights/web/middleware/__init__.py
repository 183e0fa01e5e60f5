"""FastAPI middleware."""

from __future__ import annotations

from tire_insights.web.middleware.prometheus import PrometheusMiddleware
from tire_insights.web.middleware.request_id import RequestIdMiddleware

__all__ = ["PrometheusMiddleware", "RequestIdMiddleware"]
