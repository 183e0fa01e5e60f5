"""Request correlation middleware."""

from __future__ import annotations

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from tire_insights.core.logging import set_request_id

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request_id to the logging context and echo it back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER)
        request_id = set_request_id(incoming[:64] if incoming else None)
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
