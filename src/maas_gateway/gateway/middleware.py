"""Request middleware binding correlation identifiers to each request."""

from __future__ import annotations

import time
from uuid import uuid4

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from maas_gateway.utils.logging import bind_correlation_id, reset_correlation_id

logger = structlog.get_logger(__name__)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Bind the caller's correlation id (or a fresh one) for logs and responses."""

    def __init__(self, app, *, correlation_header: str | None = None):  # type: ignore[override]
        super().__init__(app)
        self._correlation_header = correlation_header or "X-Correlation-ID"

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        correlation_id = request.headers.get(self._correlation_header) or str(uuid4())
        request.state.correlation_id = correlation_id
        token = bind_correlation_id(correlation_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            reset_correlation_id(token)
        response.headers[self._correlation_header] = correlation_id
        logger.info(
            "gateway.response",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
            correlation_id=correlation_id,
        )
        return response


__all__ = ["CorrelationIdMiddleware"]
