"""FastAPI application wiring the resource service.

Key Responsibilities:
    - Build the :class:`~maas_gateway.resources.service.ResourceService` from
      settings and a backend client
    - Configure logging, correlation middleware and the Prometheus endpoint
    - Stop the resource cache sweeper on shutdown

Collaborators:
    - Upstream: ASGI server (Uvicorn)
    - Downstream: :mod:`maas_gateway.gateway.router`

Example:
    >>> from maas_gateway.gateway.app import create_app
    >>> app = create_app(backend=my_maas_client)
"""

# ==============================================================================
# IMPORTS
# ==============================================================================

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from maas_gateway import __version__
from maas_gateway.config.settings import AppSettings, get_settings
from maas_gateway.gateway.middleware import CorrelationIdMiddleware
from maas_gateway.gateway.router import health_router, metrics_endpoint, router
from maas_gateway.resources.handlers.backend import BackendClient
from maas_gateway.resources.service import ResourceService
from maas_gateway.utils.logging import configure_logging

# ==============================================================================
# APPLICATION FACTORY
# ==============================================================================


def create_app(
    settings: AppSettings | None = None,
    backend: BackendClient | None = None,
    *,
    service: ResourceService | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings=settings.logging)
    resources = service or ResourceService(backend, settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            resources.close()

    app = FastAPI(title="MAAS Resource Gateway", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.resources = resources

    app.add_middleware(
        CorrelationIdMiddleware, correlation_header=settings.logging.correlation_id_header
    )
    app.include_router(health_router)
    app.include_router(router)
    if settings.metrics.enabled:
        app.add_api_route(
            settings.metrics.path, metrics_endpoint, methods=["GET"], include_in_schema=False
        )
    return app


__all__ = ["create_app"]
