"""HTTP routes exposing the resource pipeline."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from maas_gateway.resources.service import ResourceService

# ==============================================================================
# ROUTERS
# ==============================================================================

router = APIRouter(prefix="/v1", tags=["resources"])
health_router = APIRouter(tags=["system"])


def get_resource_service(request: Request) -> ResourceService:
    return request.app.state.resources  # type: ignore[no-any-return]


# ==============================================================================
# RESOURCE ENDPOINTS
# ==============================================================================


@router.get("/resources", response_model=None)
def read_resource(
    request: Request,
    uri: str = Query(..., description="Resource URI, e.g. maas://machine/abc123"),
    service: ResourceService = Depends(get_resource_service),
) -> Response:
    rendered = service.render(uri, accept_type=request.headers.get("accept", ""))
    return Response(
        content=rendered.body,
        status_code=rendered.status,
        media_type=rendered.content_type,
        headers=rendered.headers,
    )


@router.get("/resources/patterns")
def list_patterns(service: ResourceService = Depends(get_resource_service)) -> JSONResponse:
    return JSONResponse({"resources": service.describe_resources()})


@router.get("/resources/validate")
def validate_resource_uri(
    uri: str = Query(...),
    service: ResourceService = Depends(get_resource_service),
) -> JSONResponse:
    result = service.validate_uri(uri)
    return JSONResponse(
        {"valid": result.valid, "errors": [issue.to_dict() for issue in result.errors]}
    )


# ==============================================================================
# SYSTEM ENDPOINTS
# ==============================================================================


@health_router.get("/health")
def health_check(service: ResourceService = Depends(get_resource_service)) -> JSONResponse:
    return JSONResponse(
        {
            "status": "ok",
            "handlers": [handler.name for handler in service.resource_handlers()],
            "cache_entries": len(service.cache),
        }
    )


def metrics_endpoint() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = ["get_resource_service", "health_router", "metrics_endpoint", "router"]
