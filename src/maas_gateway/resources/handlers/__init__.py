"""Resource handlers, their registry and the dispatcher."""

from __future__ import annotations

from .backend import BackendClient
from .base import DEFAULT_SCHEME, BaseResourceHandler, ResourceHandler
from .machine import MachineHandler
from .network import NetworkHandler
from .registry import HandlerRegistry
from .storage import StorageHandler
from .tag import TagHandler
from maas_gateway.resources.mappers.service import MapperService


def default_handlers(
    backend: BackendClient, mappers: MapperService, *, scheme: str = DEFAULT_SCHEME
) -> list[ResourceHandler]:
    return [
        MachineHandler(backend, mappers, scheme=scheme),
        NetworkHandler(backend, scheme=scheme),
        StorageHandler(backend, mappers, scheme=scheme),
        TagHandler(backend, mappers, scheme=scheme),
    ]


__all__ = [
    "BackendClient",
    "BaseResourceHandler",
    "HandlerRegistry",
    "MachineHandler",
    "NetworkHandler",
    "ResourceHandler",
    "StorageHandler",
    "TagHandler",
    "default_handlers",
]
