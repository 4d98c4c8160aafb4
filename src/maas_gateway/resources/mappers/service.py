"""Typed façade over the mapper registry used by resource handlers."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog

from maas_gateway.models.context import MachineContext, NetworkContext, StorageContext, TagContext
from maas_gateway.models.maas import BlockDevice, Machine, NetworkInterface, Tag
from maas_gateway.resources.mappers.base import MapperRegistry, ResourceMapper
from maas_gateway.resources.mappers.machine import MachineMapper
from maas_gateway.resources.mappers.network import NetworkMapper
from maas_gateway.resources.mappers.storage import StorageMapper
from maas_gateway.resources.mappers.tag import TagMapper
from maas_gateway.utils.errors import GatewayError, MappingError, NotFoundError

logger = structlog.get_logger(__name__)


def default_mappers() -> list[ResourceMapper]:
    network = NetworkMapper()
    storage = StorageMapper()
    return [MachineMapper(network, storage), network, storage, TagMapper()]


class MapperService:
    """Registry plus helpers that attach the resource name to failures."""

    def __init__(self, registry: MapperRegistry | None = None) -> None:
        if registry is None:
            registry = MapperRegistry()
            for mapper in default_mappers():
                registry.register_mapper(mapper)
        self.registry = registry

    def to_context(self, name: str, obj: Any) -> Any:
        try:
            return self.registry.map_to_context(name, obj)
        except (MappingError, NotFoundError):
            raise
        except GatewayError as exc:
            raise MappingError(
                f"failed to map {name} to context", details={"mapper": name}, cause=exc
            ) from exc

    def to_backend(self, name: str, obj: Any) -> Any:
        try:
            return self.registry.map_to_backend(name, obj)
        except (MappingError, NotFoundError):
            raise
        except GatewayError as exc:
            raise MappingError(
                f"failed to map {name} to backend", details={"mapper": name}, cause=exc
            ) from exc

    def map_many(self, name: str, objects: Iterable[Any]) -> list[Any]:
        """Map a collection to context objects, skipping elements that fail."""
        mapper = self.registry.get_mapper(name)
        mapped: list[Any] = []
        for index, obj in enumerate(objects):
            try:
                mapped.append(mapper.to_context(obj))
            except GatewayError as exc:
                logger.warning(
                    "resources.mapper.element_skipped", mapper=name, index=index, error=str(exc)
                )
        return mapped

    def machine_to_context(self, machine: Machine | dict[str, Any]) -> MachineContext:
        return self.to_context("machine", machine)

    def machine_to_backend(self, context: MachineContext | dict[str, Any]) -> Machine:
        return self.to_backend("machine", context)

    def network_to_context(self, interface: NetworkInterface | dict[str, Any]) -> NetworkContext:
        return self.to_context("network", interface)

    def storage_to_context(self, device: BlockDevice | dict[str, Any]) -> StorageContext:
        return self.to_context("storage", device)

    def tag_to_context(self, tag: Tag | dict[str, Any]) -> TagContext:
        return self.to_context("tag", tag)


__all__ = ["MapperService", "default_mappers"]
