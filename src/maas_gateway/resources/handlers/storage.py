"""Block device and storage pool resources."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from maas_gateway.models.context import StorageContext
from maas_gateway.resources.handlers.backend import BackendClient
from maas_gateway.resources.handlers.base import (
    DEFAULT_SCHEME,
    BaseResourceHandler,
    Route,
    require,
)
from maas_gateway.resources.mappers.service import MapperService
from maas_gateway.resources.models import ResourceRequest
from maas_gateway.utils.errors import NotFoundError


class StorageHandler(BaseResourceHandler):
    name = "storage"
    description = "Access storage resources"

    def __init__(
        self, backend: BackendClient, mappers: MapperService, *, scheme: str = DEFAULT_SCHEME
    ) -> None:
        self._backend = backend
        self._mappers = mappers
        super().__init__(scheme=scheme)

    def routes(self) -> Mapping[str, Route]:
        return {
            "storage-device/{device_id}/{aspect?:partitions|filesystem}": self._get_device,
            "storage-pool/{pool_id}/devices": self._list_pool_devices,
        }

    def _get_device(self, request: ResourceRequest) -> Any:
        device_id = request.param("device_id")
        device = require(self._backend.get_block_device(device_id), "block device", device_id)
        context: StorageContext = self._mappers.storage_to_context(device)
        aspect = request.param("aspect")
        if aspect == "partitions":
            return context.partitions
        if aspect == "filesystem":
            if context.filesystem is None:
                raise NotFoundError(
                    f"block device {device_id!r} has no filesystem",
                    details={"resource": "filesystem", "id": device_id},
                )
            return context.filesystem
        return context

    def _list_pool_devices(self, request: ResourceRequest) -> list[StorageContext]:
        return self._mappers.map_many("storage", self._backend.list_pool_devices(request.param("pool_id")))


__all__ = ["StorageHandler"]
