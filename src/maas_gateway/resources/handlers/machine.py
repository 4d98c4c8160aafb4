"""Machine resources and their interface, storage, power and tag views."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from maas_gateway.models.context import MachineContext
from maas_gateway.models.maas import Machine
from maas_gateway.resources.handlers.backend import BackendClient
from maas_gateway.resources.handlers.base import (
    DEFAULT_SCHEME,
    BaseResourceHandler,
    Route,
    require,
)
from maas_gateway.resources.mappers.base import coerce_model
from maas_gateway.resources.mappers.service import MapperService
from maas_gateway.resources.models import ResourceRequest
from maas_gateway.utils.errors import NotFoundError


class MachineHandler(BaseResourceHandler):
    name = "machine"
    description = "Access machine resources"

    def __init__(
        self, backend: BackendClient, mappers: MapperService, *, scheme: str = DEFAULT_SCHEME
    ) -> None:
        self._backend = backend
        self._mappers = mappers
        super().__init__(scheme=scheme)

    def routes(self) -> Mapping[str, Route]:
        return {
            "machines": self._list_machines,
            "machine/{system_id}": self._get_machine,
            "machine/{system_id}/power": self._get_power,
            "machine/{system_id}/interfaces/{interface_id?}": self._get_interfaces,
            "machine/{system_id}/storage/{device_id?}": self._get_storage,
            "machine/{system_id}/tags": self._get_tags,
        }

    def _machine(self, request: ResourceRequest) -> Machine:
        system_id = request.param("system_id")
        return coerce_model(require(self._backend.get_machine(system_id), "machine", system_id), Machine)

    def _context(self, request: ResourceRequest) -> MachineContext:
        return self._mappers.machine_to_context(self._machine(request))

    def _list_machines(self, request: ResourceRequest) -> list[MachineContext]:
        return self._mappers.map_many("machine", self._backend.list_machines())

    def _get_machine(self, request: ResourceRequest) -> MachineContext:
        return self._context(request)

    def _get_power(self, request: ResourceRequest) -> dict[str, str]:
        machine = self._machine(request)
        return {
            "system_id": machine.system_id,
            "power_state": machine.power_state,
            "power_type": machine.power_type,
        }

    def _get_interfaces(self, request: ResourceRequest) -> Any:
        interfaces = self._context(request).network_interfaces
        return _select(interfaces, request.param("interface_id"), kind="interface")

    def _get_storage(self, request: ResourceRequest) -> Any:
        devices = self._context(request).block_devices
        return _select(devices, request.param("device_id"), kind="block device")

    def _get_tags(self, request: ResourceRequest) -> list[dict[str, str]]:
        return [{"name": tag} for tag in self._machine(request).tags]


def _select(items: Sequence[Any], identifier: str, *, kind: str) -> Any:
    """Return ``items`` or the single element whose id or name is ``identifier``."""
    if not identifier:
        return list(items)
    for item in items:
        if identifier in (item.id, item.name):
            return item
    raise NotFoundError(f"{kind} {identifier!r} not found", details={"resource": kind, "id": identifier})


__all__ = ["MachineHandler"]
