"""Machine mapper.

Nested interfaces and block devices are translated by the network and
storage mappers; an element that fails is logged and left out rather than
failing the whole machine.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from maas_gateway.models.context import MachineContext, OSInfo
from maas_gateway.models.maas import Machine
from maas_gateway.resources.filtering import register_field_accessors
from maas_gateway.resources.mappers.base import BaseResourceMapper, map_children
from maas_gateway.resources.mappers.network import NetworkMapper
from maas_gateway.resources.mappers.storage import StorageMapper


class MachineMapper(BaseResourceMapper):
    name = "machine"
    backend_model = Machine
    context_model = MachineContext

    def __init__(
        self,
        network: NetworkMapper | None = None,
        storage: StorageMapper | None = None,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._network = network or NetworkMapper()
        self._storage = storage or StorageMapper()
        self._clock = clock

    def _to_context(self, machine: Machine) -> MachineContext:
        parent = machine.system_id
        return MachineContext(
            id=machine.system_id,
            name=machine.hostname,
            fqdn=machine.fqdn,
            status=machine.status,
            architecture=machine.architecture,
            power_state=machine.power_state,
            zone=machine.zone,
            pool=machine.pool,
            tags=list(machine.tags),
            network_interfaces=map_children(
                machine.interfaces, self._network.to_context, parent=parent, kind="interface"
            ),
            block_devices=map_children(
                machine.block_devices, self._storage.to_context, parent=parent, kind="block_device"
            ),
            cpu_count=machine.cpu_count,
            memory=machine.memory,
            os_info=OSInfo(
                system=machine.os_system,
                distribution=machine.os_system,
                release=machine.distro_series,
            ),
            last_updated=self._clock(),
            metadata=dict(machine.metadata),
        )

    def _to_backend(self, context: MachineContext) -> Machine:
        parent = context.id
        return Machine(
            system_id=context.id,
            hostname=context.name,
            fqdn=context.fqdn,
            status=context.status,
            architecture=context.architecture,
            power_state=context.power_state,
            zone=context.zone,
            pool=context.pool,
            tags=list(context.tags),
            cpu_count=context.cpu_count,
            memory=context.memory,
            os_system=context.os_info.system,
            distro_series=context.os_info.release,
            interfaces=map_children(
                context.network_interfaces,
                self._network.to_backend,
                parent=parent,
                kind="interface",
            ),
            block_devices=map_children(
                context.block_devices, self._storage.to_backend, parent=parent, kind="block_device"
            ),
            metadata=dict(context.metadata),
        )


register_field_accessors(
    MachineContext,
    {
        "system_id": lambda ctx: ctx.id,
        "hostname": lambda ctx: ctx.name,
        "os_system": lambda ctx: ctx.os_info.system,
        "distro_series": lambda ctx: ctx.os_info.release,
    },
)


__all__ = ["MachineMapper"]
