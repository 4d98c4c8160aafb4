"""Read-only view of the MAAS API consumed by the bundled handlers.

Implementations may return pydantic models or the raw JSON mappings of the
API; lookups return ``None`` when the addressed object does not exist.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from maas_gateway.models.maas import BlockDevice, Machine, Subnet, Tag, VLAN

Record = Mapping[str, Any]


class BackendClient(Protocol):
    def list_machines(self) -> Sequence[Machine | Record]: ...

    def get_machine(self, system_id: str) -> Machine | Record | None: ...

    def list_subnets(self) -> Sequence[Subnet | Record]: ...

    def get_subnet(self, subnet_id: str) -> Subnet | Record | None: ...

    def list_subnet_ranges(self, subnet_id: str, range_type: str) -> Sequence[Record]: ...

    def get_vlan(self, vlan_id: str) -> VLAN | Record | None: ...

    def get_block_device(self, device_id: str) -> BlockDevice | Record | None: ...

    def list_pool_devices(self, pool_id: str) -> Sequence[BlockDevice | Record]: ...

    def list_tags(self) -> Sequence[Tag | Record]: ...

    def get_tag(self, name: str) -> Tag | Record | None: ...

    def list_tagged_machines(self, name: str) -> Sequence[Machine | Record]: ...


__all__ = ["BackendClient", "Record"]
