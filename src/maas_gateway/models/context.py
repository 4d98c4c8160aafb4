"""Client-facing context models produced by the resource mappers.

Field names follow the protocol vocabulary; a handful of numeric fields carry
their unit in the serialised name (``memory_mb``, ``size_bytes``) through
aliases. Dump with ``by_alias=True`` to obtain the wire shape.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .maas import TAG_NAME_PATTERN


class ContextBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def ensure_valid(self) -> None:
        """Raise :class:`ValueError` when identity fields are missing."""


def _require(model: BaseModel, *fields: str) -> None:
    kind = type(model).__name__
    for name in fields:
        if not getattr(model, name):
            raise ValueError(f"{kind} {name} is required")


class OSInfo(ContextBaseModel):
    system: str = ""
    distribution: str = ""
    release: str = ""
    version: str = ""


class FilesystemContext(ContextBaseModel):
    type: str = ""
    uuid: str = ""
    label: str = ""
    mount_point: str = ""
    mount_options: str = ""


class MountpointContext(ContextBaseModel):
    path: str
    options: str = ""
    device: str = ""


class PartitionContext(ContextBaseModel):
    id: str = ""
    number: int = 0
    size: int = Field(default=0, alias="size_bytes")
    path: str = ""
    filesystem: FilesystemContext | None = None


class NetworkContext(ContextBaseModel):
    id: str = ""
    name: str = ""
    type: str = ""
    mac_address: str = ""
    ip_address: str = ""
    cidr: str = ""
    subnet: str = ""
    vlan: str = ""
    vlan_tag: int = 0
    mtu: int = 0
    enabled: bool = False
    primary: bool = False
    tags: list[str] = Field(default_factory=list)

    def ensure_valid(self) -> None:
        _require(self, "id", "name", "mac_address")


class StorageContext(ContextBaseModel):
    id: str = ""
    name: str = ""
    type: str = ""
    path: str = ""
    size: int = Field(default=0, alias="size_bytes")
    used_size: int = Field(default=0, alias="used_bytes")
    available_size: int = Field(default=0, alias="available_bytes")
    model: str = ""
    serial: str = ""
    partitions: list[PartitionContext] = Field(default_factory=list)
    filesystem: FilesystemContext | None = None
    tags: list[str] = Field(default_factory=list)
    mountpoints: list[MountpointContext] = Field(default_factory=list)

    def ensure_valid(self) -> None:
        _require(self, "id", "name")


class MachineContext(ContextBaseModel):
    id: str = ""
    name: str = ""
    fqdn: str = ""
    status: str = ""
    architecture: str = ""
    power_state: str = ""
    zone: str = ""
    pool: str = ""
    tags: list[str] = Field(default_factory=list)
    network_interfaces: list[NetworkContext] = Field(default_factory=list)
    block_devices: list[StorageContext] = Field(default_factory=list)
    cpu_count: int = 0
    memory: int = Field(default=0, alias="memory_mb")
    os_info: OSInfo = Field(default_factory=OSInfo)
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = Field(default_factory=dict)

    def ensure_valid(self) -> None:
        _require(self, "id", "name")


class TagContext(ContextBaseModel):
    name: str = ""
    description: str = ""
    color: str = ""
    category: str = ""

    def ensure_valid(self) -> None:
        _require(self, "name")
        if not TAG_NAME_PATTERN.match(self.name):
            raise ValueError(
                "Tag name must contain only alphanumeric characters, hyphens, and underscores"
            )


__all__ = [
    "ContextBaseModel",
    "FilesystemContext",
    "MachineContext",
    "MountpointContext",
    "NetworkContext",
    "OSInfo",
    "PartitionContext",
    "StorageContext",
    "TagContext",
]
