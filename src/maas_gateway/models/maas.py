"""Backend domain models as returned by the MAAS API.

The models accept the backend's JSON payloads directly (unknown keys are
ignored) and expose ``ensure_valid`` for the identity checks mappers run
before translating an object.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

TAG_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class MaasBaseModel(BaseModel):
    """Lenient base model for backend payloads."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def ensure_valid(self) -> None:
        """Raise :class:`ValueError` when identity fields are missing."""


def _require(model: BaseModel, *fields: str) -> None:
    kind = type(model).__name__
    for name in fields:
        if not getattr(model, name):
            raise ValueError(f"{kind} {name} is required")


class VLAN(MaasBaseModel):
    id: int = 0
    name: str = ""
    vid: int = 0
    mtu: int = 0
    fabric_id: int = 0
    fabric_name: str = ""
    dhcp_on: bool = False
    primary: bool = False
    resource_url: str = ""
    description: str = ""


class Subnet(MaasBaseModel):
    id: int = 0
    name: str = ""
    cidr: str = ""
    vlan: VLAN | None = None
    vlan_id: int = 0
    space: str = ""
    gateway_ip: str = ""
    dns_servers: list[str] = Field(default_factory=list)
    managed: bool = False
    active: bool = False
    allow_dns: bool = False
    allow_proxy: bool = False
    resource_url: str = ""
    fabric_id: int = 0
    fabric_name: str = ""
    description: str = ""

    def ensure_valid(self) -> None:
        _require(self, "cidr")


class LinkInfo(MaasBaseModel):
    id: int = 0
    mode: str = ""
    subnet: Subnet | None = None
    subnet_id: int = 0
    ip_address: str = ""


class NetworkInterface(MaasBaseModel):
    id: int = 0
    name: str = ""
    type: str = ""
    enabled: bool = False
    mac_address: str = ""
    vlan: VLAN | None = None
    vlan_id: int = 0
    links: list[LinkInfo] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    parents: list[str] = Field(default_factory=list)
    children: list[str] = Field(default_factory=list)
    resource_url: str = ""

    def ensure_valid(self) -> None:
        _require(self, "name", "mac_address")


class Filesystem(MaasBaseModel):
    id: int = 0
    uuid: str = ""
    fstype: str = ""
    mount_point: str = ""
    mount_options: str = ""
    resource_url: str = ""


class Partition(MaasBaseModel):
    id: int = 0
    size: int = 0
    uuid: str = ""
    path: str = ""
    type: str = ""
    filesystem: Filesystem | None = None
    resource_url: str = ""


class BlockDevice(MaasBaseModel):
    id: int = 0
    name: str = ""
    type: str = ""
    path: str = ""
    size: int = 0
    used_size: int = 0
    available_size: int = 0
    model: str = ""
    serial: str = ""
    id_path: str = ""
    partitions: list[Partition] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    filesystem: Filesystem | None = None
    resource_url: str = ""

    def ensure_valid(self) -> None:
        _require(self, "name", "path")


class Machine(MaasBaseModel):
    system_id: str = ""
    hostname: str = ""
    fqdn: str = ""
    status: str = ""
    status_name: str = ""
    architecture: str = ""
    power_state: str = ""
    power_type: str = ""
    zone: str = ""
    pool: str = ""
    tags: list[str] = Field(default_factory=list)
    ip_addresses: list[str] = Field(default_factory=list)
    cpu_count: int = 0
    memory: int = Field(default=0, description="Memory in MiB")
    os_system: str = ""
    distro_series: str = ""
    interfaces: list[NetworkInterface] = Field(default_factory=list)
    block_devices: list[BlockDevice] = Field(default_factory=list)
    resource_url: str = ""
    owner: str = ""
    description: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)

    def ensure_valid(self) -> None:
        _require(self, "system_id", "hostname")


class Tag(MaasBaseModel):
    name: str = ""
    description: str = ""
    definition: str = ""
    comment: str = ""
    resource_url: str = ""

    def ensure_valid(self) -> None:
        _require(self, "name")
        if not TAG_NAME_PATTERN.match(self.name):
            raise ValueError(
                "Tag name must contain only alphanumeric characters, hyphens, and underscores"
            )


__all__ = [
    "BlockDevice",
    "Filesystem",
    "LinkInfo",
    "Machine",
    "MaasBaseModel",
    "NetworkInterface",
    "Partition",
    "Subnet",
    "TAG_NAME_PATTERN",
    "Tag",
    "VLAN",
]
