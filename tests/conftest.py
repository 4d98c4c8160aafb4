from __future__ import annotations

import copy
from collections.abc import Iterator
from typing import Any

import pytest

from maas_gateway.config.settings import AppSettings, get_settings
from maas_gateway.resources.service import ResourceService


def _machine(system_id: str, hostname: str, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "system_id": system_id,
        "hostname": hostname,
        "fqdn": f"{hostname}.maas",
        "status": "Deployed",
        "status_name": "Deployed",
        "architecture": "amd64/generic",
        "power_state": "on",
        "power_type": "ipmi",
        "zone": "default",
        "pool": "default",
        "tags": [],
        "cpu_count": 4,
        "memory": 8192,
        "os_system": "ubuntu",
        "distro_series": "jammy",
        "interfaces": [],
        "block_devices": [],
    }
    payload.update(overrides)
    return payload


SDA = {
    "id": 3,
    "name": "sda",
    "type": "physical",
    "path": "/dev/disk/by-dname/sda",
    "size": 500_000_000_000,
    "used_size": 100_000_000_000,
    "available_size": 400_000_000_000,
    "model": "QEMU HARDDISK",
    "serial": "QM00001",
    "tags": ["ssd"],
    "partitions": [
        {
            "id": 7,
            "size": 99_000_000_000,
            "path": "/dev/disk/by-dname/sda-part1",
            "filesystem": {"uuid": "fs-1", "fstype": "ext4", "mount_point": "/"},
        }
    ],
}

ETH0 = {
    "id": 10,
    "name": "eth0",
    "type": "physical",
    "enabled": True,
    "mac_address": "00:16:3e:00:00:01",
    "vlan": {"id": 5001, "name": "untagged", "vid": 0, "mtu": 1500},
    "links": [
        {
            "id": 1,
            "mode": "static",
            "ip_address": "10.0.0.5",
            "subnet": {"id": 1, "name": "primary", "cidr": "10.0.0.0/24"},
        }
    ],
    "tags": ["uplink"],
}


class FakeBackend:
    """In-memory stand-in for the MAAS API client."""

    def __init__(self) -> None:
        broken_interface = {"id": 11, "name": "eth1", "mac_address": ""}
        self.machines: dict[str, dict[str, Any]] = {
            "abc123": _machine(
                "abc123",
                "node-1",
                tags=["gpu", "rack-1"],
                cpu_count=8,
                memory=16384,
                interfaces=[ETH0, broken_interface],
                block_devices=[SDA],
            ),
            "def456": _machine(
                "def456", "node-2", status="Ready", power_state="off", tags=["rack-1"]
            ),
            "ghi789": _machine("ghi789", "node-3", tags=["gpu"], cpu_count=32, memory=65536),
        }
        self.subnets = {
            "1": {"id": 1, "name": "primary", "cidr": "10.0.0.0/24", "vlan_id": 5001, "managed": True},
            "2": {"id": 2, "name": "storage", "cidr": "192.168.10.0/24", "vlan_id": 5002},
        }
        self.ranges = {
            ("1", "ip-ranges"): [{"start_ip": "10.0.0.10", "end_ip": "10.0.0.20", "type": "dynamic"}],
        }
        self.vlans = {"5001": {"id": 5001, "name": "untagged", "vid": 0, "mtu": 1500}}
        self.block_devices = {"3": SDA}
        self.pools = {"default": [SDA]}
        self.tags = {
            "gpu": {"name": "gpu", "comment": "hardware", "description": "GPU nodes"},
            "rack-1": {"name": "rack-1"},
        }
        self.calls: list[str] = []

    def list_machines(self) -> list[dict[str, Any]]:
        self.calls.append("list_machines")
        return [copy.deepcopy(machine) for machine in self.machines.values()]

    def get_machine(self, system_id: str) -> dict[str, Any] | None:
        self.calls.append(f"get_machine:{system_id}")
        return copy.deepcopy(self.machines.get(system_id))

    def list_subnets(self) -> list[dict[str, Any]]:
        return list(self.subnets.values())

    def get_subnet(self, subnet_id: str) -> dict[str, Any] | None:
        return self.subnets.get(subnet_id)

    def list_subnet_ranges(self, subnet_id: str, range_type: str) -> list[dict[str, Any]]:
        return self.ranges.get((subnet_id, range_type), [])

    def get_vlan(self, vlan_id: str) -> dict[str, Any] | None:
        return self.vlans.get(vlan_id)

    def get_block_device(self, device_id: str) -> dict[str, Any] | None:
        return self.block_devices.get(device_id)

    def list_pool_devices(self, pool_id: str) -> list[dict[str, Any]]:
        return self.pools.get(pool_id, [])

    def list_tags(self) -> list[dict[str, Any]]:
        return list(self.tags.values())

    def get_tag(self, name: str) -> dict[str, Any] | None:
        return self.tags.get(name)

    def list_tagged_machines(self, name: str) -> list[dict[str, Any]]:
        return [machine for machine in self.machines.values() if name in machine["tags"]]


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for key in ("MG_ENV", "MG_ENVIRONMENT", "MG_DEBUG", "MG_CACHE__ENABLED", "MG_RESOURCES__SCHEME"):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings()


@pytest.fixture
def service(backend: FakeBackend, settings: AppSettings) -> Iterator[ResourceService]:
    with ResourceService(backend, settings) as resource_service:
        yield resource_service
