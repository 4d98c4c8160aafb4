from __future__ import annotations

from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor

import pytest

from maas_gateway.models.context import MachineContext, NetworkContext
from maas_gateway.resources.handlers import BaseResourceHandler, HandlerRegistry, MachineHandler
from maas_gateway.resources.handlers.base import Route
from maas_gateway.resources.models import ResourceRequest
from maas_gateway.utils.errors import (
    ConflictError,
    GatewayValidationError,
    NotFoundError,
    UnsupportedOperationError,
)


class EchoHandler(BaseResourceHandler):
    name = "echo"

    def routes(self) -> Mapping[str, Route]:
        return {
            "echo/{value}": lambda request: {"value": request.param("value")},
            "numbers": lambda request: [{"n": n} for n in range(10)],
        }


class ShadowHandler(BaseResourceHandler):
    name = "shadow"

    def routes(self) -> Mapping[str, Route]:
        return {"numbers": lambda request: []}


@pytest.fixture
def registry() -> HandlerRegistry:
    registry = HandlerRegistry()
    registry.register_handler(EchoHandler())
    return registry


def test_single_resource_is_wrapped_with_self_link_and_metadata(registry: HandlerRegistry) -> None:
    response = registry.dispatch("maas://echo/hello")
    assert response.data == {"value": "hello"}
    assert response.links == {"self": "maas://echo/hello"}
    assert response.metadata == {"handler": "echo", "pattern": "maas://echo/{value}"}
    assert response.pagination is None


def test_collections_are_filtered_then_paginated(registry: HandlerRegistry) -> None:
    response = registry.dispatch("maas://numbers?filter=n+gte+3&limit=2&page=2")
    assert response.data == [{"n": 5}, {"n": 6}]
    assert response.pagination.to_dict() == {
        "totalCount": 7,
        "pageCount": 4,
        "page": 2,
        "limit": 2,
        "offset": 2,
    }
    assert response.links["next"].endswith("limit=2&offset=4")
    assert response.links["prev"].endswith("limit=2&offset=0")
    assert "page=" not in response.links["next"]


def test_last_page_has_no_next_link(registry: HandlerRegistry) -> None:
    response = registry.dispatch("maas://numbers?limit=5&offset=5")
    assert "next" not in response.links
    assert response.links["prev"] == "maas://numbers?limit=5&offset=0"


def test_registration_rejects_duplicate_names_and_patterns(registry: HandlerRegistry) -> None:
    with pytest.raises(ConflictError) as excinfo:
        registry.register_handler(EchoHandler())
    assert excinfo.value.code == "duplicate_handler"
    with pytest.raises(ConflictError) as excinfo:
        registry.register_handler(ShadowHandler())
    assert excinfo.value.code == "duplicate_pattern"
    assert [handler.name for handler in registry.handlers()] == ["echo"]


def test_unknown_uri_has_no_handler(registry: HandlerRegistry) -> None:
    with pytest.raises(NotFoundError):
        registry.dispatch("maas://unknown/1")
    with pytest.raises(GatewayValidationError):
        registry.get_handler("not a uri")


def test_unregistered_pattern_is_unsupported() -> None:
    request = ResourceRequest(uri="maas://echo/x", pattern="maas://echo/{other}")
    with pytest.raises(UnsupportedOperationError) as excinfo:
        EchoHandler().handle_request(request)
    assert excinfo.value.status == 405


def test_validation_runs_before_the_handler(service, backend) -> None:
    with pytest.raises(GatewayValidationError) as excinfo:
        service.registry.dispatch("maas://machines?limit=ten")
    assert excinfo.value.code == "invalid_pattern"
    assert backend.calls == []


def test_machine_collection_and_filters(service) -> None:
    response = service.registry.dispatch("maas://machines?filter=cpu_count+gt+4")
    assert [machine.id for machine in response.data] == ["abc123", "ghi789"]
    assert all(isinstance(machine, MachineContext) for machine in response.data)

    by_accessor = service.registry.dispatch("maas://machines?filter=hostname+eq+node-2")
    assert [machine.id for machine in by_accessor.data] == ["def456"]


def test_machine_sub_resources(service) -> None:
    interface = service.registry.dispatch("maas://machine/abc123/interfaces/eth0").data
    assert isinstance(interface, NetworkContext)
    assert interface.mac_address == "00:16:3e:00:00:01"

    power = service.registry.dispatch("maas://machine/def456/power").data
    assert power == {"system_id": "def456", "power_state": "off", "power_type": "ipmi"}

    tags = service.registry.dispatch("maas://machine/abc123/tags").data
    assert tags == [{"name": "gpu"}, {"name": "rack-1"}]

    devices = service.registry.dispatch("maas://machine/abc123/storage").data
    assert [device.name for device in devices] == ["sda"]


def test_missing_resources_raise_not_found(service) -> None:
    with pytest.raises(NotFoundError):
        service.registry.dispatch("maas://machine/missing")
    with pytest.raises(NotFoundError):
        service.registry.dispatch("maas://machine/abc123/interfaces/eth9")
    with pytest.raises(NotFoundError):
        service.registry.dispatch("maas://storage-device/3/filesystem")


def test_network_storage_and_tag_resources(service) -> None:
    ranges = service.registry.dispatch("maas://subnet/1/ip-ranges").data
    assert ranges == [{"start_ip": "10.0.0.10", "end_ip": "10.0.0.20", "type": "dynamic"}]

    assert service.registry.dispatch("maas://vlan/5001").data.mtu == 1500

    partitions = service.registry.dispatch("maas://storage-device/3/partitions").data
    assert [partition.number for partition in partitions] == [1]

    machines = service.registry.dispatch("maas://tag/gpu/machines").data
    assert [machine.id for machine in machines] == ["abc123", "ghi789"]


def test_registering_machine_handler_twice_conflicts(service, backend) -> None:
    with pytest.raises(ConflictError):
        service.registry.register_handler(MachineHandler(backend, service.mappers))


class CounterHandler(BaseResourceHandler):
    def __init__(self, index: int) -> None:
        self.name = f"counter-{index}"
        self._index = index
        super().__init__()

    def routes(self) -> Mapping[str, Route]:
        return {f"counter/{self._index}": lambda request: {"index": self._index}}


def test_handlers_prefix_routes_with_their_scheme() -> None:
    handler = EchoHandler(scheme="metal")
    assert handler.uri_patterns == ["metal://echo/{value}", "metal://numbers"]
    assert handler.can_handle("metal://echo/x")
    assert not handler.can_handle("maas://echo/x")


def test_registration_and_dispatch_can_run_concurrently(registry: HandlerRegistry) -> None:
    with ThreadPoolExecutor(max_workers=8) as pool:
        registrations = [
            pool.submit(registry.register_handler, CounterHandler(index)) for index in range(20)
        ]
        reads = [pool.submit(registry.dispatch, "maas://echo/hello") for _ in range(200)]
        for future in registrations:
            future.result()
        assert all(future.result().data == {"value": "hello"} for future in reads)

    assert len(registry.handlers()) == 21
    assert len(registry.patterns()) == 22
    assert registry.dispatch("maas://counter/17").data == {"index": 17}
