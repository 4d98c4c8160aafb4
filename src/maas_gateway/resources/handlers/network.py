"""Subnet and VLAN resources (passed through as backend models)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from maas_gateway.models.maas import VLAN, Subnet
from maas_gateway.resources.handlers.backend import BackendClient
from maas_gateway.resources.handlers.base import (
    DEFAULT_SCHEME,
    BaseResourceHandler,
    Route,
    require,
)
from maas_gateway.resources.mappers.base import coerce_model
from maas_gateway.resources.models import ResourceRequest

RANGE_TYPES = ("ip-ranges", "reserved-ranges", "dynamic-ranges")


class NetworkHandler(BaseResourceHandler):
    name = "network"
    description = "Access network resources"

    def __init__(self, backend: BackendClient, *, scheme: str = DEFAULT_SCHEME) -> None:
        self._backend = backend
        super().__init__(scheme=scheme)

    def routes(self) -> Mapping[str, Route]:
        return {
            "subnets": self._list_subnets,
            "subnet/{subnet_id}": self._get_subnet,
            "subnet/{subnet_id}/{range_type:" + "|".join(RANGE_TYPES) + "}": self._get_ranges,
            "vlan/{vlan_id}": self._get_vlan,
        }

    def _list_subnets(self, request: ResourceRequest) -> list[Subnet]:
        return [coerce_model(item, Subnet) for item in self._backend.list_subnets()]

    def _get_subnet(self, request: ResourceRequest) -> Subnet:
        subnet_id = request.param("subnet_id")
        return coerce_model(require(self._backend.get_subnet(subnet_id), "subnet", subnet_id), Subnet)

    def _get_ranges(self, request: ResourceRequest) -> list[dict[str, Any]]:
        subnet = self._get_subnet(request)
        ranges = self._backend.list_subnet_ranges(str(subnet.id), request.param("range_type"))
        return [dict(item) for item in ranges]

    def _get_vlan(self, request: ResourceRequest) -> VLAN:
        vlan_id = request.param("vlan_id")
        return coerce_model(require(self._backend.get_vlan(vlan_id), "vlan", vlan_id), VLAN)


__all__ = ["NetworkHandler", "RANGE_TYPES"]
