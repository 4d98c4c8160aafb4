"""Network interface mapper."""

from __future__ import annotations

from maas_gateway.models.context import NetworkContext
from maas_gateway.models.maas import VLAN, LinkInfo, NetworkInterface, Subnet
from maas_gateway.resources.filtering import register_field_accessors
from maas_gateway.resources.mappers.base import BaseResourceMapper, parse_backend_id

STATIC_LINK_MODE = "static"


class NetworkMapper(BaseResourceMapper):
    name = "network"
    backend_model = NetworkInterface
    context_model = NetworkContext

    def _to_context(self, interface: NetworkInterface) -> NetworkContext:
        vlan = interface.vlan or VLAN()
        ip_address = cidr = subnet = ""
        primary = False
        if interface.links:
            link = interface.links[0]
            ip_address = link.ip_address
            if link.subnet is not None:
                cidr = link.subnet.cidr
                subnet = link.subnet.name
            primary = link.mode == STATIC_LINK_MODE and bool(ip_address)
        return NetworkContext(
            id=str(interface.id),
            name=interface.name,
            type=interface.type,
            mac_address=interface.mac_address,
            ip_address=ip_address,
            cidr=cidr,
            subnet=subnet,
            vlan=vlan.name,
            vlan_tag=vlan.vid,
            mtu=vlan.mtu,
            enabled=interface.enabled,
            primary=primary,
            tags=list(interface.tags),
        )

    def _to_backend(self, context: NetworkContext) -> NetworkInterface:
        vlan = None
        if context.vlan or context.vlan_tag or context.mtu:
            vlan = VLAN(name=context.vlan, vid=context.vlan_tag, mtu=context.mtu)
        links: list[LinkInfo] = []
        if context.ip_address or context.cidr:
            links.append(
                LinkInfo(
                    mode=STATIC_LINK_MODE if context.primary else "auto",
                    ip_address=context.ip_address,
                    subnet=Subnet(cidr=context.cidr, name=context.subnet)
                    if context.cidr or context.subnet
                    else None,
                )
            )
        return NetworkInterface(
            id=parse_backend_id(context.id, kind="network"),
            name=context.name,
            type=context.type,
            enabled=context.enabled,
            mac_address=context.mac_address,
            vlan=vlan,
            vlan_id=vlan.id if vlan else 0,
            links=links,
            tags=list(context.tags),
        )


register_field_accessors(NetworkContext, {"mac": lambda ctx: ctx.mac_address})


__all__ = ["NetworkMapper"]
