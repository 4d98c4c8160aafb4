"""Tag resources."""

from __future__ import annotations

from collections.abc import Mapping

from maas_gateway.models.context import MachineContext, TagContext
from maas_gateway.resources.handlers.backend import BackendClient
from maas_gateway.resources.handlers.base import (
    DEFAULT_SCHEME,
    BaseResourceHandler,
    Route,
    require,
)
from maas_gateway.resources.mappers.service import MapperService
from maas_gateway.resources.models import ResourceRequest


class TagHandler(BaseResourceHandler):
    name = "tag"
    description = "Access tag resources"

    def __init__(
        self, backend: BackendClient, mappers: MapperService, *, scheme: str = DEFAULT_SCHEME
    ) -> None:
        self._backend = backend
        self._mappers = mappers
        super().__init__(scheme=scheme)

    def routes(self) -> Mapping[str, Route]:
        return {
            "tags": self._list_tags,
            "tag/{tag_name}": self._get_tag,
            "tag/{tag_name}/machines": self._list_machines,
        }

    def _list_tags(self, request: ResourceRequest) -> list[TagContext]:
        return self._mappers.map_many("tag", self._backend.list_tags())

    def _get_tag(self, request: ResourceRequest) -> TagContext:
        name = request.param("tag_name")
        return self._mappers.tag_to_context(require(self._backend.get_tag(name), "tag", name))

    def _list_machines(self, request: ResourceRequest) -> list[MachineContext]:
        name = request.param("tag_name")
        require(self._backend.get_tag(name), "tag", name)
        return self._mappers.map_many("machine", self._backend.list_tagged_machines(name))


__all__ = ["TagHandler"]
