"""Request and response envelopes exchanged between dispatcher and handlers."""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from maas_gateway.resources.cache import CacheOptions
from maas_gateway.resources.filtering import FilterOptions
from maas_gateway.resources.pagination import PaginatedResult, PaginationOptions


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class ResourceRequest:
    """Everything a handler needs to serve one resource request.

    Built per call by the dispatcher; ``parameters`` holds the values extracted
    from the matched ``pattern``.
    """

    uri: str
    pattern: str = ""
    parameters: Mapping[str, str] = field(default_factory=dict)
    query_params: Mapping[str, str] = field(default_factory=dict)
    filter_options: FilterOptions = field(default_factory=FilterOptions)
    pagination: PaginationOptions = field(default_factory=PaginationOptions)
    cache_options: CacheOptions = field(default_factory=CacheOptions)
    payload: Any = None
    content_type: str = "application/json"
    accept_type: str = "application/json"

    @property
    def resource_type(self) -> str:
        """First path segment of the URI (``machine`` for ``maas://machine/x``)."""
        path = self.uri.partition("://")[2].split("?", 1)[0]
        return path.split("/", 1)[0]

    def param(self, name: str, default: str = "") -> str:
        return self.parameters.get(name) or default


@dataclass(frozen=True, slots=True)
class PaginationMetadata:
    total_count: int
    page_count: int
    page: int
    limit: int
    offset: int

    @classmethod
    def from_result(cls, result: PaginatedResult) -> PaginationMetadata:
        return cls(
            total_count=result.total_count,
            page_count=result.page_count,
            page=result.page,
            limit=result.limit,
            offset=result.offset,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "totalCount": self.total_count,
            "pageCount": self.page_count,
            "page": self.page,
            "limit": self.limit,
            "offset": self.offset,
        }


@dataclass(frozen=True, slots=True)
class ResourceResponse:
    """Response envelope.

    Builder methods return new envelopes so a response handed to a formatter
    or stored in the cache is never mutated afterwards.
    """

    data: Any = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    links: Mapping[str, str] = field(default_factory=dict)
    pagination: PaginationMetadata | None = None
    timestamp: int = field(default_factory=_now_ms)

    def with_metadata(self, key: str, value: Any) -> ResourceResponse:
        return replace(self, metadata={**self.metadata, key: value})

    def with_link(self, rel: str, href: str) -> ResourceResponse:
        return replace(self, links={**self.links, rel: href})

    def with_pagination(self, pagination: PaginationMetadata) -> ResourceResponse:
        return replace(self, pagination=pagination)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"data": self.data}
        if self.metadata:
            payload["metadata"] = dict(self.metadata)
        if self.links:
            payload["links"] = dict(self.links)
        if self.pagination is not None:
            payload["pagination"] = self.pagination.to_dict()
        payload["timestamp"] = self.timestamp
        return payload


__all__ = ["PaginationMetadata", "ResourceRequest", "ResourceResponse"]
