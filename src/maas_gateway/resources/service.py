"""Resource service: composition root of the request pipeline.

Key Responsibilities:
    - Own the handler registry, mapper service, resource cache, formatter
      registry and error handler for one process
    - Serve cached envelopes for payload-less requests and populate the cache
      after successful dispatches
    - Render envelopes or errors into ``(body, content type, status, headers)``

Collaborators:
    - Upstream: FastAPI router in :mod:`maas_gateway.gateway.router` and any
      embedding protocol server
    - Downstream: :class:`~maas_gateway.resources.handlers.registry.HandlerRegistry`,
      :class:`~maas_gateway.resources.cache.ResourceCache`

Side Effects:
    - The owned cache runs a background sweeper until :meth:`ResourceService.close`

Thread Safety:
    - Safe for concurrent requests; shared state is behind reader/writer locks
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog
from attrs import evolve

from maas_gateway.config.settings import AppSettings, get_settings
from maas_gateway.resources.cache import CacheOptions, ResourceCache, cache_headers, parse_cache_params
from maas_gateway.resources.error_handler import ErrorHandler
from maas_gateway.resources.formatting import FormatterRegistry
from maas_gateway.resources.handlers import default_handlers
from maas_gateway.resources.handlers.backend import BackendClient
from maas_gateway.resources.handlers.base import ResourceHandler
from maas_gateway.resources.handlers.registry import HandlerRegistry
from maas_gateway.resources.mappers.service import MapperService
from maas_gateway.resources.models import ResourceRequest, ResourceResponse
from maas_gateway.resources.uri import parse_uri
from maas_gateway.resources.validation import URIValidator, ValidationResult

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class RenderedResource:
    body: bytes
    content_type: str
    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)


class ResourceService:
    """Entry point for resource reads over the registered handlers."""

    def __init__(
        self,
        backend: BackendClient | None = None,
        settings: AppSettings | None = None,
        *,
        handlers: Iterable[ResourceHandler] | None = None,
        mappers: MapperService | None = None,
        cache: ResourceCache | None = None,
    ) -> None:
        if backend is None and handlers is None:
            raise ValueError("either a backend client or explicit handlers are required")
        self.settings = settings or get_settings()
        resources = self.settings.resources
        cache_settings = self.settings.cache
        self.mappers = mappers or MapperService()
        self.registry = HandlerRegistry(
            default_limit=self.settings.pagination.default_limit,
            max_limit=self.settings.pagination.max_limit,
            cache_ttl=cache_settings.default_ttl_seconds,
            bypass_flag=cache_settings.bypass_flag,
            caching_enabled=cache_settings.enabled,
            default_content_type=resources.default_accept_type,
        )
        if handlers is None:
            handlers = default_handlers(backend, self.mappers, scheme=resources.scheme)
        for handler in handlers:
            self.registry.register_handler(handler)
        self.cache = cache if cache is not None else ResourceCache(
            default_ttl=cache_settings.default_ttl_seconds,
            max_entries=cache_settings.max_entries,
            sweep_interval=cache_settings.sweep_interval_seconds,
            bypass_flag=cache_settings.bypass_flag,
        )
        self.formatters = FormatterRegistry(
            pretty=resources.pretty_print, default_content_type=resources.default_accept_type
        )
        self.errors = ErrorHandler(
            self.formatters, include_stack_trace=self.settings.debug
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def _cache_options(self, uri: str) -> CacheOptions:
        cache_settings = self.settings.cache
        return parse_cache_params(
            parse_uri(uri).query_params,
            ttl=cache_settings.default_ttl_seconds,
            bypass_flag=cache_settings.bypass_flag,
            enabled=cache_settings.enabled,
        )

    def get_resource(
        self,
        uri: str,
        content_type: str = "",
        accept_type: str = "",
        payload: Any = None,
    ) -> ResourceResponse:
        """Return the envelope for ``uri``, consulting the cache for plain reads."""
        response, _ = self._fetch(uri, self._cache_options(uri), content_type, accept_type, payload)
        return response

    def _fetch(
        self,
        uri: str,
        options: CacheOptions,
        content_type: str,
        accept_type: str,
        payload: Any,
    ) -> tuple[ResourceResponse, CacheOptions]:
        """Return the envelope and the caching options that describe it.

        A cache hit reports the entry's remaining lifetime as its TTL.
        """
        key: str | None = None
        if payload is None and options.enabled:
            key = self.cache.generate_key(uri)
            entry = self.cache.get_entry(key)
            if entry is not None:
                logger.debug("resources.cache.hit", uri=uri)
                return entry.value, evolve(options, ttl=self.cache.remaining_ttl(entry))
        response = self.registry.dispatch(uri, content_type, accept_type, payload)
        if key is not None:
            self.cache.set(key, response, options.ttl)
        return response, options

    def render(
        self,
        uri: str,
        accept_type: str = "",
        content_type: str = "",
        payload: Any = None,
    ) -> RenderedResource:
        """Fetch and serialise ``uri``; errors become formatted error envelopes."""
        try:
            response, options = self._fetch(
                uri, self._cache_options(uri), content_type, accept_type, payload
            )
            body, media_type = self.formatters.format_response(response, accept_type)
        except Exception as exc:
            body, media_type, status = self.errors.handle_error(exc, accept_type)
            return RenderedResource(
                body=body,
                content_type=media_type,
                status=status,
                headers=cache_headers(CacheOptions(enabled=False)),
            )
        return RenderedResource(body=body, content_type=media_type, headers=cache_headers(options))

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def resource_handlers(self) -> list[ResourceHandler]:
        return self.registry.handlers()

    def resource_patterns(self) -> list[str]:
        return sorted(self.registry.patterns())

    def validate_uri(self, uri: str) -> ValidationResult:
        return URIValidator(self.registry).validate(ResourceRequest(uri=uri))

    def describe_resources(self) -> list[dict[str, str]]:
        """Describe every pattern for capability discovery."""
        described: list[dict[str, str]] = []
        for handler in self.registry.handlers():
            description = getattr(handler, "description", "") or f"Access {handler.name} resources"
            for pattern in handler.uri_patterns:
                resource_type = pattern.partition("://")[2].split("/", 1)[0]
                described.append(
                    {
                        "name": resource_type,
                        "handler": handler.name,
                        "description": description,
                        "uri_pattern": pattern,
                    }
                )
        return described

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        self.cache.close()

    def __enter__(self) -> ResourceService:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["RenderedResource", "ResourceService"]
