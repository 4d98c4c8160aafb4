"""Handler registry and request dispatcher.

Key Responsibilities:
    - Register handlers by name and index every URI pattern they declare
    - Locate the first handler capable of serving a URI
    - Run the dispatch pipeline: match, validate, invoke, filter, paginate and
      wrap the result into a :class:`~maas_gateway.resources.models.ResourceResponse`

Collaborators:
    - Upstream: :class:`~maas_gateway.resources.service.ResourceService`
    - Downstream: Resource handlers, the validator pipeline, the filter and
      pagination engines, Prometheus metrics and OpenTelemetry tracing

Side Effects:
    - Emits metrics, spans and structured log events per dispatch

Thread Safety:
    - Registration takes the exclusive lock; lookups and dispatch take the
      shared lock only while reading the handler table

Performance Characteristics:
    - Handler lookup is linear in the number of registered patterns
"""

from __future__ import annotations

import time
from dataclasses import replace
from typing import Any
from urllib.parse import urlencode

import structlog
from opentelemetry import trace

from maas_gateway.observability.metrics import record_dispatch
from maas_gateway.resources.cache import (
    DEFAULT_BYPASS_FLAG,
    DEFAULT_CACHE_TTL,
    parse_cache_params,
)
from maas_gateway.resources.filtering import apply_filters, is_collection, parse_filter_params
from maas_gateway.resources.handlers.base import ResourceHandler
from maas_gateway.resources.locks import ReadWriteLock
from maas_gateway.resources.models import PaginationMetadata, ResourceRequest, ResourceResponse
from maas_gateway.resources.pagination import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    PaginatedResult,
    apply_pagination,
    parse_pagination_params,
)
from maas_gateway.resources.uri import URIMatch, URIMismatchError, compile_pattern, parse_uri
from maas_gateway.resources.validation import Validator, build_default_validator
from maas_gateway.utils.errors import ConflictError, NotFoundError
from maas_gateway.utils.logging import resource_context

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer("maas_gateway.resources.dispatch")

DEFAULT_CONTENT_TYPE = "application/json"


class HandlerRegistry:
    """Name-keyed handler registry that also dispatches requests."""

    def __init__(
        self,
        *,
        validator: Validator | None = None,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        bypass_flag: str = DEFAULT_BYPASS_FLAG,
        caching_enabled: bool = True,
        default_content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> None:
        self._handlers: dict[str, ResourceHandler] = {}
        self._patterns: dict[str, str] = {}
        self._lock = ReadWriteLock()
        self._validator = validator if validator is not None else build_default_validator(self)
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.cache_ttl = cache_ttl
        self.bypass_flag = bypass_flag
        self.caching_enabled = caching_enabled
        self.default_content_type = default_content_type

    # ------------------------------------------------------------------
    # Registration and lookup
    # ------------------------------------------------------------------
    def register_handler(self, handler: ResourceHandler) -> None:
        """Register ``handler`` and index its patterns.

        Raises:
            ConflictError: If the name, or one of its patterns, is already taken.
        """
        patterns = list(handler.uri_patterns)
        for pattern in patterns:
            compile_pattern(pattern)
        with self._lock.write():
            if handler.name in self._handlers:
                raise ConflictError(
                    f"handler {handler.name!r} already registered", code="duplicate_handler"
                )
            for pattern in patterns:
                owner = self._patterns.get(pattern)
                if owner is not None:
                    raise ConflictError(
                        f"pattern {pattern!r} already registered by handler {owner!r}",
                        code="duplicate_pattern",
                    )
            self._handlers[handler.name] = handler
            for pattern in patterns:
                self._patterns[pattern] = handler.name
        logger.info("resources.handler.registered", handler=handler.name, patterns=patterns)

    def get_handler(self, uri: str) -> ResourceHandler:
        """Return the first registered handler able to serve ``uri``.

        Raises:
            GatewayValidationError: If ``uri`` is malformed.
            NotFoundError: If no handler matches.
        """
        parse_uri(uri)
        with self._lock.read():
            handlers = list(self._handlers.values())
        for handler in handlers:
            if handler.can_handle(uri):
                return handler
        raise NotFoundError(f"no handler found for URI: {uri}", details={"uri": uri})

    def handlers(self) -> list[ResourceHandler]:
        with self._lock.read():
            return list(self._handlers.values())

    def patterns(self) -> dict[str, str]:
        """Return every indexed pattern mapped to its handler name."""
        with self._lock.read():
            return dict(self._patterns)

    def set_validator(self, validator: Validator) -> None:
        self._validator = validator

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def dispatch(
        self,
        uri: str,
        content_type: str = "",
        accept_type: str = "",
        payload: Any = None,
    ) -> ResourceResponse:
        """Route ``uri`` to its handler and return the response envelope.

        Validation runs before the handler is invoked; handler errors propagate
        unchanged.
        """
        started = time.perf_counter()
        handler = self.get_handler(uri)
        outcome = "error"
        try:
            with resource_context(uri, handler.name), tracer.start_as_current_span(
                "resources.dispatch",
                attributes={"resource.uri": uri, "resource.handler": handler.name},
            ):
                request = self._build_request(handler, uri, content_type, accept_type, payload)
                result = handler.handle_request(request)
                response = self._wrap(request, handler, result)
            outcome = "success"
            return response
        finally:
            elapsed = time.perf_counter() - started
            record_dispatch(handler.name, outcome, elapsed)
            logger.debug(
                "resources.dispatch.completed",
                handler=handler.name,
                uri=uri,
                outcome=outcome,
                duration_ms=round(elapsed * 1000, 3),
            )

    def _match(self, handler: ResourceHandler, uri: str) -> URIMatch:
        for pattern in handler.uri_patterns:
            compiled = compile_pattern(pattern)
            if compiled.matches(uri):
                return compiled.match(uri)
        raise URIMismatchError(
            f"URI does not match any pattern of handler {handler.name}", details={"uri": uri}
        )

    def _build_request(
        self,
        handler: ResourceHandler,
        uri: str,
        content_type: str,
        accept_type: str,
        payload: Any,
    ) -> ResourceRequest:
        match = self._match(handler, uri)
        query = dict(match.components.query_params)
        request = ResourceRequest(
            uri=uri,
            pattern=match.pattern,
            parameters=match.parameters,
            query_params=query,
            payload=payload,
            content_type=content_type or self.default_content_type,
            accept_type=accept_type or self.default_content_type,
        )
        result = self._validator.validate(request)
        if not result.valid:
            logger.info("resources.dispatch.invalid", uri=uri, errors=result.message())
            raise result.to_error()
        return replace(
            request,
            filter_options=parse_filter_params(query),
            pagination=parse_pagination_params(
                query, default_limit=self.default_limit, max_limit=self.max_limit
            ),
            cache_options=parse_cache_params(
                query,
                ttl=self.cache_ttl,
                bypass_flag=self.bypass_flag,
                enabled=self.caching_enabled,
            ),
        )

    def _wrap(
        self, request: ResourceRequest, handler: ResourceHandler, result: Any
    ) -> ResourceResponse:
        if is_collection(result):
            filtered = apply_filters(result, request.filter_options)
            page = apply_pagination(filtered, request.pagination)
            response = ResourceResponse(data=page.items).with_pagination(
                PaginationMetadata.from_result(page)
            )
            for rel, href in _page_links(request, page).items():
                response = response.with_link(rel, href)
        else:
            response = ResourceResponse(data=result)
        return (
            response.with_link("self", request.uri)
            .with_metadata("handler", handler.name)
            .with_metadata("pattern", request.pattern)
        )


def _page_links(request: ResourceRequest, page: PaginatedResult) -> dict[str, str]:
    path = request.uri.split("?", 1)[0]
    base = {key: value for key, value in request.query_params.items() if key != "page"}

    def link(offset: int) -> str:
        query = {**base, "limit": str(page.limit), "offset": str(offset)}
        return f"{path}?{urlencode(query)}"

    links: dict[str, str] = {}
    if page.offset + page.limit < page.total_count:
        links["next"] = link(page.offset + page.limit)
    if page.offset > 0:
        links["prev"] = link(max(page.offset - page.limit, 0))
    return links


__all__ = ["DEFAULT_CONTENT_TYPE", "HandlerRegistry"]
