"""Handler contract and a route-table based implementation."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from maas_gateway.resources.models import ResourceRequest
from maas_gateway.resources.uri import (
    SCHEME_SEPARATOR,
    CompiledPattern,
    URIMatch,
    URIMismatchError,
    compile_pattern,
)
from maas_gateway.utils.errors import NotFoundError, UnsupportedOperationError

Route = Callable[[ResourceRequest], Any]

DEFAULT_SCHEME = "maas"


@runtime_checkable
class ResourceHandler(Protocol):
    """Serves the resources addressed by a set of URI patterns."""

    @property
    def name(self) -> str: ...

    @property
    def uri_patterns(self) -> list[str]: ...

    def can_handle(self, uri: str) -> bool: ...

    def handle_request(self, request: ResourceRequest) -> Any: ...


class BaseResourceHandler:
    """Handler whose patterns come from a ``pattern -> callable`` route table.

    Subclasses set ``name`` and override :meth:`routes`, whose keys are paths
    below the scheme (``machine/{system_id}``); the handler prefixes them with
    ``<scheme>://``. Patterns are tried in declaration order, so more specific
    patterns should come first where two could match the same URI.
    """

    name: str = ""
    description: str = ""

    def __init__(self, *, scheme: str = DEFAULT_SCHEME) -> None:
        self.scheme = scheme
        self._routes: dict[str, Route] = {
            f"{scheme}{SCHEME_SEPARATOR}{path}": route for path, route in self.routes().items()
        }
        self._compiled: tuple[CompiledPattern, ...] = tuple(
            compile_pattern(pattern) for pattern in self._routes
        )

    def routes(self) -> Mapping[str, Route]:
        return {}

    @property
    def uri_patterns(self) -> list[str]:
        return list(self._routes)

    def can_handle(self, uri: str) -> bool:
        return any(compiled.matches(uri) for compiled in self._compiled)

    def match(self, uri: str) -> URIMatch:
        """Return the match for the first declared pattern ``uri`` satisfies."""
        for compiled in self._compiled:
            if compiled.matches(uri):
                return compiled.match(uri)
        raise URIMismatchError(
            f"URI does not match any pattern of handler {self.name}", details={"uri": uri}
        )

    def handle_request(self, request: ResourceRequest) -> Any:
        route = self._routes.get(request.pattern)
        if route is None:
            raise UnsupportedOperationError(
                f"handler {self.name} does not serve pattern {request.pattern!r}",
                details={"uri": request.uri},
            )
        return route(request)


def require(value: Any, kind: str, identifier: str) -> Any:
    """Return ``value`` or raise :class:`NotFoundError` when the backend had nothing."""
    if value is None:
        raise NotFoundError(
            f"{kind} {identifier!r} not found", details={"resource": kind, "id": identifier}
        )
    return value


__all__ = ["BaseResourceHandler", "DEFAULT_SCHEME", "ResourceHandler", "Route", "require"]
