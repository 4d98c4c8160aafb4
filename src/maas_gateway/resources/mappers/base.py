"""Mapper contract, base implementation and name-keyed registry.

Key Responsibilities:
    - Define the :class:`ResourceMapper` protocol translating backend objects
      to client context objects and back
    - Accept model instances or raw mappings and validate identity fields
      before translation
    - Keep mappers in a registry guarded by a reader/writer lock

Collaborators:
    - Upstream: :class:`~maas_gateway.resources.mappers.service.MapperService`
      and resource handlers
    - Downstream: Pydantic models in :mod:`maas_gateway.models`

Side Effects:
    - Emits structured log events when nested elements are skipped

Thread Safety:
    - Mappers are stateless; registry lookups take the shared lock
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, ClassVar, Protocol, TypeVar, runtime_checkable

import structlog
from pydantic import BaseModel, ValidationError

from maas_gateway.resources.locks import ReadWriteLock
from maas_gateway.utils.errors import (
    ConflictError,
    GatewayError,
    GatewayValidationError,
    MappingError,
    NotFoundError,
)

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")

# ==============================================================================
# CONTRACT
# ==============================================================================


@runtime_checkable
class ResourceMapper(Protocol):
    """Bidirectional translation between backend and context objects."""

    @property
    def name(self) -> str: ...

    def to_context(self, obj: Any) -> Any: ...

    def to_backend(self, obj: Any) -> Any: ...


def coerce_model(obj: Any, model: type[ModelT]) -> ModelT:
    """Return ``obj`` as an instance of ``model``, parsing mappings."""
    if isinstance(obj, model):
        return obj
    if isinstance(obj, Mapping):
        try:
            return model.model_validate(obj)
        except ValidationError as exc:
            raise GatewayValidationError(
                f"invalid {model.__name__} payload",
                code="invalid_payload",
                details={"errors": exc.errors(include_url=False, include_context=False)},
                cause=exc,
            ) from exc
    raise GatewayValidationError(
        f"expected {model.__name__}, got {type(obj).__name__}", code="invalid_payload"
    )


def map_children(
    items: Iterable[ItemT],
    convert: Callable[[ItemT], ResultT],
    *,
    parent: str,
    kind: str,
) -> list[ResultT]:
    """Convert nested elements, logging and skipping the ones that fail."""
    mapped: list[ResultT] = []
    for index, item in enumerate(items):
        try:
            mapped.append(convert(item))
        except GatewayError as exc:
            logger.warning(
                "resources.mapper.child_skipped",
                parent=parent,
                kind=kind,
                index=index,
                error=str(exc),
            )
    return mapped


def parse_backend_id(value: str, *, kind: str) -> int:
    """Parse a numeric backend id, falling back to ``0`` with a warning."""
    if not value:
        return 0
    try:
        return int(value)
    except ValueError:
        logger.warning("resources.mapper.invalid_id", kind=kind, value=value)
        return 0


class BaseResourceMapper:
    """Validate inputs and delegate to ``_to_context`` / ``_to_backend``.

    Subclasses declare ``name`` and the two model classes; failures other than
    gateway errors raised by the conversion hooks surface as
    :class:`~maas_gateway.utils.errors.MappingError`.
    """

    name: ClassVar[str]
    backend_model: ClassVar[type[BaseModel]]
    context_model: ClassVar[type[BaseModel]]

    def to_context(self, obj: Any) -> Any:
        backend = coerce_model(obj, self.backend_model)
        self._ensure_valid(backend)
        return self._convert(self._to_context, backend, "context")

    def to_backend(self, obj: Any) -> Any:
        context = coerce_model(obj, self.context_model)
        self._ensure_valid(context)
        return self._convert(self._to_backend, context, "backend")

    def _ensure_valid(self, model: BaseModel) -> None:
        try:
            model.ensure_valid()  # type: ignore[attr-defined]
        except ValueError as exc:
            raise GatewayValidationError(str(exc), code="invalid_payload", cause=exc) from exc

    def _convert(self, hook: Callable[[Any], Any], model: BaseModel, direction: str) -> Any:
        try:
            return hook(model)
        except GatewayError:
            raise
        except (ValueError, TypeError, ValidationError) as exc:
            raise MappingError(
                f"failed to map {self.name} to {direction}",
                details={"mapper": self.name},
                cause=exc,
            ) from exc

    def _to_context(self, obj: Any) -> Any:
        raise NotImplementedError

    def _to_backend(self, obj: Any) -> Any:
        raise NotImplementedError


# ==============================================================================
# REGISTRY
# ==============================================================================


class MapperRegistry:
    """Name-keyed registry of resource mappers."""

    def __init__(self) -> None:
        self._mappers: dict[str, ResourceMapper] = {}
        self._lock = ReadWriteLock()

    def register_mapper(self, mapper: ResourceMapper) -> None:
        with self._lock.write():
            if mapper.name in self._mappers:
                raise ConflictError(
                    f"mapper {mapper.name!r} already registered",
                    code="duplicate_mapper",
                )
            self._mappers[mapper.name] = mapper
        logger.debug("resources.mapper.registered", mapper=mapper.name)

    def get_mapper(self, name: str) -> ResourceMapper:
        with self._lock.read():
            mapper = self._mappers.get(name)
        if mapper is None:
            raise NotFoundError(f"mapper {name!r} not found", details={"mapper": name})
        return mapper

    def names(self) -> list[str]:
        with self._lock.read():
            return sorted(self._mappers)

    def map_to_context(self, name: str, obj: Any) -> Any:
        return self.get_mapper(name).to_context(obj)

    def map_to_backend(self, name: str, obj: Any) -> Any:
        return self.get_mapper(name).to_backend(obj)


__all__ = [
    "BaseResourceMapper",
    "MapperRegistry",
    "ResourceMapper",
    "coerce_model",
    "map_children",
    "parse_backend_id",
]
