"""Offset/limit pagination for resource collections."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from maas_gateway.utils.errors import GatewayValidationError

DEFAULT_LIMIT = 50
MAX_LIMIT = 1000


@dataclass(frozen=True, slots=True)
class PaginationOptions:
    """Normalised pagination request; ``page`` is 1-based."""

    limit: int = DEFAULT_LIMIT
    offset: int = 0
    page: int = 1


@dataclass(frozen=True, slots=True)
class PaginatedResult:
    items: list[Any] = field(default_factory=list)
    total_count: int = 0
    limit: int = DEFAULT_LIMIT
    offset: int = 0
    page: int = 1
    page_count: int = 1


def _parse_int(query: Mapping[str, str], name: str) -> int | None:
    raw = query.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise GatewayValidationError(
            f"invalid {name} parameter: {raw}",
            code="invalid_parameter",
            details={"field": name},
        ) from None


def parse_pagination_params(
    query: Mapping[str, str],
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> PaginationOptions:
    """Parse ``limit``, ``offset`` and ``page`` query parameters.

    ``offset`` takes precedence over ``page`` when both are supplied. Limits
    above ``max_limit`` are capped rather than rejected.

    Raises:
        GatewayValidationError: For non-numeric values, a limit below 1, a
            negative offset or a page below 1.
    """
    limit = _parse_int(query, "limit")
    if limit is None:
        limit = default_limit
    if limit < 1:
        raise GatewayValidationError(
            "limit must be a positive integer", code="invalid_parameter", details={"field": "limit"}
        )
    limit = min(limit, max_limit)

    offset = _parse_int(query, "offset")
    page = _parse_int(query, "page")
    if offset is not None:
        if offset < 0:
            raise GatewayValidationError(
                "offset must not be negative",
                code="invalid_parameter",
                details={"field": "offset"},
            )
        return PaginationOptions(limit=limit, offset=offset, page=offset // limit + 1)
    if page is not None:
        if page < 1:
            raise GatewayValidationError(
                "page must be greater than zero",
                code="invalid_parameter",
                details={"field": "page"},
            )
        return PaginationOptions(limit=limit, offset=(page - 1) * limit, page=page)
    return PaginationOptions(limit=limit)


def apply_pagination(
    items: Sequence[Any],
    options: PaginationOptions | None = None,
) -> PaginatedResult:
    """Slice ``items`` according to ``options``.

    Raises:
        GatewayValidationError: If the offset lies beyond a non-empty collection.
    """
    options = options or PaginationOptions()
    total = len(items)
    if total > 0 and options.offset >= total:
        raise GatewayValidationError(
            f"offset {options.offset} exceeds total count {total}",
            code="invalid_parameter",
            details={"field": "offset"},
        )
    end = min(options.offset + options.limit, total)
    return PaginatedResult(
        items=list(items[options.offset : end]),
        total_count=total,
        limit=options.limit,
        offset=options.offset,
        page=options.page,
        page_count=max(1, math.ceil(total / options.limit)),
    )


__all__ = [
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "PaginatedResult",
    "PaginationOptions",
    "apply_pagination",
    "parse_pagination_params",
]
