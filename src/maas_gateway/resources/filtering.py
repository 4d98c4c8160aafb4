"""Generic filter engine for resource collections.

Key Responsibilities:
    - Parse ``field op value [and|or field op value]...`` expressions into an
      immutable condition tree
    - Evaluate the tree against heterogeneous records (mappings, pydantic
      models, dataclasses, plain objects)
    - Coerce condition values to the runtime type of the field they target

Collaborators:
    - Upstream: Handler registry applies filters to collection results
    - Downstream: ``pydantic`` model metadata for alias lookup

Side Effects:
    - None; records are never mutated

Thread Safety:
    - Parsed filters are immutable and may be shared; the accessor registry is
      guarded by a lock

Performance Characteristics:
    - O(records x conditions); per-type field tables are memoised
"""

from __future__ import annotations

import re
import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import UTC, datetime
from enum import Enum
from functools import lru_cache
from typing import Any

from pydantic import BaseModel

from maas_gateway.utils.errors import GatewayValidationError

# ==============================================================================
# DATA MODELS
# ==============================================================================


class FilterOperator(str, Enum):
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    STARTS_WITH = "startswith"
    ENDS_WITH = "endswith"
    IN = "in"
    NOT_IN = "notin"


class LogicalOperator(str, Enum):
    AND = "and"
    OR = "or"


@dataclass(frozen=True, slots=True)
class FilterCondition:
    field: str
    operator: FilterOperator
    value: str


@dataclass(frozen=True, slots=True)
class FilterGroup:
    """Conditions and nested groups joined by one logical operator."""

    conditions: tuple[FilterCondition, ...] = ()
    groups: tuple[FilterGroup, ...] = ()
    operator: LogicalOperator = LogicalOperator.AND

    @property
    def is_empty(self) -> bool:
        return not self.conditions and not self.groups


@dataclass(frozen=True, slots=True)
class FilterOptions:
    root: FilterGroup = field(default_factory=FilterGroup)


# ==============================================================================
# PARSING
# ==============================================================================

_TOKEN_RE = re.compile(r"'([^']*)'|\"([^\"]*)\"|(\S+)")
FILTER_PARAM = "filter"


def _tokenize(expression: str) -> list[str]:
    tokens: list[str] = []
    for match in _TOKEN_RE.finditer(expression):
        single, double, bare = match.groups()
        tokens.append(single if single is not None else double if double is not None else bare)
    return tokens


def _parse_operator(token: str) -> FilterOperator:
    try:
        return FilterOperator(token.lower())
    except ValueError:
        raise GatewayValidationError(
            f"invalid filter operator: {token}",
            code="invalid_parameter",
            details={"field": FILTER_PARAM},
        ) from None


def parse_filter(expression: str) -> FilterGroup:
    """Parse a filter expression.

    ``and`` binds tighter than ``or``: ``a eq 1 and b eq 2 or c eq 3`` yields an
    OR group holding the AND group ``(a, b)`` and the condition ``c``.

    Raises:
        GatewayValidationError: For malformed expressions, unknown comparison
            operators or unknown logical operators.
    """
    tokens = _tokenize(expression)
    if not tokens:
        return FilterGroup()
    if len(tokens) < 3:
        raise GatewayValidationError(
            "invalid filter expression: expected 'field operator value'",
            code="invalid_parameter",
            details={"field": FILTER_PARAM, "expression": expression},
        )

    branches: list[list[FilterCondition]] = [[]]
    index = 0
    while True:
        if len(tokens) - index < 3:
            raise GatewayValidationError(
                "invalid filter expression: incomplete condition",
                code="invalid_parameter",
                details={"field": FILTER_PARAM, "expression": expression},
            )
        field_name, operator, value = tokens[index : index + 3]
        branches[-1].append(FilterCondition(field_name, _parse_operator(operator), value))
        index += 3
        if index == len(tokens):
            break
        try:
            logical = LogicalOperator(tokens[index].lower())
        except ValueError:
            raise GatewayValidationError(
                f"invalid logical operator: {tokens[index]}",
                code="invalid_parameter",
                details={"field": FILTER_PARAM, "expression": expression},
            ) from None
        index += 1
        if logical is LogicalOperator.OR:
            branches.append([])

    if len(branches) == 1:
        return FilterGroup(conditions=tuple(branches[0]))
    return FilterGroup(
        conditions=tuple(branch[0] for branch in branches if len(branch) == 1),
        groups=tuple(FilterGroup(conditions=tuple(b)) for b in branches if len(b) > 1),
        operator=LogicalOperator.OR,
    )


def parse_filter_params(query: Mapping[str, str]) -> FilterOptions:
    """Build :class:`FilterOptions` from the ``filter`` query parameter."""
    expression = (query.get(FILTER_PARAM) or "").strip()
    return FilterOptions(root=parse_filter(expression))


# ==============================================================================
# FIELD ACCESS
# ==============================================================================

_MISSING = object()
FieldAccessor = Callable[[Any], Any]


class FieldAccessorRegistry:
    """Explicit per-type field accessor tables consulted before reflection."""

    def __init__(self) -> None:
        self._tables: dict[type, dict[str, FieldAccessor]] = {}
        self._lock = threading.Lock()

    def register(self, record_type: type, accessors: Mapping[str, FieldAccessor]) -> None:
        with self._lock:
            table = self._tables.setdefault(record_type, {})
            table.update({name.lower(): accessor for name, accessor in accessors.items()})

    def find(self, record_type: type, name: str) -> FieldAccessor | None:
        if not self._tables:
            return None
        lowered = name.lower()
        for klass in record_type.__mro__:
            table = self._tables.get(klass)
            if table and lowered in table:
                return table[lowered]
        return None


field_accessors = FieldAccessorRegistry()


def register_field_accessors(record_type: type, accessors: Mapping[str, FieldAccessor]) -> None:
    field_accessors.register(record_type, accessors)


@lru_cache(maxsize=256)
def _declared_fields(record_type: type) -> tuple[frozenset[str], dict[str, str]]:
    """Return exact attribute names and a case-folded name/alias lookup table."""
    folded: dict[str, str] = {}
    if isinstance(record_type, type) and issubclass(record_type, BaseModel):
        model_fields = record_type.model_fields
        for name in model_fields:
            folded.setdefault(name.lower(), name)
        for name, info in model_fields.items():
            for alias in (info.alias, info.serialization_alias, info.validation_alias):
                if isinstance(alias, str):
                    folded.setdefault(alias.lower(), name)
        return frozenset(model_fields), folded
    if is_dataclass(record_type):
        declared = fields(record_type)
        for item in declared:
            folded.setdefault(item.name.lower(), item.name)
        for item in declared:
            alias = item.metadata.get("alias")
            if isinstance(alias, str):
                folded.setdefault(alias.lower(), item.name)
        return frozenset(item.name for item in declared), folded
    return frozenset(), folded


def resolve_field(record: Any, name: str) -> Any:
    """Return the value of ``name`` on ``record`` or ``_MISSING``."""
    accessor = field_accessors.find(type(record), name)
    if accessor is not None:
        return accessor(record)

    lowered = name.lower()
    if isinstance(record, Mapping):
        if name in record:
            return record[name]
        for key, value in record.items():
            if isinstance(key, str) and key.lower() == lowered:
                return value
        return _MISSING

    exact, folded = _declared_fields(type(record))
    instance = getattr(record, "__dict__", {})
    if name in exact or (name in instance and not name.startswith("_")):
        return getattr(record, name)
    attribute = folded.get(lowered)
    if attribute is not None:
        return getattr(record, attribute)
    for key, value in instance.items():
        if not key.startswith("_") and key.lower() == lowered:
            return value
    return _MISSING


# ==============================================================================
# COERCION AND COMPARISON
# ==============================================================================

_TRUE_VALUES = frozenset({"1", "t", "true"})
_FALSE_VALUES = frozenset({"0", "f", "false"})


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _split(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",")]


def _coerce(raw: str, sample: Any) -> Any:
    """Convert ``raw`` to the type of ``sample``; raises ``ValueError`` on failure."""
    if isinstance(sample, bool):
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"invalid boolean: {raw}")
    if isinstance(sample, int):
        return int(raw)
    if isinstance(sample, float):
        return float(raw)
    if isinstance(sample, datetime):
        return _coerce_datetime(raw, sample)
    if _is_sequence(sample):
        return _split(raw)
    return raw


def _coerce_datetime(raw: str, sample: datetime) -> datetime:
    """Parse an ISO timestamp, reading naive values as UTC to match aware fields."""
    parsed = datetime.fromisoformat(raw.strip())
    if sample.tzinfo is not None and parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    if sample.tzinfo is None and parsed.tzinfo is not None:
        return parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def _normalise(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if _is_sequence(value):
        return [_normalise(item) for item in value]
    return value


def _compare(actual: Any, condition: FilterCondition) -> bool:
    operator = condition.operator
    raw = condition.value

    if operator in (FilterOperator.IN, FilterOperator.NOT_IN):
        if _is_sequence(actual):
            candidates = set(_split(raw))
            present = any(str(item) in candidates for item in actual)
        else:
            present = actual in [_coerce(item, actual) for item in _split(raw)]
        return present if operator is FilterOperator.IN else not present

    if operator in (FilterOperator.STARTS_WITH, FilterOperator.ENDS_WITH):
        if _is_sequence(actual):
            return False
        if operator is FilterOperator.STARTS_WITH:
            return str(actual).startswith(raw)
        return str(actual).endswith(raw)

    if operator is FilterOperator.CONTAINS:
        if _is_sequence(actual):
            elements = {str(item) for item in actual}
            return all(value in elements for value in _split(raw))
        return raw in str(actual)

    expected = _coerce(raw, actual)
    if _is_sequence(actual):
        actual = [str(item) for item in actual]
        if operator is FilterOperator.EQ:
            return actual == expected
        if operator is FilterOperator.NE:
            return actual != expected
        return False

    if operator is FilterOperator.EQ:
        return actual == expected
    if operator is FilterOperator.NE:
        return actual != expected
    if operator is FilterOperator.GT:
        return actual > expected
    if operator is FilterOperator.GTE:
        return actual >= expected
    if operator is FilterOperator.LT:
        return actual < expected
    if operator is FilterOperator.LTE:
        return actual <= expected
    return False


def evaluate_condition(record: Any, condition: FilterCondition) -> bool:
    """Evaluate one condition; unresolvable fields and values evaluate false."""
    actual = resolve_field(record, condition.field)
    if actual is _MISSING or actual is None:
        return False
    try:
        return bool(_compare(_normalise(actual), condition))
    except (TypeError, ValueError):
        return False


def matches(record: Any, group: FilterGroup) -> bool:
    """Return whether ``record`` satisfies ``group`` (empty groups match all)."""
    if group.is_empty:
        return True
    if group.operator is LogicalOperator.OR:
        return any(_outcomes(record, group))
    return all(_outcomes(record, group))


def _outcomes(record: Any, group: FilterGroup) -> Iterable[bool]:
    for condition in group.conditions:
        yield evaluate_condition(record, condition)
    for nested in group.groups:
        yield matches(record, nested)


def apply_filters(
    records: Iterable[Any],
    options: FilterOptions | FilterGroup | None = None,
) -> list[Any]:
    """Return the records satisfying ``options`` in their original order.

    Raises:
        GatewayValidationError: If ``records`` is not a collection.
    """
    if isinstance(records, (Mapping, str, bytes)) or not isinstance(records, Iterable):
        raise GatewayValidationError(
            "filters can only be applied to collections", code="invalid_parameter"
        )
    group = options.root if isinstance(options, FilterOptions) else options
    if group is None or group.is_empty:
        return list(records)
    return [record for record in records if matches(record, group)]


def is_collection(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


__all__ = [
    "FILTER_PARAM",
    "FieldAccessorRegistry",
    "FilterCondition",
    "FilterGroup",
    "FilterOperator",
    "FilterOptions",
    "LogicalOperator",
    "apply_filters",
    "evaluate_condition",
    "field_accessors",
    "is_collection",
    "matches",
    "parse_filter",
    "parse_filter_params",
    "register_field_accessors",
    "resolve_field",
]
