"""Resource URI parsing and pattern matching.

Key Responsibilities:
    - Split resource URIs (``maas://machine/abc123/power?x=1``) into components
    - Compile URI patterns with ``{name}``, ``{name?}`` and ``{name:a|b}``
      placeholders into anchored regular expressions
    - Match URIs against compiled patterns and extract parameter values

Collaborators:
    - Upstream: Handler registry, URI validator and resource service
    - Downstream: Python ``re`` and ``urllib.parse``

Side Effects:
    - None; compiled patterns are memoised in a process-wide LRU cache

Thread Safety:
    - Thread-safe; compiled patterns are immutable and may be shared

Performance Characteristics:
    - Compilation is linear in the pattern length and happens once per pattern
    - Matching is a single regex ``fullmatch`` over the URI path
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Mapping
from urllib.parse import parse_qs

from maas_gateway.utils.errors import GatewayValidationError

# ==============================================================================
# CONSTANTS
# ==============================================================================

SCHEME_SEPARATOR = "://"
PLACEHOLDER_RE = re.compile(r"(/)?\{([^{}:?]+)(\?)?(?::([^{}]+))?\}")

# ==============================================================================
# DATA MODELS
# ==============================================================================


@dataclass(frozen=True, slots=True)
class URIComponents:
    """Parsed components of a resource URI."""

    uri: str
    scheme: str
    resource_type: str
    resource_id: str = ""
    sub_resource_type: str = ""
    sub_resource_id: str = ""
    query_params: Mapping[str, str] = field(default_factory=dict)

    @property
    def path(self) -> str:
        """URI without its query string."""
        return self.uri.split("?", 1)[0]


@dataclass(frozen=True, slots=True)
class URIParameter:
    name: str
    optional: bool = False
    values: tuple[str, ...] = ()

    @property
    def enumerated(self) -> bool:
        return bool(self.values)


@dataclass(frozen=True, slots=True)
class URIMatch:
    """Outcome of matching a URI against a pattern."""

    pattern: str
    components: URIComponents
    parameters: dict[str, str]


class URIMismatchError(GatewayValidationError):
    """Raised when a URI does not satisfy a pattern."""

    default_code = "pattern_mismatch"


# ==============================================================================
# PARSING
# ==============================================================================


def parse_uri(uri: str) -> URIComponents:
    """Split a resource URI into scheme, path segments and query parameters.

    Args:
        uri: URI of the form ``scheme://type[/id[/subtype[/subid]]][?query]``.

    Returns:
        Parsed components. Repeated query keys keep their first value.

    Raises:
        GatewayValidationError: If the scheme separator or resource type is
            missing.
    """
    scheme, separator, remainder = uri.partition(SCHEME_SEPARATOR)
    if not separator or not scheme:
        raise GatewayValidationError(
            "invalid URI format", code="invalid_uri_format", details={"uri": uri}
        )
    path, _, query = remainder.partition("?")
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        raise GatewayValidationError(
            "invalid URI: missing resource type", code="invalid_uri", details={"uri": uri}
        )
    segments.extend([""] * (4 - len(segments)))
    query_params = {
        key: values[0] for key, values in parse_qs(query, keep_blank_values=True).items()
    }
    return URIComponents(
        uri=uri,
        scheme=scheme,
        resource_type=segments[0],
        resource_id=segments[1],
        sub_resource_type=segments[2],
        sub_resource_id=segments[3],
        query_params=query_params,
    )


def extract_parameters(pattern: str) -> list[URIParameter]:
    """Return the placeholders declared by ``pattern`` in declaration order."""
    parameters: list[URIParameter] = []
    seen: set[str] = set()
    for match in PLACEHOLDER_RE.finditer(pattern):
        name = match.group(2).strip()
        if not name.isidentifier():
            raise GatewayValidationError(
                f"invalid parameter name {name!r} in pattern",
                code="invalid_pattern",
                details={"pattern": pattern},
            )
        if name in seen:
            raise GatewayValidationError(
                f"duplicate parameter {name!r} in pattern",
                code="invalid_pattern",
                details={"pattern": pattern},
            )
        seen.add(name)
        values = tuple(v.strip() for v in (match.group(4) or "").split("|") if v.strip())
        parameters.append(URIParameter(name=name, optional=bool(match.group(3)), values=values))
    return parameters


# ==============================================================================
# PATTERN COMPILATION
# ==============================================================================


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """Anchored regular expression compiled from a URI pattern."""

    pattern: str
    regex: re.Pattern[str]
    parameters: tuple[URIParameter, ...]

    @property
    def parameter_names(self) -> tuple[str, ...]:
        return tuple(parameter.name for parameter in self.parameters)

    def match(self, uri: str) -> URIMatch:
        """Match ``uri`` and return the extracted parameters.

        Raises:
            URIMismatchError: If the URI path does not match the whole pattern.
        """
        components = parse_uri(uri)
        found = self.regex.fullmatch(components.path)
        if found is None:
            raise URIMismatchError(
                "URI does not match pattern",
                details={"uri": uri, "pattern": self.pattern},
            )
        parameters = {name: found.group(name) or "" for name in self.parameter_names}
        return URIMatch(pattern=self.pattern, components=components, parameters=parameters)

    def matches(self, uri: str) -> bool:
        path = uri.split("?", 1)[0]
        return self.regex.fullmatch(path) is not None


def _placeholder_regex(parameter: URIParameter, leading_slash: bool) -> str:
    if parameter.enumerated:
        body = "|".join(re.escape(value) for value in parameter.values)
    else:
        body = "[^/]+"
    group = f"(?P<{parameter.name}>{body})"
    if leading_slash:
        return f"(?:/{group})?" if parameter.optional else f"/{group}"
    return f"{group}?" if parameter.optional else group


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> CompiledPattern:
    """Compile ``pattern`` into an anchored regular expression.

    Literal text is escaped. A placeholder that follows a ``/`` and is marked
    optional makes the slash optional too, so ``maas://machine/{id}/storage/{device?}``
    matches both ``.../storage`` and ``.../storage/sda``.
    """
    parameters = extract_parameters(pattern)
    by_name = {parameter.name: parameter for parameter in parameters}
    parts: list[str] = []
    position = 0
    for match in PLACEHOLDER_RE.finditer(pattern):
        parts.append(re.escape(pattern[position : match.start()]))
        parameter = by_name[match.group(2).strip()]
        parts.append(_placeholder_regex(parameter, leading_slash=bool(match.group(1))))
        position = match.end()
    parts.append(re.escape(pattern[position:]))
    return CompiledPattern(
        pattern=pattern,
        regex=re.compile("".join(parts)),
        parameters=tuple(parameters),
    )


# ==============================================================================
# MATCHING HELPERS
# ==============================================================================


def match_uri(uri: str, pattern: str) -> dict[str, str]:
    """Return the parameters extracted from ``uri`` by ``pattern``.

    Optional parameters that are absent map to ``""``.
    """
    return compile_pattern(pattern).match(uri).parameters


def validate_uri(uri: str, pattern: str) -> bool:
    """Return whether ``uri`` matches ``pattern`` without raising for mismatches."""
    try:
        compile_pattern(pattern).match(uri)
    except GatewayValidationError:
        return False
    return True


def expand_pattern(pattern: str, parameters: Mapping[str, str]) -> str:
    """Substitute ``parameters`` into ``pattern``.

    Absent optional parameters are dropped along with their leading slash.

    Raises:
        GatewayValidationError: For a missing required parameter or a value
            outside an enumerated set.
    """
    declared = {parameter.name: parameter for parameter in extract_parameters(pattern)}

    def substitute(match: re.Match[str]) -> str:
        parameter = declared[match.group(2).strip()]
        value = parameters.get(parameter.name, "")
        if not value:
            if parameter.optional:
                return ""
            raise GatewayValidationError(
                f"missing value for parameter {parameter.name!r}",
                code="missing_required_param",
                details={"pattern": pattern},
            )
        if parameter.enumerated and value not in parameter.values:
            raise GatewayValidationError(
                f"value {value!r} not allowed for parameter {parameter.name!r}",
                code="invalid_enum",
                details={"pattern": pattern, "allowed": list(parameter.values)},
            )
        return f"{match.group(1) or ''}{value}"

    return PLACEHOLDER_RE.sub(substitute, pattern)


__all__ = [
    "CompiledPattern",
    "URIComponents",
    "URIMatch",
    "URIMismatchError",
    "URIParameter",
    "compile_pattern",
    "expand_pattern",
    "extract_parameters",
    "match_uri",
    "parse_uri",
    "validate_uri",
]
