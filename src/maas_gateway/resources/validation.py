"""Composable request validators.

Key Responsibilities:
    - Collect field-level validation issues into a :class:`ValidationResult`
    - Validate the URI (format, handler, pattern), query parameters against
      declarative rules, and payloads per resource type
    - Combine validators without short-circuiting so callers see every issue

Collaborators:
    - Upstream: :class:`~maas_gateway.resources.handlers.registry.HandlerRegistry`
      runs the composite validator before invoking a handler
    - Downstream: URI helpers and pydantic models for payload schemas

Thread Safety:
    - Validators hold only configuration and are safe to share
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, ValidationError

from maas_gateway.models.context import MachineContext, StorageContext, TagContext
from maas_gateway.models.maas import Subnet
from maas_gateway.resources.models import ResourceRequest
from maas_gateway.resources.uri import SCHEME_SEPARATOR, compile_pattern, parse_uri
from maas_gateway.utils.errors import GatewayValidationError, NotFoundError

if TYPE_CHECKING:
    from maas_gateway.resources.handlers.registry import HandlerRegistry

# ==============================================================================
# RESULTS
# ==============================================================================


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    field: str
    message: str
    code: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message, "code": self.code}


@dataclass(slots=True)
class ValidationResult:
    errors: list[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def add_error(self, field_name: str, message: str, code: str) -> None:
        self.errors.append(ValidationIssue(field_name, message, code))

    def merge(self, other: ValidationResult) -> ValidationResult:
        self.errors.extend(other.errors)
        return self

    def message(self) -> str:
        return "; ".join(f"{issue.field}: {issue.message}" for issue in self.errors)

    def to_error(self) -> GatewayValidationError:
        code = self.errors[0].code if len(self.errors) == 1 else "validation_failed"
        return GatewayValidationError(
            self.message() or "validation failed",
            code=code,
            details={"errors": [issue.to_dict() for issue in self.errors]},
        )


class Validator(Protocol):
    def validate(self, request: ResourceRequest) -> ValidationResult: ...


class CompositeValidator:
    """Run every validator and merge their issues in order."""

    def __init__(self, *validators: Validator) -> None:
        self._validators: list[Validator] = list(validators)

    def add(self, validator: Validator) -> None:
        self._validators.append(validator)

    def validate(self, request: ResourceRequest) -> ValidationResult:
        result = ValidationResult()
        for validator in self._validators:
            result.merge(validator.validate(request))
        return result


# ==============================================================================
# URI VALIDATION
# ==============================================================================


class URIValidator:
    """Check the URI is well formed and served by a registered handler."""

    def __init__(self, registry: HandlerRegistry) -> None:
        self._registry = registry

    def validate(self, request: ResourceRequest) -> ValidationResult:
        result = ValidationResult()
        uri = request.uri
        if not uri:
            result.add_error("uri", "URI cannot be empty", "empty_uri")
            return result
        if SCHEME_SEPARATOR not in uri:
            result.add_error("uri", "URI must have the form scheme://path", "invalid_uri_format")
            return result
        try:
            parse_uri(uri)
        except GatewayValidationError as exc:
            result.add_error("uri", exc.message, "invalid_uri")
            return result
        try:
            handler = self._registry.get_handler(uri)
        except NotFoundError:
            result.add_error("uri", f"no handler found for URI: {uri}", "no_handler")
            return result
        if not any(compile_pattern(pattern).matches(uri) for pattern in handler.uri_patterns):
            result.add_error(
                "uri", f"URI does not match any pattern of handler {handler.name}", "pattern_mismatch"
            )
        return result


# ==============================================================================
# QUERY PARAMETER VALIDATION
# ==============================================================================


@dataclass(frozen=True, slots=True)
class ParamRule:
    """Declarative constraint on one query parameter."""

    required: bool = False
    pattern: str | None = None
    enum: tuple[str, ...] = ()
    predicate: Callable[[str], bool] | None = None
    description: str = ""


class QueryParamValidator:
    def __init__(self, rules: Mapping[str, ParamRule]) -> None:
        self._rules = dict(rules)
        self._compiled = {
            name: re.compile(rule.pattern) for name, rule in self._rules.items() if rule.pattern
        }

    def validate(self, request: ResourceRequest) -> ValidationResult:
        result = ValidationResult()
        query = request.query_params
        for name, rule in self._rules.items():
            value = query.get(name)
            if value is None:
                if rule.required:
                    result.add_error(
                        name, f"required parameter {name} is missing", "missing_required_param"
                    )
                continue
            compiled = self._compiled.get(name)
            if compiled is not None and not compiled.fullmatch(value):
                result.add_error(
                    name, f"parameter {name} does not match pattern {rule.pattern}", "invalid_pattern"
                )
            elif rule.enum and value not in rule.enum:
                allowed = ", ".join(rule.enum)
                result.add_error(
                    name, f"parameter {name} must be one of: {allowed}", "invalid_enum"
                )
            elif rule.predicate is not None and not rule.predicate(value):
                result.add_error(name, f"invalid value for parameter {name}", "invalid_value")
        return result


DEFAULT_PARAM_RULES: Mapping[str, ParamRule] = {
    "limit": ParamRule(pattern=r"[0-9]+", description="Maximum number of items to return"),
    "offset": ParamRule(pattern=r"[0-9]+", description="Number of items to skip"),
    "page": ParamRule(pattern=r"[0-9]+", description="Page number (1-based)"),
    "filter": ParamRule(description="Filter expression"),
    "sort": ParamRule(description="Sort field"),
    "fields": ParamRule(description="Fields to include"),
    "cache": ParamRule(enum=("true", "false"), description="Whether to use cached results"),
}

# ==============================================================================
# PAYLOAD VALIDATION
# ==============================================================================

PayloadCheck = Callable[[Any], ValidationResult]


class PayloadValidator:
    """Validate request payloads with a per-resource-type check."""

    def __init__(self, checks: Mapping[str, PayloadCheck] | None = None) -> None:
        self._checks = dict(checks or {})

    def register(self, resource_type: str, check: PayloadCheck) -> None:
        self._checks[resource_type] = check

    def validate(self, request: ResourceRequest) -> ValidationResult:
        if request.payload is None:
            return ValidationResult()
        check = self._checks.get(request.resource_type)
        if check is None:
            return ValidationResult()
        return check(request.payload)


def model_schema_validator(model: type[BaseModel]) -> PayloadCheck:
    """Build a payload check from a pydantic model (plus its ``ensure_valid``)."""

    def check(payload: Any) -> ValidationResult:
        result = ValidationResult()
        try:
            instance = payload if isinstance(payload, model) else model.model_validate(payload)
        except ValidationError as exc:
            for error in exc.errors(include_url=False):
                location = ".".join(str(part) for part in error["loc"]) or "payload"
                code = "missing_required_field" if error["type"] == "missing" else "invalid_value"
                result.add_error(location, error["msg"], code)
            return result
        ensure_valid = getattr(instance, "ensure_valid", None)
        if ensure_valid is not None:
            try:
                ensure_valid()
            except ValueError as exc:
                result.add_error("payload", str(exc), "invalid_payload")
        return result

    return check


def default_payload_checks() -> dict[str, PayloadCheck]:
    """Schema checks for the resource types that accept a payload."""
    return {
        "machine": model_schema_validator(MachineContext),
        "tag": model_schema_validator(TagContext),
        "storage-device": model_schema_validator(StorageContext),
        "subnet": model_schema_validator(Subnet),
    }


def build_default_validator(
    registry: HandlerRegistry,
    *,
    param_rules: Mapping[str, ParamRule] | None = None,
    payload_checks: Mapping[str, PayloadCheck] | None = None,
) -> CompositeValidator:
    return CompositeValidator(
        URIValidator(registry),
        QueryParamValidator(param_rules if param_rules is not None else DEFAULT_PARAM_RULES),
        PayloadValidator(
            payload_checks if payload_checks is not None else default_payload_checks()
        ),
    )


__all__ = [
    "CompositeValidator",
    "DEFAULT_PARAM_RULES",
    "ParamRule",
    "PayloadValidator",
    "QueryParamValidator",
    "URIValidator",
    "ValidationIssue",
    "ValidationResult",
    "Validator",
    "build_default_validator",
    "default_payload_checks",
    "model_schema_validator",
]
