"""Gateway error taxonomy.

Key Responsibilities:
    - Define the error kinds raised across the resource pipeline together with
      the single kind to HTTP status mapping
    - Carry a machine readable code and structured details for error envelopes

Collaborators:
    - Upstream: URI router, filter engine, pagination, mappers, validators and
      handlers raise the subclasses defined here
    - Downstream: :mod:`maas_gateway.resources.error_handler` turns them into
      formatted error envelopes

Thread Safety:
    - Thread-safe; instances are not shared between requests
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

# ==============================================================================
# TYPE DEFINITIONS
# ==============================================================================


class ErrorKind(str, Enum):
    """Classification shared by every error raised inside the gateway."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    UNSUPPORTED_OPERATION = "unsupported_operation"
    MAPPING = "mapping"
    CONFLICT = "conflict"
    INTERNAL = "internal"


_STATUS_BY_KIND: Mapping[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNSUPPORTED_OPERATION: 405,
    ErrorKind.CONFLICT: 409,
    ErrorKind.MAPPING: 422,
    ErrorKind.INTERNAL: 500,
}


def status_for_kind(kind: ErrorKind | str) -> int:
    """Return the HTTP status associated with an error kind (500 when unknown)."""
    try:
        return _STATUS_BY_KIND[ErrorKind(kind)]
    except ValueError:
        return 500


# ==============================================================================
# EXCEPTIONS
# ==============================================================================


class GatewayError(RuntimeError):
    """Error raised by the resource pipeline.

    Attributes:
        kind: Classification used to pick the response status.
        status: HTTP status derived from ``kind``.
        code: Optional machine readable code (``invalid_uri``, ...).
        details: Additional structured context serialised into responses.
        cause: Underlying exception, also available as ``__cause__`` when
            raised with ``raise ... from``.
    """

    kind: ErrorKind = ErrorKind.INTERNAL
    default_code: str | None = None

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: Mapping[str, Any] | None = None,
        cause: BaseException | None = None,
        kind: ErrorKind | None = None,
    ) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.message = message
        self.status = status_for_kind(self.kind)
        self.code = code or self.default_code
        self.details: dict[str, Any] = dict(details or {})
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class GatewayValidationError(GatewayError):
    kind = ErrorKind.VALIDATION


class NotFoundError(GatewayError):
    kind = ErrorKind.NOT_FOUND
    default_code = "resource_not_found"


class UnauthorizedError(GatewayError):
    kind = ErrorKind.UNAUTHORIZED


class ForbiddenError(GatewayError):
    kind = ErrorKind.FORBIDDEN


class UnsupportedOperationError(GatewayError):
    kind = ErrorKind.UNSUPPORTED_OPERATION


class MappingError(GatewayError):
    kind = ErrorKind.MAPPING


class ConflictError(GatewayError):
    kind = ErrorKind.CONFLICT


class InternalError(GatewayError):
    kind = ErrorKind.INTERNAL


__all__ = [
    "ConflictError",
    "ErrorKind",
    "ForbiddenError",
    "GatewayError",
    "GatewayValidationError",
    "InternalError",
    "MappingError",
    "NotFoundError",
    "UnauthorizedError",
    "UnsupportedOperationError",
    "status_for_kind",
]
