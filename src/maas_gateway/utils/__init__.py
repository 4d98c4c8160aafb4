"""Shared utilities: error taxonomy and logging configuration."""

from .errors import (
    ConflictError,
    ErrorKind,
    GatewayError,
    GatewayValidationError,
    InternalError,
    MappingError,
    NotFoundError,
    UnsupportedOperationError,
)

__all__ = [
    "ConflictError",
    "ErrorKind",
    "GatewayError",
    "GatewayValidationError",
    "InternalError",
    "MappingError",
    "NotFoundError",
    "UnsupportedOperationError",
]
