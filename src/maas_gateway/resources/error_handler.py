"""Translate exceptions into formatted error envelopes and HTTP statuses."""

from __future__ import annotations

import traceback
from enum import Enum

import structlog

from maas_gateway.resources.formatting import FormatterRegistry
from maas_gateway.utils.errors import (
    ErrorKind,
    GatewayError,
    GatewayValidationError,
    InternalError,
    NotFoundError,
    UnsupportedOperationError,
    status_for_kind,
)

logger = structlog.get_logger(__name__)

FALLBACK_ERROR_BODY = b'{"type":"internal_error","message":"Failed to format error response"}'


class ErrorCode(str, Enum):
    INVALID_URI = "invalid_uri"
    INVALID_PARAMETER = "invalid_parameter"
    INVALID_PAYLOAD = "invalid_payload"
    RESOURCE_NOT_FOUND = "resource_not_found"
    UNSUPPORTED_CONTENT_TYPE = "unsupported_content_type"
    UNSUPPORTED_ACCEPT_TYPE = "unsupported_accept_type"
    INTERNAL_ERROR = "internal_error"


_ERROR_CLASS_BY_CODE: dict[ErrorCode, type[GatewayError]] = {
    ErrorCode.INVALID_URI: GatewayValidationError,
    ErrorCode.INVALID_PARAMETER: GatewayValidationError,
    ErrorCode.INVALID_PAYLOAD: GatewayValidationError,
    ErrorCode.RESOURCE_NOT_FOUND: NotFoundError,
    ErrorCode.UNSUPPORTED_CONTENT_TYPE: UnsupportedOperationError,
    ErrorCode.UNSUPPORTED_ACCEPT_TYPE: UnsupportedOperationError,
    ErrorCode.INTERNAL_ERROR: InternalError,
}


def new_resource_error(
    code: ErrorCode, message: str, cause: BaseException | None = None
) -> GatewayError:
    """Create the gateway error matching ``code``."""
    error_class = _ERROR_CLASS_BY_CODE.get(code, InternalError)
    return error_class(message, code=code.value, cause=cause)


def wrap_error(error: BaseException, message: str) -> GatewayError:
    """Add context to ``error`` while keeping its kind and code."""
    if isinstance(error, GatewayError):
        return type(error)(
            message, code=error.code, details=error.details, cause=error, kind=error.kind
        )
    return InternalError(message, code=ErrorCode.INTERNAL_ERROR.value, cause=error)


def status_for_error(error: BaseException) -> int:
    if isinstance(error, GatewayError):
        return status_for_kind(error.kind)
    return status_for_kind(ErrorKind.INTERNAL)


class ErrorHandler:
    """Log, classify and serialise errors in the negotiated content type."""

    def __init__(self, formatters: FormatterRegistry, *, include_stack_trace: bool = False) -> None:
        self._formatters = formatters
        self.include_stack_trace = include_stack_trace

    def handle_error(self, error: BaseException, accept: str | None = None) -> tuple[bytes, str, int]:
        """Return ``(body, content_type, status)`` for ``error``.

        A failure while formatting degrades to a fixed JSON body with status 500.
        """
        status = status_for_error(error)
        log = logger.warning if status < 500 else logger.error
        log(
            "resources.error",
            error=str(error),
            error_type=type(error).__name__,
            status=status,
        )
        try:
            target = self._with_stack_trace(error) if self.include_stack_trace else error
            body, content_type = self._formatters.format_error(target, accept)
        except Exception as exc:
            logger.error("resources.error.format_failed", error=str(exc))
            return FALLBACK_ERROR_BODY, "application/json", 500
        return body, content_type, status

    @staticmethod
    def _with_stack_trace(error: BaseException) -> BaseException:
        trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        if isinstance(error, GatewayError):
            enriched = type(error)(
                error.message,
                code=error.code,
                details={**error.details, "stack_trace": trace},
                cause=error.cause,
                kind=error.kind,
            )
            return enriched
        return InternalError(
            str(error) or type(error).__name__,
            code="unknown_error",
            details={"stack_trace": trace},
        )


__all__ = [
    "ErrorCode",
    "ErrorHandler",
    "FALLBACK_ERROR_BODY",
    "new_resource_error",
    "status_for_error",
    "wrap_error",
]
