from __future__ import annotations

import json

import pytest

from maas_gateway.resources.error_handler import (
    FALLBACK_ERROR_BODY,
    ErrorCode,
    ErrorHandler,
    new_resource_error,
    status_for_error,
    wrap_error,
)
from maas_gateway.resources.formatting import FormatterRegistry
from maas_gateway.utils.errors import (
    GatewayValidationError,
    InternalError,
    MappingError,
    NotFoundError,
    UnsupportedOperationError,
)


class BrokenFormatter:
    content_type = "application/json"

    def format(self, response):
        raise RuntimeError("cannot format")

    def format_error(self, error):
        raise RuntimeError("cannot format")


@pytest.fixture
def handler() -> ErrorHandler:
    return ErrorHandler(FormatterRegistry())


@pytest.mark.parametrize(
    "error, status",
    [
        (GatewayValidationError("bad"), 400),
        (NotFoundError("missing"), 404),
        (UnsupportedOperationError("nope"), 405),
        (MappingError("broken"), 422),
        (InternalError("boom"), 500),
        (RuntimeError("boom"), 500),
    ],
)
def test_status_follows_error_kind(error: Exception, status: int) -> None:
    assert status_for_error(error) == status


def test_not_found_is_rendered_as_json(handler: ErrorHandler) -> None:
    body, content_type, status = handler.handle_error(NotFoundError("machine 'x' not found"))
    payload = json.loads(body)
    assert status == 404
    assert content_type == "application/json"
    assert payload == {
        "type": "not_found",
        "message": "machine 'x' not found",
        "code": "resource_not_found",
    }


def test_errors_follow_the_accept_header(handler: ErrorHandler) -> None:
    body, content_type, status = handler.handle_error(GatewayValidationError("bad"), "application/xml")
    assert content_type == "application/xml"
    assert status == 400
    assert b"<type>validation</type>" in body


def test_unexpected_exceptions_become_internal_errors(handler: ErrorHandler) -> None:
    body, _, status = handler.handle_error(ZeroDivisionError("division by zero"))
    payload = json.loads(body)
    assert status == 500
    assert payload["type"] == "internal"
    assert payload["code"] == "unknown_error"


def test_stack_trace_is_included_when_enabled() -> None:
    handler = ErrorHandler(FormatterRegistry(), include_stack_trace=True)
    try:
        raise NotFoundError("gone", details={"id": "x"})
    except NotFoundError as exc:
        body, _, status = handler.handle_error(exc)
    payload = json.loads(body)
    assert status == 404
    assert payload["details"]["id"] == "x"
    assert "Traceback" in payload["details"]["stack_trace"]


def test_formatting_failure_falls_back_to_fixed_body() -> None:
    formatters = FormatterRegistry()
    formatters.register("application/json", BrokenFormatter())
    body, content_type, status = ErrorHandler(formatters).handle_error(NotFoundError("x"))
    assert (body, content_type, status) == (FALLBACK_ERROR_BODY, "application/json", 500)


def test_new_resource_error_maps_codes_to_kinds() -> None:
    error = new_resource_error(ErrorCode.RESOURCE_NOT_FOUND, "machine not found")
    assert isinstance(error, NotFoundError)
    assert error.code == "resource_not_found"
    assert new_resource_error(ErrorCode.UNSUPPORTED_ACCEPT_TYPE, "no").status == 405
    assert new_resource_error(ErrorCode.INVALID_PARAMETER, "bad").status == 400


def test_wrap_error_keeps_kind_and_code() -> None:
    original = GatewayValidationError("bad limit", code="invalid_parameter")
    wrapped = wrap_error(original, "while listing machines")
    assert isinstance(wrapped, GatewayValidationError)
    assert wrapped.code == "invalid_parameter"
    assert wrapped.cause is original
    assert str(wrapped) == "while listing machines: bad limit"

    internal = wrap_error(KeyError("k"), "lookup failed")
    assert isinstance(internal, InternalError)
    assert internal.code == "internal_error"
