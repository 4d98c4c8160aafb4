from __future__ import annotations

import pytest

from maas_gateway.models.context import TagContext
from maas_gateway.resources.models import ResourceRequest
from maas_gateway.resources.validation import (
    CompositeValidator,
    DEFAULT_PARAM_RULES,
    ParamRule,
    PayloadValidator,
    QueryParamValidator,
    URIValidator,
    ValidationResult,
    model_schema_validator,
)


@pytest.mark.parametrize(
    "uri, code",
    [
        ("", "empty_uri"),
        ("machine/abc123", "invalid_uri_format"),
        ("maas://", "invalid_uri"),
        ("maas://switch/1", "no_handler"),
    ],
)
def test_uri_validator_reports_each_failure(service, uri: str, code: str) -> None:
    result = URIValidator(service.registry).validate(ResourceRequest(uri=uri))
    assert not result.valid
    assert [issue.code for issue in result.errors] == [code]


def test_uri_validator_accepts_served_uri(service) -> None:
    result = URIValidator(service.registry).validate(ResourceRequest(uri="maas://machine/abc123"))
    assert result.valid


def test_query_validator_checks_pattern_enum_and_required() -> None:
    rules = {
        **DEFAULT_PARAM_RULES,
        "zone": ParamRule(required=True),
        "owner": ParamRule(predicate=lambda value: value.islower()),
    }
    request = ResourceRequest(
        uri="maas://machines",
        query_params={"limit": "ten", "cache": "maybe", "owner": "Admin"},
    )
    result = QueryParamValidator(rules).validate(request)
    assert {(issue.field, issue.code) for issue in result.errors} == {
        ("limit", "invalid_pattern"),
        ("cache", "invalid_enum"),
        ("zone", "missing_required_param"),
        ("owner", "invalid_value"),
    }


def test_composite_validator_collects_all_issues(service) -> None:
    validator = CompositeValidator(
        URIValidator(service.registry), QueryParamValidator(DEFAULT_PARAM_RULES)
    )
    request = ResourceRequest(uri="maas://switch/1", query_params={"offset": "-1"})
    result = validator.validate(request)
    assert [issue.code for issue in result.errors] == ["no_handler", "invalid_pattern"]

    error = result.to_error()
    assert error.code == "validation_failed"
    assert error.status == 400
    assert len(error.details["errors"]) == 2
    assert "; " in error.message


def test_single_issue_keeps_its_code() -> None:
    result = ValidationResult()
    result.add_error("limit", "bad limit", "invalid_pattern")
    error = result.to_error()
    assert error.code == "invalid_pattern"
    assert error.message == "limit: bad limit"


def test_payload_validator_runs_check_for_resource_type() -> None:
    validator = PayloadValidator()
    validator.register("tag", model_schema_validator(TagContext))

    bad = validator.validate(ResourceRequest(uri="maas://tag/x", payload={"name": "bad tag"}))
    assert [issue.code for issue in bad.errors] == ["invalid_payload"]

    typed = validator.validate(ResourceRequest(uri="maas://tag/x", payload={"name": ["x"]}))
    assert [issue.field for issue in typed.errors] == ["name"]

    assert validator.validate(ResourceRequest(uri="maas://tag/x", payload={"name": "ok"})).valid
    assert validator.validate(ResourceRequest(uri="maas://machine/x", payload={"x": 1})).valid
    assert validator.validate(ResourceRequest(uri="maas://tag/x")).valid
