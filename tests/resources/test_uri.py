from __future__ import annotations

import pytest

from maas_gateway.resources.uri import (
    URIMismatchError,
    compile_pattern,
    expand_pattern,
    extract_parameters,
    match_uri,
    parse_uri,
    validate_uri,
)
from maas_gateway.utils.errors import GatewayValidationError

POWER_PATTERN = "maas://machine/{system_id}/power/{action:on|off}"


def test_parse_uri_splits_components_and_query() -> None:
    components = parse_uri("maas://machine/abc123/interfaces/eth0?limit=10&limit=20&no-cache")
    assert components.scheme == "maas"
    assert components.resource_type == "machine"
    assert components.resource_id == "abc123"
    assert components.sub_resource_type == "interfaces"
    assert components.sub_resource_id == "eth0"
    assert components.query_params == {"limit": "10", "no-cache": ""}
    assert components.path == "maas://machine/abc123/interfaces/eth0"


def test_parse_uri_rejects_missing_scheme() -> None:
    with pytest.raises(GatewayValidationError) as excinfo:
        parse_uri("machine/abc123")
    assert excinfo.value.code == "invalid_uri_format"


def test_parse_uri_rejects_missing_resource_type() -> None:
    with pytest.raises(GatewayValidationError):
        parse_uri("maas://")


def test_extract_parameters_reads_optional_and_enumerated_placeholders() -> None:
    parameters = extract_parameters("maas://x/{a}/{b?}/{c:on|off}/{d?:x|y}")
    assert [(p.name, p.optional, p.values) for p in parameters] == [
        ("a", False, ()),
        ("b", True, ()),
        ("c", False, ("on", "off")),
        ("d", True, ("x", "y")),
    ]


def test_extract_parameters_rejects_duplicates() -> None:
    with pytest.raises(GatewayValidationError):
        extract_parameters("maas://machine/{id}/{id}")


def test_enumerated_parameter_matches_declared_values() -> None:
    assert match_uri("maas://machine/abc123/power/on", POWER_PATTERN) == {
        "system_id": "abc123",
        "action": "on",
    }


def test_enumerated_parameter_rejects_other_values() -> None:
    with pytest.raises(URIMismatchError) as excinfo:
        match_uri("maas://machine/abc123/power/restart", POWER_PATTERN)
    assert excinfo.value.status == 400
    assert excinfo.value.code == "pattern_mismatch"


def test_optional_parameter_makes_trailing_segment_optional() -> None:
    pattern = "maas://machine/{system_id}/storage/{device_id?}"
    assert match_uri("maas://machine/abc/storage", pattern) == {"system_id": "abc", "device_id": ""}
    assert match_uri("maas://machine/abc/storage/sda", pattern) == {
        "system_id": "abc",
        "device_id": "sda",
    }


def test_match_ignores_query_string() -> None:
    assert match_uri("maas://machine/abc?filter=x", "maas://machine/{system_id}") == {
        "system_id": "abc"
    }


def test_literal_text_is_escaped() -> None:
    compiled = compile_pattern("maas://a.b/{id}")
    assert compiled.matches("maas://a.b/1")
    assert not compiled.matches("maas://axb/1")


def test_required_parameter_does_not_span_segments() -> None:
    assert not validate_uri("maas://machine/abc/power", "maas://machine/{system_id}")
    assert validate_uri("maas://machine/abc", "maas://machine/{system_id}")


def test_compiled_groups_cover_declared_parameters() -> None:
    compiled = compile_pattern(POWER_PATTERN)
    assert set(compiled.parameter_names) <= set(compiled.regex.groupindex)


@pytest.mark.parametrize(
    "pattern, uri",
    [
        (POWER_PATTERN, "maas://machine/abc123/power/off"),
        ("maas://machine/{system_id}/interfaces/{interface_id?}", "maas://machine/x/interfaces"),
        ("maas://storage-device/{device_id}/{aspect?:partitions|filesystem}", "maas://storage-device/3/filesystem"),
    ],
)
def test_matched_parameters_reproduce_the_uri(pattern: str, uri: str) -> None:
    parameters = match_uri(uri, pattern)
    assert set(parameters) == {p.name for p in extract_parameters(pattern)}
    rebuilt = expand_pattern(pattern, parameters)
    original, again = parse_uri(uri), parse_uri(rebuilt)
    assert (again.resource_type, again.resource_id, again.sub_resource_type, again.sub_resource_id) == (
        original.resource_type,
        original.resource_id,
        original.sub_resource_type,
        original.sub_resource_id,
    )


def test_expand_pattern_validates_values() -> None:
    with pytest.raises(GatewayValidationError):
        expand_pattern(POWER_PATTERN, {"system_id": "abc"})
    with pytest.raises(GatewayValidationError):
        expand_pattern(POWER_PATTERN, {"system_id": "abc", "action": "restart"})
