from __future__ import annotations

import pytest

from maas_gateway.resources.pagination import (
    PaginationOptions,
    apply_pagination,
    parse_pagination_params,
)
from maas_gateway.utils.errors import GatewayValidationError


def test_page_parameter_maps_to_offset() -> None:
    options = parse_pagination_params({"limit": "10", "page": "3"})
    assert options == PaginationOptions(limit=10, offset=20, page=3)

    result = apply_pagination(list(range(100)), options)
    assert result.items == list(range(20, 30))
    assert result.total_count == 100
    assert result.page_count == 10


def test_defaults_apply_without_parameters() -> None:
    assert parse_pagination_params({}) == PaginationOptions(limit=50, offset=0, page=1)
    assert parse_pagination_params({}, default_limit=5).limit == 5


def test_offset_takes_precedence_over_page() -> None:
    options = parse_pagination_params({"limit": "10", "offset": "25", "page": "7"})
    assert options.offset == 25
    assert options.page == 3


def test_limit_is_capped_at_maximum() -> None:
    assert parse_pagination_params({"limit": "2000"}).limit == 1000
    assert parse_pagination_params({"limit": "20"}, max_limit=10).limit == 10


@pytest.mark.parametrize(
    "query",
    [{"limit": "0"}, {"limit": "-5"}, {"limit": "ten"}, {"offset": "-1"}, {"page": "0"}, {"page": "-2"}],
)
def test_invalid_parameters_are_rejected(query: dict[str, str]) -> None:
    with pytest.raises(GatewayValidationError) as excinfo:
        parse_pagination_params(query)
    assert excinfo.value.code == "invalid_parameter"


def test_last_partial_page() -> None:
    result = apply_pagination(list(range(25)), PaginationOptions(limit=10, offset=20, page=3))
    assert result.items == [20, 21, 22, 23, 24]
    assert result.page_count == 3


def test_offset_beyond_collection_is_rejected() -> None:
    with pytest.raises(GatewayValidationError):
        apply_pagination([1, 2, 3], PaginationOptions(limit=10, offset=3))


def test_empty_collection_yields_single_empty_page() -> None:
    result = apply_pagination([], PaginationOptions(limit=10, offset=0))
    assert result.items == []
    assert result.total_count == 0
    assert result.page_count == 1
