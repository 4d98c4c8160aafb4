"""Tests covering the application settings schema and environment presets."""

import pytest
from pydantic import ValidationError

from maas_gateway.config.settings import (
    ENVIRONMENT_DEFAULTS,
    AppSettings,
    Environment,
    PaginationSettings,
    load_settings,
)


def test_defaults_match_resource_pipeline_constants() -> None:
    settings = AppSettings()
    assert settings.cache.default_ttl_seconds == 300.0
    assert settings.cache.max_entries == 1000
    assert settings.cache.sweep_interval_seconds == 60.0
    assert settings.cache.bypass_flag == "no-cache"
    assert settings.pagination.default_limit == 50
    assert settings.pagination.max_limit == 1000


def test_environment_enum_covers_supported_values() -> None:
    assert {env.value for env in Environment} == {"dev", "staging", "prod"}


def test_dev_preset_enables_debug() -> None:
    settings = load_settings("dev")
    assert settings.environment is Environment.DEV
    assert settings.debug is True
    assert settings.resources.pretty_print is True
    assert ENVIRONMENT_DEFAULTS[Environment.PROD]["logging"]["level"] == "WARNING"


def test_environment_variables_override_presets(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MG_DEBUG", "false")
    monkeypatch.setenv("MG_CACHE__DEFAULT_TTL_SECONDS", "30")
    settings = load_settings("dev")
    assert settings.debug is False
    assert settings.cache.default_ttl_seconds == 30.0
    assert settings.resources.pretty_print is True


def test_pagination_default_cannot_exceed_maximum() -> None:
    with pytest.raises(ValidationError):
        PaginationSettings(default_limit=500, max_limit=100)


def test_unset_environment_defaults_to_prod_without_debug(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MG_ENV", raising=False)
    settings = load_settings()
    assert settings.environment is Environment.PROD
    assert settings.debug is False
    assert AppSettings().environment is Environment.PROD
