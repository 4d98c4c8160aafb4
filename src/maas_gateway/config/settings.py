"""Configuration system for the resource gateway."""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from enum import Enum
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environments supported by the gateway."""

    DEV = "dev"
    STAGING = "staging"
    PROD = "prod"


class LoggingSettings(BaseModel):
    """Structured logging configuration."""

    level: str = Field(default="INFO", description="Log level for application output")
    correlation_id_header: str = Field(
        default="X-Correlation-ID", description="Header used for trace correlation"
    )
    scrub_fields: Sequence[str] = Field(
        default_factory=lambda: [
            "password",
            "token",
            "secret",
            "authorization",
            "api_key",
            "oauth_token",
            "oauth_signature",
            "oauth_consumer_key",
        ],
        description="Fields and URI query parameters redacted in logs",
    )


class MetricsSettings(BaseModel):
    """Prometheus metrics configuration."""

    enabled: bool = True
    path: str = Field(default="/metrics", description="HTTP path for Prometheus metrics")


class CacheSettings(BaseModel):
    """In-memory resource cache configuration."""

    enabled: bool = True
    default_ttl_seconds: float = Field(default=300.0, gt=0)
    max_entries: int = Field(default=1000, ge=1)
    sweep_interval_seconds: float = Field(default=60.0, gt=0)
    bypass_flag: str = Field(default="no-cache", min_length=1)


class PaginationSettings(BaseModel):
    """Limits applied to collection responses."""

    default_limit: int = Field(default=50, ge=1)
    max_limit: int = Field(default=1000, ge=1)

    @model_validator(mode="after")
    def _validate_limits(self) -> PaginationSettings:
        if self.default_limit > self.max_limit:
            raise ValueError("default_limit must not exceed max_limit")
        return self


class ResourceSettings(BaseModel):
    """Resource pipeline behaviour."""

    scheme: str = Field(default="maas", pattern=r"^[a-z][a-z0-9+.-]*$")
    default_accept_type: str = "application/json"
    pretty_print: bool = False


class AppSettings(BaseSettings):
    """Top-level application settings."""

    environment: Environment = Environment.PROD
    debug: bool = Field(default=False, description="Attach stack traces to error envelopes")
    service_name: str = "maas-gateway"
    resources: ResourceSettings = Field(default_factory=ResourceSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    pagination: PaginationSettings = Field(default_factory=PaginationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)

    model_config = SettingsConfigDict(env_prefix="MG_", env_nested_delimiter="__")


ENVIRONMENT_DEFAULTS: Mapping[Environment, dict[str, Any]] = {
    Environment.DEV: {
        "debug": True,
        "resources": {"pretty_print": True},
        "logging": {"level": "DEBUG"},
    },
    Environment.STAGING: {
        "cache": {"default_ttl_seconds": 120.0},
    },
    Environment.PROD: {
        "cache": {"max_entries": 5000},
        "logging": {"level": "WARNING"},
    },
}


def _deep_update(target: dict[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in updates.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            target[key] = _deep_update(dict(current), value)
        else:
            target[key] = value
    return target


def load_settings(environment: str | None = None) -> AppSettings:
    """Load application settings with environment specific defaults applied.

    Environment variables win over the presets: the preset is merged first and
    the values explicitly provided through ``MG_*`` are layered on top.
    """
    env_value = (environment or os.getenv("MG_ENV", Environment.PROD.value)).lower()
    env = Environment(env_value)
    defaults = ENVIRONMENT_DEFAULTS.get(env, {})
    try:
        base_settings = AppSettings()
    except ValidationError as err:
        raise RuntimeError(f"Invalid configuration: {err}") from err
    explicit = base_settings.model_dump(exclude_unset=True)
    merged = _deep_update(AppSettings.model_construct().model_dump(), defaults)
    merged = _deep_update(merged, explicit)
    merged["environment"] = env
    return AppSettings.model_validate(merged)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Cached accessor used by production code."""
    return load_settings()


__all__ = [
    "AppSettings",
    "CacheSettings",
    "ENVIRONMENT_DEFAULTS",
    "Environment",
    "LoggingSettings",
    "MetricsSettings",
    "PaginationSettings",
    "ResourceSettings",
    "get_settings",
    "load_settings",
]
