"""Structured logging for the resource gateway.

Key Responsibilities:
    - Render stdlib records and Structlog events as single line JSON
    - Redact MAAS credentials (API keys, OAuth tokens and signatures) from
      event fields and from query strings embedded in resource URIs
    - Tag every event of a request with its correlation id and, while a
      dispatch runs, the resource URI and handler name

Collaborators:
    - Upstream: :func:`maas_gateway.gateway.app.create_app` calls
      :func:`configure_logging`; the correlation middleware and
      :meth:`HandlerRegistry.dispatch` bind the request context
    - Downstream: ``logging`` and ``structlog``

Side Effects:
    - Replaces the root logging handlers and the global Structlog configuration

Thread Safety:
    - Configure once at startup; the request context lives in a ``ContextVar``
      and is safe for threads and async tasks
"""

# ==============================================================================
# IMPORTS
# ==============================================================================

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar, Token
from types import MappingProxyType
from typing import Any, Callable

import structlog

from maas_gateway.config.settings import LoggingSettings

# ==============================================================================
# REQUEST CONTEXT
# ==============================================================================

_EMPTY_CONTEXT: Mapping[str, str] = MappingProxyType({})
_log_context: ContextVar[Mapping[str, str]] = ContextVar(
    "maas_gateway_log_context", default=_EMPTY_CONTEXT
)

_RECORD_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

Processor = Callable[[Any, str, dict[str, Any]], dict[str, Any]]


def _bind(**values: str) -> Token[Mapping[str, str]]:
    return _log_context.set(MappingProxyType({**_log_context.get(), **values}))


def current_log_context() -> Mapping[str, str]:
    """Fields bound to the current request (correlation id, resource, handler)."""
    return _log_context.get()


def bind_correlation_id(value: str) -> Token[Mapping[str, str]]:
    """Bind a correlation id; pass the returned token to :func:`reset_correlation_id`."""
    return _bind(correlation_id=value)


def reset_correlation_id(token: Token[Mapping[str, str]] | None) -> None:
    if token is not None:
        _log_context.reset(token)


def get_correlation_id() -> str | None:
    return _log_context.get().get("correlation_id")


@contextmanager
def resource_context(uri: str, handler: str) -> Iterator[None]:
    """Tag events emitted inside the block with the resource being served."""
    token = _bind(resource_uri=uri, resource_handler=handler)
    try:
        yield
    finally:
        _log_context.reset(token)


# ==============================================================================
# REDACTION
# ==============================================================================


def redact_uri(uri: str, fields: Iterable[str]) -> str:
    """Mask the values of credential query parameters in ``uri``."""
    path, separator, query = uri.partition("?")
    if not separator:
        return uri
    lowered = {name.lower() for name in fields}
    parts = []
    for part in query.split("&"):
        name, equals, _ = part.partition("=")
        parts.append(f"{name}=***" if equals and name.lower() in lowered else part)
    return f"{path}?{'&'.join(parts)}"


class _Redactor:
    def __init__(self, fields: Iterable[str] | None) -> None:
        self.fields = frozenset(name.lower() for name in fields or ())

    def key(self, name: object) -> bool:
        return str(name).lower() in self.fields

    def value(self, value: object) -> object:
        if isinstance(value, Mapping):
            return {k: "***" if self.key(k) else self.value(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.value(item) for item in value]
        if isinstance(value, str) and "://" in value and "?" in value:
            return redact_uri(value, self.fields)
        return value

    def event(self, fields: dict[str, Any]) -> dict[str, Any]:
        return {k: "***" if self.key(k) else self.value(v) for k, v in fields.items()}


# ==============================================================================
# FORMATTERS AND PROCESSORS
# ==============================================================================


class JsonFormatter(logging.Formatter):
    """Formats log records as single line JSON objects."""

    def __init__(self, *, scrub_fields: Iterable[str] | None = None) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")
        self._redactor = _Redactor(scrub_fields)

    def format(self, record: logging.LogRecord) -> str:
        extra = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRIBUTES}
        payload: dict[str, Any] = {
            **current_log_context(),
            **extra,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "time": self.formatTime(record, self.datefmt),
        }
        payload = self._redactor.event(payload)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, sort_keys=True, default=str)


def build_event_processor(scrub_fields: Iterable[str] | None) -> Processor:
    """Structlog processor adding the request context and redacting credentials."""
    redactor = _Redactor(scrub_fields)

    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        for key, value in current_log_context().items():
            event_dict.setdefault(key, value)
        return redactor.event(event_dict)

    return processor


def _level_value(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    settings: LoggingSettings | None = None,
) -> None:
    """Route stdlib logging and Structlog through the JSON renderers.

    ``settings`` wins over ``level`` and also supplies the fields to redact.
    Pytest capture handlers are kept so ``caplog`` sees the JSON output.
    """
    scrub_fields = LoggingSettings().scrub_fields
    if settings is not None:
        level = settings.level
        scrub_fields = settings.scrub_fields
    level_value = _level_value(level)
    formatter = JsonFormatter(scrub_fields=scrub_fields)

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(formatter)
    captured = [
        handler
        for handler in logging.getLogger().handlers
        if type(handler).__module__.startswith("_pytest.")
    ]
    for handler in captured:
        handler.setFormatter(formatter)
    logging.basicConfig(level=level_value, handlers=[*captured, stream], force=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            build_event_processor(scrub_fields),
            structlog.processors.JSONRenderer(sort_keys=True, default=str),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


__all__ = [
    "JsonFormatter",
    "bind_correlation_id",
    "build_event_processor",
    "configure_logging",
    "current_log_context",
    "get_correlation_id",
    "redact_uri",
    "reset_correlation_id",
    "resource_context",
]
