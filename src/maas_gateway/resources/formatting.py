"""Content-negotiated serialisation of response and error envelopes.

Key Responsibilities:
    - Serialise :class:`~maas_gateway.resources.models.ResourceResponse`
      envelopes and errors as JSON or XML
    - Normalise requested content types and resolve them to a formatter,
      falling back to JSON

Collaborators:
    - Upstream: :class:`~maas_gateway.resources.error_handler.ErrorHandler` and
      :class:`~maas_gateway.resources.service.ResourceService`
    - Downstream: ``json`` and ``xml.etree.ElementTree``; pydantic models are
      dumped with their serialisation aliases

Thread Safety:
    - Formatters are stateless; register formatters before serving requests
"""

from __future__ import annotations

import json
import re
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from dataclasses import asdict, dataclass, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel

from maas_gateway.resources.models import ResourceResponse
from maas_gateway.utils.errors import GatewayError, InternalError

JSON_CONTENT_TYPE = "application/json"
XML_CONTENT_TYPE = "application/xml"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

# ==============================================================================
# DATA MODELS
# ==============================================================================


@dataclass(slots=True)
class ErrorResponse:
    """Serialisable error envelope ``{type, message, code?, details?}``."""

    type: str
    message: str
    code: str | None = None
    details: dict[str, Any] | None = None

    @classmethod
    def from_exception(cls, error: BaseException) -> ErrorResponse:
        if isinstance(error, GatewayError):
            return cls(
                type=error.kind.value,
                message=str(error),
                code=error.code,
                details=dict(error.details) or None,
            )
        return cls(
            type="internal",
            message=str(error) or type(error).__name__,
            code="unknown_error",
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type, "message": self.message}
        if self.code:
            payload["code"] = self.code
        if self.details:
            payload["details"] = self.details
        return payload


def to_primitive(value: Any) -> Any:
    """Convert models, dataclasses and containers into JSON-compatible values."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, ResourceResponse):
        return to_primitive(value.to_dict())
    if is_dataclass(value) and not isinstance(value, type):
        return to_primitive(asdict(value))
    if isinstance(value, Mapping):
        return {str(key): to_primitive(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_primitive(item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


class ResponseFormatter(Protocol):
    content_type: str

    def format(self, response: ResourceResponse) -> tuple[bytes, str]: ...

    def format_error(self, error: BaseException) -> tuple[bytes, str]: ...


# ==============================================================================
# JSON
# ==============================================================================


class JSONFormatter:
    content_type = JSON_CONTENT_TYPE

    def __init__(self, *, pretty: bool = False) -> None:
        self.pretty = pretty

    def _dumps(self, payload: Any) -> bytes:
        try:
            if self.pretty:
                text = json.dumps(payload, indent=2)
            else:
                text = json.dumps(payload, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise InternalError("failed to marshal response", code="internal_error", cause=exc) from exc
        return text.encode("utf-8")

    def format(self, response: ResourceResponse) -> tuple[bytes, str]:
        return self._dumps(to_primitive(response)), self.content_type

    def format_error(self, error: BaseException) -> tuple[bytes, str]:
        payload = to_primitive(ErrorResponse.from_exception(error).to_dict())
        return self._dumps(payload), self.content_type


# ==============================================================================
# XML
# ==============================================================================

_INVALID_TAG_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def _tag(name: str) -> str:
    tag = _INVALID_TAG_CHARS.sub("_", name) or "_"
    if not (tag[0].isalpha() or tag[0] == "_") or tag.lower().startswith("xml"):
        tag = f"_{tag}"
    return tag


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _append(parent: ET.Element, name: str, value: Any) -> ET.Element:
    element = ET.SubElement(parent, _tag(name))
    if isinstance(value, Mapping):
        for key, item in value.items():
            _append(element, str(key), item)
    elif isinstance(value, list):
        for item in value:
            _append(element, "item", item)
    elif value is not None:
        element.text = _scalar_text(value)
    return element


class XMLFormatter:
    content_type = XML_CONTENT_TYPE

    def __init__(self, *, pretty: bool = False) -> None:
        self.pretty = pretty

    def _serialise(self, root: ET.Element) -> bytes:
        if self.pretty:
            ET.indent(root)
        try:
            text = ET.tostring(root, encoding="unicode")
        except (TypeError, ValueError) as exc:
            raise InternalError("failed to marshal response", code="internal_error", cause=exc) from exc
        return (XML_DECLARATION + text).encode("utf-8")

    def format(self, response: ResourceResponse) -> tuple[bytes, str]:
        payload = to_primitive(response)
        root = ET.Element("response")
        _append(root, "data", payload.get("data"))
        if "metadata" in payload:
            _append(root, "metadata", payload["metadata"])
        if "links" in payload:
            links = ET.SubElement(root, "links")
            for rel, href in payload["links"].items():
                link = ET.SubElement(links, "link", rel=rel)
                link.text = href
        if "pagination" in payload:
            _append(root, "pagination", payload["pagination"])
        _append(root, "timestamp", payload["timestamp"])
        return self._serialise(root), self.content_type

    def format_error(self, error: BaseException) -> tuple[bytes, str]:
        payload = to_primitive(ErrorResponse.from_exception(error).to_dict())
        root = ET.Element("error")
        for key, value in payload.items():
            _append(root, key, value)
        return self._serialise(root), self.content_type


# ==============================================================================
# REGISTRY
# ==============================================================================


def normalize_content_type(content_type: str) -> str:
    """Strip parameters and fold structured suffixes (``+json``/``+xml``)."""
    media = content_type.split(";", 1)[0].strip().lower()
    if media.endswith("+json"):
        return JSON_CONTENT_TYPE
    if media.endswith("+xml"):
        return XML_CONTENT_TYPE
    return media


def _accept_candidates(accept: str) -> list[str]:
    weighted: list[tuple[float, int, str]] = []
    for index, part in enumerate(accept.split(",")):
        media = normalize_content_type(part)
        if not media:
            continue
        quality = 1.0
        for param in part.split(";")[1:]:
            key, _, value = param.strip().partition("=")
            if key.strip() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if quality > 0:
            weighted.append((-quality, index, media))
    return [media for _, _, media in sorted(weighted)]


class FormatterRegistry:
    """Resolve requested content types to formatters (JSON by default)."""

    def __init__(self, *, pretty: bool = False, default_content_type: str = JSON_CONTENT_TYPE) -> None:
        self._formatters: dict[str, ResponseFormatter] = {}
        xml_formatter = XMLFormatter(pretty=pretty)
        self.register(JSON_CONTENT_TYPE, JSONFormatter(pretty=pretty))
        self.register(XML_CONTENT_TYPE, xml_formatter)
        self.register("text/xml", xml_formatter)
        self.default_content_type = normalize_content_type(default_content_type)

    def register(self, content_type: str, formatter: ResponseFormatter) -> None:
        self._formatters[normalize_content_type(content_type)] = formatter

    def content_types(self) -> list[str]:
        return sorted(self._formatters)

    def get_formatter(self, accept: str | None) -> ResponseFormatter:
        for media in _accept_candidates(accept or ""):
            formatter = self._formatters.get(media)
            if formatter is not None:
                return formatter
            for registered, candidate in self._formatters.items():
                if media.startswith(registered):
                    return candidate
        return self._formatters.get(self.default_content_type) or self._formatters[JSON_CONTENT_TYPE]

    def format_response(self, response: ResourceResponse, accept: str | None = None) -> tuple[bytes, str]:
        return self.get_formatter(accept).format(response)

    def format_error(self, error: BaseException, accept: str | None = None) -> tuple[bytes, str]:
        return self.get_formatter(accept).format_error(error)


__all__ = [
    "ErrorResponse",
    "FormatterRegistry",
    "JSONFormatter",
    "JSON_CONTENT_TYPE",
    "ResponseFormatter",
    "XMLFormatter",
    "XML_CONTENT_TYPE",
    "normalize_content_type",
    "to_primitive",
]
