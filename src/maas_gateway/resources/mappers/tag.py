"""Tag mapper; the backend ``comment`` carries the client-side category."""

from __future__ import annotations

from maas_gateway.models.context import TagContext
from maas_gateway.models.maas import Tag
from maas_gateway.resources.mappers.base import BaseResourceMapper

DEFAULT_TAG_CATEGORY = "general"
DEFAULT_TAG_COLOR = "#808080"


class TagMapper(BaseResourceMapper):
    name = "tag"
    backend_model = Tag
    context_model = TagContext

    def _to_context(self, tag: Tag) -> TagContext:
        return TagContext(
            name=tag.name,
            description=tag.description,
            color=DEFAULT_TAG_COLOR,
            category=tag.comment or DEFAULT_TAG_CATEGORY,
        )

    def _to_backend(self, context: TagContext) -> Tag:
        return Tag(name=context.name, description=context.description, comment=context.category)


__all__ = ["DEFAULT_TAG_CATEGORY", "DEFAULT_TAG_COLOR", "TagMapper"]
