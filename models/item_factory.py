# models/item_factory.py
from __future__ import annotations

from typing import Any, Mapping

from .content_item import ContentItem


def item_from_mapping(data: Mapping[str, Any]) -> ContentItem:
    """
    Build a :class:`models.content_item.ContentItem` from a loose ``dict``.

    Keys that are neither field names nor their camelCase aliases are
    dropped, so stray keys in an LLM response never reach validation.

    Example
    -------
    >>> item = item_from_mapping({"title": "Hello", "link": "https://a.io/x", "extra": 1})
    >>> item.link
    'https://a.io/x'
    """
    allowed = set()
    for name, field in ContentItem.model_fields.items():
        allowed.add(name)
        if field.alias:
            allowed.add(field.alias)
    filtered = {k: v for k, v in data.items() if k in allowed}
    return ContentItem(**filtered)
