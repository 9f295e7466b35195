# models/feed.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .content_item import ContentItem


class FeedDocument(BaseModel):
    """The final aggregate handed to a renderer; built once per request."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    title: str
    description: str
    site_url: str
    items: List[ContentItem] = Field(default_factory=list)
    language: str = "en"
    categories: List[str] = Field(default_factory=list)
    ttl: Optional[int] = None
    generator: Optional[str] = None

    def preview(self) -> Dict[str, Any]:
        """Small JSON summary returned next to the rendered XML."""
        payload: Dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "items": [item.to_dict() for item in self.items],
        }
        if self.categories:
            payload["categories"] = list(self.categories)
            payload["totalItems"] = len(self.items)
        return payload
