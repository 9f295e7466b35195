# models/requests.py
"""
Request bodies for the ``/api/v1`` endpoints.

Field names follow the camelCase JSON the browser UI posts; the Python side
uses snake_case through ``populate_by_name``.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .content_item import ContentItem


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class UrlRequest(_CamelModel):
    """Body carrying only a seed URL (detect, debug, news-scan, analyze)."""

    url: str


class CrawlExtractRequest(_CamelModel):
    url: str
    selectors: Optional[Dict[str, Any]] = None
    max_pages: Optional[int] = Field(default=None, ge=1)
    recursive: bool = False


class GenerateFeedRequest(_CamelModel):
    url: str
    selectors: Optional[Dict[str, Any]] = None
    feed_title: Optional[str] = None
    max_items: Optional[int] = Field(default=None, ge=1)
    max_pages: Optional[int] = Field(default=None, ge=1)
    recursive: bool = False


class RenderFeedRequest(_CamelModel):
    url: str
    selected_items: List[ContentItem]
    feed_title: Optional[str] = None


class NewsFeedRequest(_CamelModel):
    url: str
    news_items: List[ContentItem]
    feed_title: Optional[str] = None


class RenderMagazineRequest(_CamelModel):
    news_items: List[ContentItem]
    feed_title: Optional[str] = None
    layout: str = "cosmic-universe"
    url: Optional[str] = None
    enrich_images: bool = True

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "newsItems": [
                    {
                        "title": "Example headline",
                        "link": "https://example.com/news/1",
                        "category": "Technology",
                        "importance": "high",
                        "selected": True,
                    }
                ],
                "feedTitle": "Morning Edition",
                "layout": "cosmic-universe",
            }
        }
    )


class PreviewImagesRequest(_CamelModel):
    items: List[ContentItem]
