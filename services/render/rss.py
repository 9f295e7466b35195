# services/render/rss.py
"""
RSS 2.0 rendering with ``feedgen``.

News feeds carry four extra per-item elements in their own namespace
(``news:importance``, ``news:source``, ``news:rank``, ``news:confidence``)
through a small feedgen extension.
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from feedgen.ext.base import BaseEntryExtension, BaseExtension
from feedgen.feed import FeedGenerator
from feedgen.util import xml_elem

from models.content_item import ContentItem
from models.feed import FeedDocument

NEWS_NS = "http://site2feed.dev/rss/news/1.0"
NEWS_FEED_TTL = 60
NEWS_GENERATOR = "site2feed news scanner"


class NewsExtension(BaseExtension):
    """Declares the ``news`` namespace on the channel."""

    def extend_ns(self):
        return {"news": NEWS_NS}


class NewsEntryExtension(BaseEntryExtension):
    """Per-item news metadata."""

    def __init__(self):
        self.__importance = None
        self.__source = None
        self.__rank = None
        self.__confidence = None

    def extend_rss(self, entry):
        for name, value in (
            ("importance", self.__importance),
            ("source", self.__source),
            ("rank", self.__rank),
            ("confidence", self.__confidence),
        ):
            if value is not None:
                xml_elem("{%s}%s" % (NEWS_NS, name), entry).text = str(value)
        return entry

    def importance(self, value=None):
        if value is not None:
            self.__importance = value
        return self.__importance

    def source(self, value=None):
        if value is not None:
            self.__source = value
        return self.__source

    def rank(self, value=None):
        if value is not None:
            self.__rank = value
        return self.__rank

    def confidence(self, value=None):
        if value is not None:
            self.__confidence = value
        return self.__confidence


def selected_items(items: Iterable[ContentItem]) -> List[ContentItem]:
    return [item for item in items if item.selected]


def unique_categories(items: Iterable[ContentItem]) -> List[str]:
    seen: List[str] = []
    for item in items:
        if item.category and item.category not in seen:
            seen.append(item.category)
    return seen


def build_feed_document(url: str, items: List[ContentItem], feed_title: Optional[str] = None) -> FeedDocument:
    return FeedDocument(
        title=feed_title or "Custom RSS Feed",
        description=f"RSS feed generated from {url}",
        site_url=url,
        items=items,
    )


def build_news_document(url: str, items: List[ContentItem], feed_title: Optional[str] = None) -> FeedDocument:
    host = urlparse(url).hostname or url
    return FeedDocument(
        title=feed_title or f"News Feed from {host}",
        description=f"Top news stories extracted from {url}",
        site_url=url,
        items=items,
        categories=unique_categories(items),
        ttl=NEWS_FEED_TTL,
        generator=NEWS_GENERATOR,
    )


def render_rss(doc: FeedDocument, feed_url: str, generated_at: Optional[datetime] = None) -> str:
    """
    Serialize ``doc`` as RSS 2.0.

    Every item's ``pubDate`` is the generation time; the source pages carry
    no reliable publication dates.
    """
    now = generated_at or datetime.now(timezone.utc)
    news = bool(doc.categories) or doc.ttl is not None

    fg = FeedGenerator()
    if news:
        fg.register_extension("news", NewsExtension, NewsEntryExtension, atom=False, rss=True)
    fg.title(doc.title)
    fg.description(doc.description or doc.title)
    # feedgen takes the channel <link> from the last link() call.
    fg.link(href=feed_url, rel="self")
    fg.link(href=doc.site_url, rel="alternate")
    fg.language(doc.language)
    fg.lastBuildDate(now)
    if doc.generator:
        fg.generator(doc.generator)
    if doc.ttl is not None:
        fg.ttl(doc.ttl)
    for category in doc.categories:
        fg.category(term=category)

    for item in doc.items:
        fe = fg.add_entry(order="append")
        fe.title(item.title)
        fe.link(href=item.link)
        fe.guid(item.link, permalink=True)
        fe.description(item.description or (f"News story from {item.source}" if news and item.source else item.title))
        fe.pubDate(now)
        if item.category:
            fe.category(term=item.category)
        if news:
            if item.importance:
                fe.news.importance(item.importance)
            if item.source:
                fe.news.source(item.source)
            if item.rank is not None:
                fe.news.rank(item.rank)
            if item.confidence:
                fe.news.confidence(item.confidence)

    return fg.rss_str(pretty=True).decode("utf-8")
