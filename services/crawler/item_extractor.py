# services/crawler/item_extractor.py
"""
Selector-driven item extraction.

Given one page and a ``SelectorSet`` this returns the page's feed items in
document order.  Elements that do not yield a usable title and an absolute
http(s) link are dropped silently; an invalid selector behaves as if it
matched nothing.
"""

from typing import List, Optional, Union
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from bs4.element import Tag
from loguru import logger
from prometheus_client import Counter
from soupsieve import SelectorSyntaxError

from core.config import Settings, get_settings
from models.content_item import ContentItem
from models.selectors import SelectorSet

ITEMS_EXTRACTED = Counter("items_extracted_total", "Feed items extracted from crawled pages")


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _select(root: Union[BeautifulSoup, Tag], selector: str) -> List[Tag]:
    if not selector:
        return []
    try:
        return root.select(selector)
    except (SelectorSyntaxError, ValueError) as exc:
        logger.warning(f"Invalid selector {selector!r}: {exc}")
        return []


def _select_one(root: Tag, selector: str) -> Optional[Tag]:
    if not selector:
        return None
    try:
        return root.select_one(selector)
    except (SelectorSyntaxError, ValueError) as exc:
        logger.debug(f"Invalid selector {selector!r}: {exc}")
        return None


def absolute_link(href: Optional[str], page_url: str) -> str:
    """Resolve ``href`` against ``page_url``; empty string unless the result is http(s)."""
    if not href or not href.strip():
        return ""
    try:
        resolved = urljoin(page_url, href.strip())
    except ValueError:
        return ""
    parsed = urlparse(resolved)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return ""
    return resolved


def _title_for(container: Tag, selectors: SelectorSet, page_url: str, position: int) -> str:
    node = _select_one(container, selectors.title)
    if node is not None:
        text = _collapse(node.get_text(" ", strip=True))
        if text:
            return text
        for attr in ("title", "alt"):
            value = (node.get(attr) or "").strip()
            if value:
                return _collapse(value)
    return f"Item from {urlparse(page_url).path or '/'} #{position}"


def _href_for(container: Tag, selectors: SelectorSet) -> Optional[str]:
    node = _select_one(container, selectors.link)
    if node is not None:
        href = node.get("href") or node.get("data-href")
        if href:
            return href
    if container.get("href"):
        return container.get("href")
    anchor = container.find("a", href=True)
    return anchor.get("href") if anchor is not None else None


def extract_items(
    page: Union[str, BeautifulSoup],
    selectors: SelectorSet,
    source_page: str,
    settings: Optional[Settings] = None,
) -> List[ContentItem]:
    """
    Extract feed items from one page.

    Args:
        page: raw HTML or an already-parsed document
        selectors: the session's selector set
        source_page: URL the page was fetched from; relative links resolve against it

    Returns:
        List[ContentItem]: items in document order, every ``link`` absolute http(s)
    """
    settings = settings or get_settings()
    soup = page if isinstance(page, BeautifulSoup) else BeautifulSoup(page, "html.parser")

    items: List[ContentItem] = []
    for position, container in enumerate(_select(soup, selectors.item), start=1):
        title = _title_for(container, selectors, source_page, position)[: settings.TITLE_MAX_CHARS]
        link = absolute_link(_href_for(container, selectors), source_page)

        description = ""
        desc_node = _select_one(container, selectors.description)
        if desc_node is not None:
            description = _collapse(desc_node.get_text(" ", strip=True))[: settings.DESCRIPTION_MAX_CHARS]

        if len(title) <= settings.MIN_TITLE_LENGTH or not link:
            continue

        items.append(
            ContentItem(
                title=title,
                link=link,
                description=description,
                source_page=source_page,
                selected=True,
            )
        )

    ITEMS_EXTRACTED.inc(len(items))
    logger.debug(f"Extracted {len(items)} items from {source_page}")
    return items
