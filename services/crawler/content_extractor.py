# services/crawler/content_extractor.py
"""
Bounded HTML excerpts for LLM prompts, and page titles.

The excerpt keeps markup (the model needs class names to propose
selectors) but drops scripts, styles and comments, narrows the document to
its main content region and caps the length.
"""

from typing import Iterable, Optional

from bs4 import BeautifulSoup, Comment


def _main_region(soup: BeautifulSoup, containers: Iterable[str]):
    main = soup.find("main")
    if main is not None:
        return main

    article = soup.find("article")
    if article is not None and article.parent is not None:
        return article.parent

    union = ", ".join(containers)
    if union:
        region = soup.select_one(union)
        if region is not None:
            return region

    return soup.body or soup


def prepare_html_excerpt(
    html: str,
    limit: int,
    strip: Iterable[str] = ("script", "style", "noscript"),
    containers: Iterable[str] = (".content", ".main", "#content", "#main"),
) -> str:
    """
    Return the inner HTML of the page's main region, truncated to ``limit``
    characters with a trailing ``...`` when cut.

    ``strip`` entries are CSS selectors removed before the region is chosen.
    """
    soup = BeautifulSoup(html, "html.parser")
    for selector in strip:
        for node in soup.select(selector):
            node.decompose()
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    excerpt = _main_region(soup, containers).decode_contents().strip()
    if len(excerpt) > limit:
        excerpt = excerpt[:limit] + "..."
    return excerpt


def page_title(html: str, default: str = "RSS Feed", soup: Optional[BeautifulSoup] = None) -> str:
    """``<title>`` text, else the first ``<h1>``, else ``default``."""
    soup = soup or BeautifulSoup(html, "html.parser")
    for tag in ("title", "h1"):
        node = soup.find(tag)
        if node is not None:
            text = " ".join(node.get_text(" ", strip=True).split())
            if text:
                return text
    return default


def meta_description(soup: BeautifulSoup) -> str:
    node = soup.find("meta", attrs={"name": "description"})
    return (node.get("content") or "").strip() if node is not None else ""
