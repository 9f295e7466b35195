# services/crawler/diagnostics.py
"""Read-only page diagnostics for picking selectors by hand."""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from .config_loader import Catalogue, get_catalogue
from .content_extractor import meta_description

SAMPLES_PER_SELECTOR = 3

_DEFAULT_RECOMMENDATIONS = {
    "title": "h1, h2",
    "link": "a[href]",
    "description": ".excerpt, p",
    "category": ".category",
    "timestamp": ".date, time",
}


def _text(limit: Optional[int] = None) -> Callable[[Tag], Optional[str]]:
    def sample(node: Tag) -> Optional[str]:
        text = node.get_text(" ", strip=True)
        return text[:limit] if limit else text
    return sample


def _href(node: Tag) -> Optional[str]:
    return node.get("href")


def _time(node: Tag) -> Optional[str]:
    return node.get_text(" ", strip=True) or node.get("datetime")


def _candidates(soup: BeautifulSoup, selectors: List[str], sample: Callable[[Tag], Optional[str]]) -> List[Dict[str, Any]]:
    found = []
    for selector in selectors:
        nodes = soup.select(selector)
        if not nodes:
            continue
        samples = [sample(node) for node in nodes[:SAMPLES_PER_SELECTOR]]
        found.append(
            {
                "selector": selector,
                "count": len(nodes),
                "samples": [s for s in samples if s is not None],
            }
        )
    return found


def analyze_selectors(html: str, url: str, catalogue: Optional[Catalogue] = None) -> Dict[str, Any]:
    """
    Count structural elements and report which catalogue selectors match,
    with up to three samples each, plus a recommended selector per field.
    """
    catalogue = catalogue or get_catalogue()
    soup = BeautifulSoup(html, "html.parser")
    title_node = soup.find("title")

    debug_info = {
        "pageTitle": title_node.get_text(strip=True) if title_node else "",
        "metaDescription": meta_description(soup),
        "totalElements": len(soup.find_all(True)),
        "headings": {f"h{n}": len(soup.find_all(f"h{n}")) for n in range(1, 7)},
        "links": len(soup.select("a[href]")),
        "images": len(soup.find_all("img")),
        "articles": len(soup.find_all("article")),
        "sections": len(soup.find_all("section")),
        "divs": len(soup.find_all("div")),
    }

    cat = catalogue.debug
    potential = {
        "titles": _candidates(soup, cat.titles, _text(100)),
        "links": _candidates(soup, cat.links, _href),
        "descriptions": _candidates(soup, cat.descriptions, _text(150)),
        "categories": _candidates(soup, cat.categories, _text()),
        "timestamps": _candidates(soup, cat.timestamps, _time),
    }

    recommended = {}
    for field, group in (
        ("title", "titles"),
        ("link", "links"),
        ("description", "descriptions"),
        ("category", "categories"),
        ("timestamp", "timestamps"),
    ):
        found = potential[group]
        recommended[field] = found[0]["selector"] if found else _DEFAULT_RECOMMENDATIONS[field]

    return {
        "debugInfo": debug_info,
        "potentialSelectors": potential,
        "recommendedSelectors": recommended,
        "url": url,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
