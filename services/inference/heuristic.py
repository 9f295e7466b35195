# services/inference/heuristic.py
"""
Selector guessing without a model.

Counts how often each catalogue pattern occurs and, when one repeats often
enough to look like a list of items, builds an item selector around it.
"""

from typing import Any, Dict, List, Optional, Tuple, Union

from bs4 import BeautifulSoup
from loguru import logger

from core.exceptions import SelectorValidationError
from models.selectors import SelectorSet
from services.crawler.config_loader import Catalogue, get_catalogue


def _variant(selector: str) -> str:
    """A second spelling of the winning pattern, joined into the item union."""
    if selector.startswith("[class*='"):
        return "." + selector[len("[class*='"):-2]
    return f"[role='{selector}']"


class HeuristicSelectorInferencer:
    """Pattern counting over the parsed seed page."""

    def __init__(self, catalogue: Optional[Catalogue] = None, min_occurrences: Optional[int] = None):
        self.catalogue = catalogue or get_catalogue()
        self.min_occurrences = min_occurrences or self.catalogue.heuristic.min_occurrences

    def count_patterns(self, soup: BeautifulSoup) -> List[Tuple[str, int]]:
        """``(selector, matches)`` for every catalogue pattern, in catalogue order."""
        return [(sel, len(soup.select(sel))) for sel in self.catalogue.heuristic.candidates()]

    def detect(self, page: Union[str, BeautifulSoup]) -> SelectorSet:
        """
        Return a selector set biased to the most frequent pattern.

        Raises ``SelectorValidationError`` when no pattern reaches
        ``min_occurrences``; the caller then falls back to the static set.
        """
        soup = page if isinstance(page, BeautifulSoup) else BeautifulSoup(page, "html.parser")
        counts = self.count_patterns(soup)
        best_selector, best_count = max(counts, key=lambda pair: pair[1], default=("", 0))

        if best_count < self.min_occurrences:
            raise SelectorValidationError(
                f"No repeating pattern found (best {best_selector!r} x{best_count})"
            )

        logger.info(f"Heuristic picked {best_selector!r} ({best_count} matches)")
        fallback = self.catalogue.fallback
        return SelectorSet(
            item=f"{best_selector}, {_variant(best_selector)}",
            title=fallback.title,
            link=fallback.link,
            description=fallback.description,
            confidence="medium",
            reasoning=f"Found {best_count} elements matching {best_selector}",
        )

    def static_fallback(self) -> SelectorSet:
        return self.catalogue.fallback.model_copy(
            update={"confidence": "low", "reasoning": "Static fallback selectors"}
        )


def analyze_html_structure(soup: BeautifulSoup) -> Dict[str, Any]:
    """Classify the page from counts of common content containers."""
    articles = len(soup.find_all("article"))
    posts = len(soup.select(".post, .entry"))
    products = len(soup.select(".product, .item"))
    cards = len(soup.select(".card"))

    content_type, layout_type = "unknown", "mixed"
    if articles:
        content_type, layout_type = "blog", "list"
    elif products:
        content_type, layout_type = "ecommerce", "grid"
    elif posts:
        content_type, layout_type = "news", "list"
    elif cards:
        content_type, layout_type = "mixed", "cards"

    return {
        "contentType": content_type,
        "mainContentAreas": [
            {
                "description": f"Detected {articles + posts + products + cards} potential content items",
                "location": "main content area",
                "importance": "high",
                "contentPattern": f"{content_type} items in {layout_type} layout",
            }
        ],
        "recommendedFocus": f"Focus on {content_type} content extraction",
        "layoutType": layout_type,
        "excludeAreas": ["navigation", "sidebar", "footer", "ads"],
        "confidence": "medium",
        "method": "html-structure-analysis",
    }
