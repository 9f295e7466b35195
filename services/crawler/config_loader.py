# services/crawler/config_loader.py
"""
Loads the static selector catalogue from ``configs/selectors.yaml`` and
validates it with Pydantic models.

The public API:
* ``get_catalogue()`` returns the validated ``Catalogue`` (read once per process).
* ``normalize_category(name)`` maps a free-form category onto the fixed taxonomy.
* ``category_color(name)`` returns the accent colour used by the magazine layouts.
"""

import re
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

from models.selectors import SelectorSet


# ----------------------------------------------------------------------
# Pydantic schemas – they give us runtime validation and nice error msgs
# ----------------------------------------------------------------------
class HeuristicConfig(BaseModel):
    """Patterns counted by the heuristic selector detector."""
    min_occurrences: int = 3
    tags: List[str] = Field(default_factory=lambda: ["article"])
    class_fragments: List[str] = Field(default_factory=list)

    def candidates(self) -> List[str]:
        """Every CSS selector the detector counts, tags first."""
        return list(self.tags) + [f"[class*='{frag}']" for frag in self.class_fragments]


class CrawlConfig(BaseModel):
    """Link filters applied while crawling."""
    excluded_extensions: List[str] = Field(default_factory=list)
    excluded_schemes: List[str] = Field(default_factory=list)
    excluded_path_patterns: List[str] = Field(default_factory=list)


class ExcerptConfig(BaseModel):
    strip_tags: List[str] = Field(default_factory=lambda: ["script", "style", "noscript"])
    containers: List[str] = Field(default_factory=list)


class NewsConfig(BaseModel):
    """Everything the news scan needs besides the LLM itself."""
    strip_selectors: List[str] = Field(default_factory=list)
    containers: List[str] = Field(default_factory=list)
    section_link_selectors: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    default_category: str = "General"
    category_aliases: Dict[str, str] = Field(default_factory=dict)
    category_colors: Dict[str, str] = Field(default_factory=dict)


class MagazineConfig(BaseModel):
    image_selectors: List[str] = Field(default_factory=list)


class DebugCatalogue(BaseModel):
    """Candidate selectors reported by the debug endpoint, per field."""
    titles: List[str] = Field(default_factory=list)
    links: List[str] = Field(default_factory=list)
    descriptions: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    timestamps: List[str] = Field(default_factory=list)


class Catalogue(BaseModel):
    """Top-level container mirroring the YAML layout."""
    fallback: SelectorSet
    heuristic: HeuristicConfig = Field(default_factory=HeuristicConfig)
    crawl: CrawlConfig = Field(default_factory=CrawlConfig)
    html_excerpt: ExcerptConfig = Field(default_factory=ExcerptConfig)
    news: NewsConfig = Field(default_factory=NewsConfig)
    magazine: MagazineConfig = Field(default_factory=MagazineConfig)
    debug: DebugCatalogue = Field(default_factory=DebugCatalogue)


# ----------------------------------------------------------------------
# Internal helpers & caching
# ----------------------------------------------------------------------
# Two levels up is the project root in a checkout and site-packages once
# installed; the ``configs`` package ships the YAML as package data.
CONFIG_PATH = Path(__file__).resolve().parents[2] / "configs" / "selectors.yaml"


class CatalogueError(ValueError):
    """Raised when selectors.yaml is missing a usable fallback selector set."""


def load_catalogue(path: Path = CONFIG_PATH) -> Catalogue:
    """
    Read and validate a catalogue file.  Any schema problem raises
    ``pydantic.ValidationError`` naming the offending field.
    """
    with path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    catalogue = Catalogue(**raw)
    if not catalogue.fallback.is_complete():
        raise CatalogueError(
            f"fallback selectors incomplete: missing {', '.join(catalogue.fallback.missing_fields())}"
        )
    return catalogue


@lru_cache()
def get_catalogue() -> Catalogue:
    """The process-wide catalogue, read and validated only once."""
    return load_catalogue()


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------
def normalize_category(category: Optional[str], catalogue: Optional[Catalogue] = None) -> str:
    """
    Map an LLM-provided category onto the fixed taxonomy.

    Exact alias match first, then a whole-word match on any token, then a
    substring match in either direction, else the default category.
    """
    news = (catalogue or get_catalogue()).news
    if not category or not str(category).strip():
        return news.default_category

    normalized = str(category).strip().lower()
    if normalized in news.category_aliases:
        return news.category_aliases[normalized]

    for token in re.findall(r"[a-z0-9]+", normalized):
        if token in news.category_aliases:
            return news.category_aliases[token]

    for key, value in news.category_aliases.items():
        if key in normalized or normalized in key:
            return value
    return news.default_category


def category_color(category: Optional[str], catalogue: Optional[Catalogue] = None) -> str:
    """``"r, g, b"`` accent for a category; unknown names get the default's colour."""
    news = (catalogue or get_catalogue()).news
    colors = news.category_colors
    return colors.get(category or "", colors.get(news.default_category, "100, 116, 139"))
