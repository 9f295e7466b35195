# services/crawler/dedupe.py
"""Duplicate removal and ordering of extracted items."""

from enum import Enum
from typing import Hashable, Iterable, List, Optional, Set

from models.content_item import ContentItem


class DedupeStrategy(str, Enum):
    LINK = "link"
    LINK_AND_TITLE = "link_and_title"


class RankStrategy(str, Enum):
    ALPHABETICAL = "alphabetical"
    IMPORTANCE = "importance"


TITLE_KEY_CHARS = 50


def _key(item: ContentItem, strategy: DedupeStrategy) -> Hashable:
    if strategy is DedupeStrategy.LINK:
        return item.link
    return item.link, item.title.lower().strip()[:TITLE_KEY_CHARS]


def dedupe(items: Iterable[ContentItem], strategy: DedupeStrategy = DedupeStrategy.LINK) -> List[ContentItem]:
    """Keep the first item for each key, preserving order."""
    strategy = DedupeStrategy(strategy)
    seen: Set[Hashable] = set()
    unique: List[ContentItem] = []
    for item in items:
        key = _key(item, strategy)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def rank(
    items: Iterable[ContentItem],
    strategy: RankStrategy = RankStrategy.ALPHABETICAL,
    max_items: Optional[int] = None,
) -> List[ContentItem]:
    """
    Stable sort by case-insensitive title, or by importance tier (high first)
    then ascending ``rank``.  Truncates to ``max_items`` when given.
    """
    strategy = RankStrategy(strategy)
    if strategy is RankStrategy.ALPHABETICAL:
        ordered = sorted(items, key=lambda item: item.title.casefold())
    else:
        ordered = sorted(
            items,
            key=lambda item: (-item.importance_tier, item.rank if item.rank is not None else float("inf")),
        )
    if max_items is not None:
        ordered = ordered[:max_items]
    return ordered
