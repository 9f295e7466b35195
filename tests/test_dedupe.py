# tests/test_dedupe.py
from models.content_item import ContentItem
from services.crawler.dedupe import DedupeStrategy, RankStrategy, dedupe, rank


def _item(title, link, **extra):
    return ContentItem(title=title, link=link, **extra)


def test_dedupe_is_idempotent_and_never_grows():
    items = [
        _item("One", "https://x.com/1"),
        _item("Two", "https://x.com/2"),
        _item("One again", "https://x.com/1"),
        _item("Three", "https://x.com/3"),
    ]

    once = dedupe(items)

    assert len(once) <= len(items)
    assert dedupe(once) == once
    assert [item.title for item in once] == ["One", "Two", "Three"]


def test_first_item_per_link_survives():
    items = [
        _item("Shared story", "https://x.com/a", source_page="https://x.com/"),
        _item("Shared story", "https://x.com/a", source_page="https://x.com/b"),
    ]

    unique = dedupe(items, DedupeStrategy.LINK)

    assert len(unique) == 1
    assert unique[0].source_page == "https://x.com/"


def test_link_and_title_strategy_keeps_distinct_titles():
    prefix = "A" * 50
    items = [
        _item("Morning briefing", "https://x.com/live"),
        _item("Evening briefing", "https://x.com/live"),
        _item("MORNING BRIEFING", "https://x.com/live"),
        # Titles only differing after the 50-character key prefix collapse.
        _item(prefix + " first", "https://x.com/long"),
        _item(prefix + " second", "https://x.com/long"),
    ]

    unique = dedupe(items, DedupeStrategy.LINK_AND_TITLE)

    assert [item.title for item in unique] == ["Morning briefing", "Evening briefing", prefix + " first"]


def test_importance_ranking():
    items = [
        _item("Low one", "https://x.com/l", importance="low", rank=1),
        _item("High five", "https://x.com/h", importance="high", rank=5),
        _item("Medium two", "https://x.com/m", importance="medium", rank=2),
    ]

    ordered = rank(items, RankStrategy.IMPORTANCE)

    assert [(item.importance, item.rank) for item in ordered] == [("high", 5), ("medium", 2), ("low", 1)]


def test_importance_ranking_breaks_ties_on_rank_then_input_order():
    items = [
        _item("Unranked", "https://x.com/u", importance="high"),
        _item("Second", "https://x.com/2", importance="high", rank=2),
        _item("First", "https://x.com/1", importance="high", rank=1),
        _item("Also unranked", "https://x.com/v", importance="high"),
    ]

    ordered = rank(items, "importance")

    assert [item.title for item in ordered] == ["First", "Second", "Unranked", "Also unranked"]


def test_alphabetical_ranking_is_case_insensitive_and_truncates():
    items = [_item("banana", "https://x.com/b"), _item("Apple", "https://x.com/a"), _item("cherry", "https://x.com/c")]

    ordered = rank(items, RankStrategy.ALPHABETICAL, max_items=2)

    assert [item.title for item in ordered] == ["Apple", "banana"]
