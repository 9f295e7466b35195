# tests/test_news_service.py
import pytest

from conftest import FakeSite, html_page, no_sleep, run
from core.exceptions import InferenceError, NoItemsFoundError, ParseError
from services.inference.grok import GrokNewsExtractor
from services.inference.news_service import NewsScanService, make_absolute_url
from services.inference.selector_service import SelectorService

SEED = "https://news.test/"

SEED_HTML = html_page(
    '<nav><a href="/news/world">World</a><a href="/latest#top">Latest</a>'
    '<a href="https://other.test/news">Elsewhere</a><a href="/about">About</a></nav>'
    "<main><p>Front page</p></main>",
    title="Daily Test",
)


class StubExtractor:
    """Scripted ``NewsExtractor``; records which passes ran."""

    def __init__(self, first=None, second=None, subpage=None, fail_first=False):
        self.first = first or []
        self.second = second or []
        self.subpage = subpage or []
        self.fail_first = fail_first
        self.calls = []

    async def extract(self, excerpt, url, page_title, pages):
        self.calls.append(("extract", url, page_title, list(pages)))
        if self.fail_first:
            raise InferenceError("grok unavailable")
        return self.first

    async def second_pass(self, excerpt, url, page_title):
        self.calls.append(("second_pass", url))
        return self.second

    async def extract_subpage(self, excerpt, url, site):
        self.calls.append(("extract_subpage", url))
        return self.subpage


def _raw(n, **extra):
    data = {"title": f"Story {n}", "link": f"/story/{n}", "category": "tech", "importance": "medium"}
    data.update(extra)
    return data


def _scan(site: FakeSite, settings, catalogue, extractor):
    async def go():
        fetcher = site.fetcher(settings)
        service = NewsScanService(
            fetcher, SelectorService(settings, catalogue), extractor, settings, catalogue, sleep=no_sleep
        )
        try:
            return await service.scan(SEED)
        finally:
            await fetcher.aclose()

    return run(go())


def _site(extra=None):
    pages = {
        SEED: SEED_HTML,
        "https://news.test/news/world": html_page("<p>World section</p>"),
        "https://news.test/latest": html_page("<p>Latest section</p>"),
    }
    pages.update(extra or {})
    return FakeSite(pages)


def test_model_items_are_normalised_and_ranked(settings, catalogue):
    first = [_raw(n) for n in range(1, 12)]
    first[5] = _raw(6, importance="high", category="Global Politics")
    first[7] = _raw(8, importance="low", link="")
    first.append({"link": "/no-title"})
    first.append("not a dict")
    extractor = StubExtractor(first=first)

    result = _scan(_site(), settings, catalogue, extractor)

    assert result["success"] is True
    assert result["method"] == "grok-ai-enhanced-analysis"
    assert result["pageTitle"] == "Daily Test"
    assert result["pagesScanned"] == 3
    # Eleven usable items, so neither the second pass nor the rescan runs.
    assert [call[0] for call in extractor.calls] == ["extract"]
    assert extractor.calls[0][3] == [SEED, "https://news.test/news/world", "https://news.test/latest"]

    items = result["newsItems"]
    assert len(items) == 11
    assert items[0]["title"] == "Story 6"
    assert items[0]["importance"] == "high"
    assert items[0]["confidence"] == "high"
    assert items[0]["category"] in ("Politics", "World")
    assert items[-1]["title"] == "Story 8"
    # Empty link falls back to the page URL.
    assert items[-1]["link"] == SEED
    assert items[1]["link"] == "https://news.test/story/1"
    assert items[1]["category"] == "Technology"
    assert items[1]["source"] == "news.test"
    assert all(item["selected"] for item in items)


def test_small_haul_triggers_second_pass_and_subpage_rescan(settings, catalogue):
    extractor = StubExtractor(
        first=[_raw(1), _raw(2)],
        second=[_raw(2), _raw(3, importance=None)],
        subpage=[{"title": "Section exclusive", "link": "exclusive", "importance": "high"}],
    )

    result = _scan(_site(), settings, catalogue, extractor)

    names = [call[0] for call in extractor.calls]
    assert names[:2] == ["extract", "second_pass"]
    assert names.count("extract_subpage") == 2

    titles = [item["title"] for item in result["newsItems"]]
    # The rescan finds the same story on both section pages; link differs, so both stay.
    assert titles[:2] == ["Section exclusive", "Section exclusive"]
    assert titles.count("Story 2") == 1
    story3 = next(item for item in result["newsItems"] if item["title"] == "Story 3")
    assert story3["importance"] == "low"
    assert story3["rank"] >= 100
    assert {item["link"] for item in result["newsItems"] if item["title"] == "Section exclusive"} == {
        "https://news.test/news/exclusive",
        "https://news.test/exclusive",
    }
    assert result["stats"]["originalItems"] == 4
    assert result["stats"]["finalItems"] == len(result["newsItems"])


def test_model_failure_falls_back_to_selectors(settings, catalogue, five_articles):
    site = FakeSite({SEED: five_articles})
    extractor = StubExtractor(fail_first=True)

    result = _scan(site, settings, catalogue, extractor)

    assert result["method"] == "heuristic-selector-analysis"
    assert [item["title"] for item in result["newsItems"]] == [f"Post number {n}" for n in range(1, 6)]
    assert {item["category"] for item in result["newsItems"]} == {"General"}


def test_no_extractor_uses_selectors(settings, catalogue, five_articles):
    result = _scan(FakeSite({SEED: five_articles}), settings, catalogue, None)

    assert result["method"] == "heuristic-selector-analysis"
    assert result["totalFound"] == 5


def test_nothing_found_raises(settings, catalogue):
    extractor = StubExtractor(first=[], second=[])

    with pytest.raises(NoItemsFoundError) as exc_info:
        _scan(_site(), settings, catalogue, extractor)

    assert exc_info.value.to_dict()["success"] is False
    assert "suggestion" in exc_info.value.to_dict()


def test_top_items_are_capped(settings, catalogue):
    extractor = StubExtractor(first=[_raw(n) for n in range(40)])

    result = _scan(_site(), settings, catalogue, extractor)

    assert len(result["newsItems"]) == settings.NEWS_MAX_ITEMS


def test_section_links(settings, catalogue):
    service = NewsScanService(None, SelectorService(settings, catalogue), None, settings, catalogue)

    links = service.section_links(SEED_HTML, SEED)

    assert links == ["https://news.test/news/world", "https://news.test/latest"]


def test_make_absolute_url():
    assert make_absolute_url("/a", "https://n.test/x/y") == "https://n.test/a"
    assert make_absolute_url("", "https://n.test/") == "https://n.test/"
    assert make_absolute_url(None, "https://n.test/") == "https://n.test/"
    assert make_absolute_url("javascript:void(0)", "https://n.test/") == "https://n.test/"


# ----------------------------------------------------------------------
# Grok adapter (client replaced by a scripted stand-in)
# ----------------------------------------------------------------------
class ScriptedGrok:
    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    async def complete(self, prompt, system=None):
        self.calls.append((prompt, system))
        return self.replies.pop(0)


def test_grok_extractor_parses_fenced_arrays():
    client = ScriptedGrok('```json\n[{"title": "A", "link": "/a"}]\n```', "[]", '[{"title": "B"}]')
    extractor = GrokNewsExtractor(client)

    first = run(extractor.extract("<p>x</p>", SEED, "Daily Test", [SEED, SEED + "news"]))
    second = run(extractor.second_pass("y" * 20000, SEED, "Daily Test"))
    sub = run(extractor.extract_subpage("<p>z</p>", SEED + "news", "Additional page from news.test"))

    assert first == [{"title": "A", "link": "/a"}]
    assert second == []
    assert sub == [{"title": "B"}]
    prompt, system = client.calls[0]
    assert "Pages Analyzed: 2" in prompt
    assert system is not None
    # The second pass only sends the head of the excerpt.
    assert "y" * 15001 not in client.calls[1][0]


def test_grok_extractor_rejects_non_array():
    extractor = GrokNewsExtractor(ScriptedGrok('{"items": []}'))

    with pytest.raises(ParseError):
        run(extractor.extract("<p></p>", SEED, "T", [SEED]))
