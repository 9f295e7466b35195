# tests/test_crawler_service.py
import pytest

from conftest import FakeSite, SleepRecorder, html_page, no_sleep, run
from core.exceptions import HttpStatusError
from models.crawler_request import CrawlerRequest, CrawlStatus
from services.crawler.crawler_service import CrawlerService

SEED = "https://example.com/"


def _nav(*paths: str) -> str:
    return html_page("".join(f'<a href="{p}">{p}</a>' for p in paths))


def _crawl(site: FakeSite, settings, request: CrawlerRequest, sleep=no_sleep, seed_html=None):
    async def go():
        fetcher = site.fetcher(settings)
        crawler = CrawlerService(fetcher, settings, sleep=sleep)
        try:
            return crawler, await crawler.crawl(request, seed_html=seed_html)
        finally:
            await fetcher.aclose()

    return run(go())


def test_single_level_returns_seed_links_without_fetching_them(settings):
    site = FakeSite({SEED: _nav("/a", "/b", "/c", "/files/x.pdf", "https://other.org/z")})

    crawler, targets = _crawl(site, settings, CrawlerRequest(url=SEED, max_pages=10))

    assert [t.url for t in targets] == [SEED, "https://example.com/a", "https://example.com/b", "https://example.com/c"]
    assert targets[0].html is not None
    assert all(t.html is None for t in targets[1:])
    # Only the seed was fetched.
    assert site.requested == [SEED]
    assert crawler.status is CrawlStatus.COMPLETED


@pytest.mark.parametrize("recursive", [False, True])
def test_output_is_bounded_unique_and_same_origin(settings, recursive):
    pages = {SEED: _nav(*(f"/p{n}" for n in range(20)), "https://elsewhere.net/")}
    for n in range(20):
        pages[f"https://example.com/p{n}"] = _nav("/", f"/p{n + 1}", f"/deep{n}")
    site = FakeSite(pages)

    _, targets = _crawl(site, settings, CrawlerRequest(url=SEED, max_pages=5, recursive=recursive))
    urls = [t.url for t in targets]

    assert len(urls) <= 5
    assert len(urls) == len(set(urls))
    assert all(url.startswith("https://example.com/") for url in urls)
    assert urls[0] == SEED


def test_recursive_crawl_follows_discovered_links(settings):
    site = FakeSite(
        {
            SEED: _nav("/section"),
            "https://example.com/section": _nav("/section/story-1", "/section/story-2"),
            "https://example.com/section/story-1": _nav("/"),
            "https://example.com/section/story-2": _nav("/"),
        }
    )

    _, targets = _crawl(site, settings, CrawlerRequest(url=SEED, max_pages=10, recursive=True))

    assert [t.url for t in targets] == [
        SEED,
        "https://example.com/section",
        "https://example.com/section/story-1",
        "https://example.com/section/story-2",
    ]
    assert [t.depth for t in targets] == [0, 1, 2, 2]
    assert all(t.html for t in targets)


def test_failed_page_is_skipped_and_crawl_continues(settings):
    site = FakeSite(
        {
            SEED: _nav("/broken", "/ok"),
            "https://example.com/ok": _nav("/"),
        }
    )

    crawler, targets = _crawl(site, settings, CrawlerRequest(url=SEED, max_pages=10, recursive=True))

    assert [t.url for t in targets] == [SEED, "https://example.com/ok"]
    assert crawler.stats.pages_failed == 1
    assert crawler.stats.pages_fetched == 2


def test_seed_failure_is_raised(settings):
    site = FakeSite({})
    request = CrawlerRequest(url=SEED, max_pages=5)

    async def go():
        fetcher = site.fetcher(settings)
        crawler = CrawlerService(fetcher, settings, sleep=no_sleep)
        try:
            with pytest.raises(HttpStatusError):
                await crawler.crawl(request)
            return crawler
        finally:
            await fetcher.aclose()

    crawler = run(go())
    assert crawler.status is CrawlStatus.FAILED


def test_politeness_delay_between_fetches(settings):
    site = FakeSite(
        {
            SEED: _nav("/a", "/b"),
            "https://example.com/a": _nav("/"),
            "https://example.com/b": _nav("/"),
        }
    )
    sleep = SleepRecorder()

    _crawl(site, settings, CrawlerRequest(url=SEED, max_pages=3, recursive=True, delay_seconds=0.25), sleep=sleep)

    # Three fetches, no delay before the first one.
    assert sleep.calls == [0.25, 0.25]


def test_supplied_seed_html_is_not_refetched(settings):
    site = FakeSite({})

    _, targets = _crawl(
        site, settings, CrawlerRequest(url=SEED, max_pages=3), seed_html=_nav("/x", "/y", "/z")
    )

    assert [t.url for t in targets] == [SEED, "https://example.com/x", "https://example.com/y"]
    assert site.requested == []


@pytest.mark.parametrize("seed", ["https://example.com", "https://example.com/#top"])
def test_seed_is_normalised_like_discovered_links(settings, seed):
    site = FakeSite(
        {
            SEED: _nav("/", "/a", "https://example.com"),
            "https://example.com/a": _nav("/", "https://example.com#top"),
        }
    )

    _, targets = _crawl(site, settings, CrawlerRequest(url=seed, max_pages=10, recursive=True))

    assert [t.url for t in targets] == [SEED, "https://example.com/a"]
    # The home page is fetched once, whichever spelling the links use.
    assert site.requested == [SEED, "https://example.com/a"]
