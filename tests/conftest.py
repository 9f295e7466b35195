# tests/conftest.py
"""
Shared fixtures.

Nothing here touches the network: pages are served from a dict through
``httpx.MockTransport`` and every politeness delay is a no-op.
"""

import asyncio
from typing import Callable, Dict, List, Union

import httpx
import pytest

from core.config import Settings
from services.crawler.config_loader import get_catalogue
from services.scraper.fetcher import PageFetcher

PageEntry = Union[str, httpx.Response, Callable[[httpx.Request], httpx.Response]]


def html_page(body: str, title: str = "Test Site") -> str:
    """Wrap ``body`` in a document long enough to pass the empty-body check."""
    return (
        "<!DOCTYPE html><html><head>"
        f"<title>{title}</title>"
        '<meta name="description" content="A small fixture page used by the test-suite.">'
        f"</head><body>{body}</body></html>"
    )


class FakeSite:
    """
    URL → response table served through ``httpx.MockTransport``.

    Unknown URLs answer 404.  ``requested`` records every URL asked for,
    in order.
    """

    def __init__(self, pages: Dict[str, PageEntry]):
        self.pages = dict(pages)
        self.requested: List[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        entry = self.pages.get(url)
        if entry is None:
            return httpx.Response(404, text="not found")
        if isinstance(entry, httpx.Response):
            return entry
        if callable(entry):
            return entry(request)
        return httpx.Response(200, html=entry)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def fetcher(self, settings: Settings) -> PageFetcher:
        return PageFetcher.create(settings, transport=self.transport)


async def no_sleep(_seconds: float) -> None:
    return None


class SleepRecorder:
    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        LLM_ENABLED=False,
        GEMINI_API_KEY=None,
        XAI_API_KEY=None,
        CRAWL_DELAY_SECONDS=0.0,
        NEWS_SUBPAGE_DELAY_SECONDS=0.0,
        BASE_URL="https://feeds.test",
    )


@pytest.fixture
def catalogue():
    return get_catalogue()


@pytest.fixture
def five_articles() -> str:
    """Seed page with five ``<article>`` items linking to /post/1..5."""
    articles = "".join(
        f'<article><h2>Post number {n}</h2><a href="/post/{n}">Read more</a>'
        f"<p>Summary of post {n}.</p></article>"
        for n in range(1, 6)
    )
    return html_page(f"<main>{articles}</main>", title="Seed Blog")
