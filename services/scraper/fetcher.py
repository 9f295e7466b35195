# services/scraper/fetcher.py
"""
HTTP page fetcher.

One ``httpx.AsyncClient`` is shared for the life of the application and a
``PageFetcher`` wraps it with the browser-like header set, the success
criteria (2xx, ``text/html``, non-trivial body) and the mapping of every
failure onto a distinct ``FetchError`` subclass.  There are no retries: a
failed page is either fatal (seed URL) or skipped by the caller.
"""

import time
from typing import Dict, Optional
from urllib.parse import urlparse

import httpx
from loguru import logger
from prometheus_client import Counter, Histogram
from pydantic import BaseModel

from core.config import Settings, get_settings
from core.exceptions import (
    ContentTypeError,
    EmptyBodyError,
    FetchError,
    FetchTimeoutError,
    HttpStatusError,
    InvalidRequestError,
    NetworkError,
)

FETCH_REQUESTS = Counter("fetch_requests_total", "Total number of page fetches")
FETCH_ERRORS = Counter("fetch_errors_total", "Page fetches that failed, by kind", ["kind"])
FETCH_DURATION = Histogram("fetch_duration_seconds", "Time spent fetching pages")


def browser_headers(user_agent: str) -> Dict[str, str]:
    """Header set that makes the request look like a desktop Chrome visit."""
    return {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
        "DNT": "1",
        "Upgrade-Insecure-Requests": "1",
    }


def ensure_http_url(url: Optional[str]) -> str:
    """Return ``url`` stripped, or raise ``InvalidRequestError`` when it is not absolute http(s)."""
    if not url or not str(url).strip():
        raise InvalidRequestError("URL is required")
    url = str(url).strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidRequestError("Invalid URL format")
    return url


class RawPage(BaseModel):
    """Result of a successful fetch."""

    url: str
    final_url: str
    status_code: int
    content_type: str
    html: str
    elapsed: float = 0.0


class PageFetcher:
    """Async fetcher around a shared ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or get_settings()
        self.headers = browser_headers(self.settings.DEFAULT_USER_AGENT)

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "PageFetcher":
        """Factory that also builds the pooled client (``transport`` is for tests)."""
        client = httpx.AsyncClient(follow_redirects=True, transport=transport)
        return cls(client, settings)

    async def fetch(self, url: str, timeout: Optional[float] = None) -> RawPage:
        """
        Fetch ``url`` and return its HTML.

        Raises
        ------
        HttpStatusError, ContentTypeError, FetchTimeoutError, NetworkError, EmptyBodyError
        """
        timeout = timeout or self.settings.PAGE_FETCH_TIMEOUT
        FETCH_REQUESTS.inc()
        start = time.perf_counter()
        try:
            with FETCH_DURATION.time():
                page = await self._fetch(url, timeout)
        except FetchError as exc:
            FETCH_ERRORS.labels(kind=exc.code).inc()
            logger.warning(f"Fetch failed for {url}: {exc.message}")
            raise
        page.elapsed = time.perf_counter() - start
        logger.debug(f"Fetched {url} ({len(page.html)} chars in {page.elapsed:.2f}s)")
        return page

    async def _fetch(self, url: str, timeout: float) -> RawPage:
        try:
            response = await self.client.get(url, headers=self.headers, timeout=timeout)
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(url) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(url, exc.__class__.__name__) from exc

        if not response.is_success:
            raise HttpStatusError(url, response.status_code, response.reason_phrase)

        content_type = response.headers.get("content-type", "")
        if "text/html" not in content_type.lower():
            raise ContentTypeError(url, content_type or None)

        html = response.text
        if len(html) < self.settings.MIN_BODY_LENGTH:
            raise EmptyBodyError(url, len(html))

        return RawPage(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            content_type=content_type,
            html=html,
        )

    async def aclose(self) -> None:
        await self.client.aclose()
