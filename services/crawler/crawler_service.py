# services/crawler/crawler_service.py
import asyncio
import time
from collections import deque
from typing import Awaitable, Callable, Deque, List, Optional, Set

from loguru import logger
from prometheus_client import Counter, Histogram

from core.config import Settings, get_settings
from core.exceptions import FetchError
from models.crawler_request import CrawlerRequest, CrawlStats, CrawlStatus, CrawlTarget
from services.scraper.fetcher import PageFetcher
from .config_loader import Catalogue
from .link_extractor import LinkExtractor, canonical_url

CRAWL_DURATION = Histogram("crawl_duration_seconds", "Time spent on one crawl session")
CRAWL_PAGES = Counter("crawl_pages_total", "Pages visited by the crawler", ["outcome"])

Sleeper = Callable[[float], Awaitable[None]]


# ----------------------------------------------------------------------
#  CrawlerService – bounded same-origin crawl
# ----------------------------------------------------------------------
class CrawlerService:
    """
    Breadth-first, same-origin crawl bounded by ``max_pages``.

    Fetches are strictly sequential with a politeness delay between them.
    The seed is always the first target; a seed fetch failure is raised to
    the caller, any other failed page is dropped and the crawl goes on.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        settings: Optional[Settings] = None,
        catalogue: Optional[Catalogue] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.fetcher = fetcher
        self.settings = settings or get_settings()
        self.catalogue = catalogue
        self._sleep = sleep
        self._fetched_any = False
        self.status = CrawlStatus.PENDING
        self.stats = CrawlStats()

    # ------------------------------------------------------------------
    async def _polite_fetch(self, url: str, timeout: float, delay: float) -> str:
        """Fetch one page, sleeping first unless it is the session's first fetch."""
        if self._fetched_any and delay > 0:
            await self._sleep(delay)
        self._fetched_any = True
        try:
            page = await self.fetcher.fetch(url, timeout=timeout)
        except FetchError:
            self.stats.pages_failed += 1
            CRAWL_PAGES.labels(outcome="failed").inc()
            raise
        self.stats.pages_fetched += 1
        CRAWL_PAGES.labels(outcome="fetched").inc()
        return page.html

    # ------------------------------------------------------------------
    async def crawl(self, request: CrawlerRequest, seed_html: Optional[str] = None) -> List[CrawlTarget]:
        """
        Run one crawl session and return its targets, seed first.

        ``seed_html`` skips the seed fetch when the caller already has it.
        With ``recursive=False`` only the seed is scanned for links and the
        discovered URLs are returned unfetched; with ``recursive=True`` each
        dequeued page is fetched and scanned, and its HTML rides along on
        the returned target.
        """
        self.status = CrawlStatus.RUNNING
        self.stats = CrawlStats()
        self._fetched_any = False
        start = time.perf_counter()

        seed = canonical_url(str(request.url))
        extractor = LinkExtractor(request, self.catalogue)
        delay = request.delay_seconds
        visited: Set[str] = {seed}
        queue: Deque[CrawlTarget] = deque()

        def enqueue(html: str, page_url: str, depth: int, limit: Optional[int]) -> None:
            for link in extractor.extract_links(html, page_url):
                if limit is not None and len(queue) >= limit:
                    break
                if link not in visited:
                    visited.add(link)
                    queue.append(CrawlTarget(url=link, depth=depth))
            self.stats.pages_discovered = len(visited)

        logger.info(f"Starting crawl for {seed} (max_pages={request.max_pages}, recursive={request.recursive})")

        try:
            with CRAWL_DURATION.time():
                if seed_html is None:
                    seed_html = await self._polite_fetch(seed, self.settings.SEED_FETCH_TIMEOUT, delay)
                targets: List[CrawlTarget] = [CrawlTarget(url=seed, depth=0, html=seed_html)]

                if not request.recursive:
                    enqueue(seed_html, seed, 1, request.max_pages - 1)
                    targets.extend(queue)
                else:
                    enqueue(seed_html, seed, 1, None)
                    while queue and len(targets) < request.max_pages:
                        target = queue.popleft()
                        try:
                            html = await self._polite_fetch(target.url, self.settings.PAGE_FETCH_TIMEOUT, delay)
                        except FetchError as exc:
                            logger.debug(f"Skipping {target.url}: {exc.message}")
                            continue
                        targets.append(CrawlTarget(url=target.url, depth=target.depth, html=html))
                        enqueue(html, target.url, target.depth + 1, None)
        except FetchError:
            self.status = CrawlStatus.FAILED
            raise
        finally:
            self.stats.duration_seconds = time.perf_counter() - start

        self.status = CrawlStatus.COMPLETED
        logger.info(
            f"Crawl completed – {len(targets)} targets, {self.stats.pages_failed} failed "
            f"in {self.stats.duration_seconds:.2f}s"
        )
        return targets
