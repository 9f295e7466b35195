# services/inference/news_service.py
"""
News scan: find a site's news items with Grok, or with selectors when Grok
is unavailable.

Flow for one request:

1. fetch the seed page and collect up to ``NEWS_MAX_SECTION_PAGES`` news /
   pagination section links on the same origin;
2. fetch the first few section pages and combine their HTML with the seed;
3. ask the model for items (plus a second pass when the haul is small);
4. when still short, rescan a few section pages one by one;
5. dedupe on link + title prefix, order by importance and keep the top items.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from loguru import logger

from core.config import Settings, get_settings
from core.exceptions import FetchError, InferenceError, NoItemsFoundError
from models.content_item import ContentItem
from models.item_factory import item_from_mapping
from services.crawler.config_loader import Catalogue, get_catalogue, normalize_category
from services.crawler.content_extractor import page_title, prepare_html_excerpt
from services.crawler.dedupe import DedupeStrategy, RankStrategy, dedupe, rank
from services.crawler.item_extractor import extract_items
from services.crawler.link_extractor import origin_of
from services.scraper.fetcher import PageFetcher
from .base import NewsExtractor
from .selector_service import SelectorService

PAGE_SEPARATOR = "\n\n<!-- ADDITIONAL PAGE CONTENT -->\n\n"

FIRST_PASS_RANK = 1
SUBPAGE_RANK = 50
SECOND_PASS_RANK = 100

CONFIDENCE_BY_IMPORTANCE = {"high": "high", "medium": "medium", "low": "low"}


def make_absolute_url(link: Any, base_url: str) -> str:
    """Absolute http(s) URL for ``link``; the base URL when it is empty or unusable."""
    if not isinstance(link, str) or not link.strip():
        return base_url
    try:
        resolved = urljoin(base_url, link.strip())
    except ValueError:
        return base_url
    parsed = urlparse(resolved)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return base_url
    return resolved


class NewsScanService:
    def __init__(
        self,
        fetcher: PageFetcher,
        selector_service: SelectorService,
        extractor: Optional[NewsExtractor] = None,
        settings: Optional[Settings] = None,
        catalogue: Optional[Catalogue] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.fetcher = fetcher
        self.selector_service = selector_service
        self.extractor = extractor
        self.settings = settings or get_settings()
        self.catalogue = catalogue or get_catalogue()
        self._sleep = sleep

    # ------------------------------------------------------------------
    #  Page discovery
    # ------------------------------------------------------------------
    def section_links(self, html: str, url: str) -> List[str]:
        """Same-origin news/pagination section URLs linked from the seed page."""
        soup = BeautifulSoup(html, "html.parser")
        origin = origin_of(url)
        found: List[str] = []
        for selector in self.catalogue.news.section_link_selectors:
            for anchor in soup.select(selector):
                href = anchor.get("href")
                if not href:
                    continue
                absolute = urljoin(url, href.strip()).split("#", 1)[0]
                if origin_of(absolute) != origin or absolute == url or absolute in found:
                    continue
                found.append(absolute)
        return found[: self.settings.NEWS_MAX_SECTION_PAGES]

    async def _fetch_optional(self, url: str, delay: float) -> Optional[str]:
        if delay > 0:
            await self._sleep(delay)
        try:
            page = await self.fetcher.fetch(url, timeout=self.settings.PAGE_FETCH_TIMEOUT)
        except FetchError as exc:
            logger.warning(f"Failed to fetch additional page {url}: {exc.message}")
            return None
        return page.html

    def _excerpt(self, html: str, limit: Optional[int] = None) -> str:
        news = self.catalogue.news
        return prepare_html_excerpt(
            html,
            limit or self.settings.NEWS_EXCERPT_CHARS,
            strip=news.strip_selectors,
            containers=news.containers,
        )

    # ------------------------------------------------------------------
    #  Raw model output → ContentItem
    # ------------------------------------------------------------------
    def to_items(
        self,
        raw_items: Sequence[Any],
        base_url: str,
        rank_offset: int,
        default_importance: str,
    ) -> List[ContentItem]:
        source = urlparse(base_url).hostname or ""
        items: List[ContentItem] = []
        for raw in raw_items:
            if not isinstance(raw, dict):
                continue
            title = raw.get("title")
            if not isinstance(title, str) or not title.strip():
                continue
            data = dict(raw)
            data.update(
                title=title.strip()[: self.settings.TITLE_MAX_CHARS],
                link=make_absolute_url(raw.get("link"), base_url),
                description=raw.get("description") if isinstance(raw.get("description"), str) else "",
                category=normalize_category(raw.get("category"), self.catalogue),
                importance=raw.get("importance") or default_importance,
                timestamp=str(raw.get("timestamp") or "recent"),
                source=source,
                selected=True,
                rank=len(items) + rank_offset,
                source_page=base_url,
            )
            for key in ("id", "sourcePage", "confidence"):
                data.pop(key, None)
            items.append(item_from_mapping(data))
        return items

    # ------------------------------------------------------------------
    #  Strategies
    # ------------------------------------------------------------------
    async def _model_items(
        self, excerpt: str, url: str, title: str, pages: Sequence[str]
    ) -> List[ContentItem]:
        raw = await self.extractor.extract(excerpt, url, title, pages)
        items = self.to_items(raw, url, FIRST_PASS_RANK, "medium")
        logger.info(f"Model extracted {len(items)} valid news items")

        if len(items) < self.settings.NEWS_MIN_ITEMS:
            logger.info("Fewer than the minimum items found, attempting second pass")
            try:
                extra = await self.extractor.second_pass(excerpt, url, title)
            except InferenceError as exc:
                logger.warning(f"Second pass extraction failed: {exc.message}")
            else:
                items.extend(self.to_items(extra, url, SECOND_PASS_RANK, "low"))
        return items

    async def _rescan_subpages(self, subpages: Sequence[str], url: str) -> List[ContentItem]:
        site = f"Additional page from {urlparse(url).hostname}"
        found: List[ContentItem] = []
        for position, page_url in enumerate(subpages):
            html = await self._fetch_optional(
                page_url, self.settings.NEWS_SUBPAGE_DELAY_SECONDS if position else 0
            )
            if html is None:
                continue
            try:
                raw = await self.extractor.extract_subpage(self._excerpt(html), page_url, site)
            except InferenceError as exc:
                logger.warning(f"Failed to scan subpage {page_url}: {exc.message}")
                continue
            page_items = self.to_items(raw, page_url, SUBPAGE_RANK, "medium")
            logger.info(f"Found {len(page_items)} additional news items from {page_url}")
            found.extend(page_items)
        return found

    async def _selector_items(self, pages: Sequence[Tuple[str, str]]) -> List[ContentItem]:
        """Heuristic path: selectors inferred on the seed, applied to every fetched page."""
        seed_url, seed_html = pages[0]
        detection = await self.selector_service.detect(seed_html, seed_url, use_llm=False)
        items: List[ContentItem] = []
        for page_url, html in pages:
            for item in extract_items(html, detection.selectors, page_url, self.settings):
                items.append(
                    item.model_copy(
                        update={
                            "category": normalize_category(None, self.catalogue),
                            "importance": "medium",
                            "timestamp": "recent",
                            "source": urlparse(seed_url).hostname,
                            "rank": len(items) + FIRST_PASS_RANK,
                        }
                    )
                )
        return items

    # ------------------------------------------------------------------
    #  Public entry point
    # ------------------------------------------------------------------
    async def scan(self, url: str) -> Dict[str, Any]:
        logger.info(f"Starting news scan for: {url}")
        seed = await self.fetcher.fetch(url, timeout=self.settings.SEED_FETCH_TIMEOUT)
        title = page_title(seed.html, default="News Website")

        subpages = [url] + self.section_links(seed.html, url)
        fetched: List[Tuple[str, str]] = [(url, seed.html)]
        for page_url in subpages[1 : self.settings.NEWS_COMBINED_PAGES]:
            html = await self._fetch_optional(page_url, self.settings.CRAWL_DELAY_SECONDS)
            if html is not None:
                fetched.append((page_url, html))
        logger.info(f"Found {len(subpages)} pages to analyze, fetched {len(fetched)}")

        method = "grok-ai-enhanced-analysis"
        items: List[ContentItem] = []
        used_model = False
        if self.extractor is not None:
            combined = PAGE_SEPARATOR.join(html for _, html in fetched)
            try:
                items = await self._model_items(self._excerpt(combined), url, title, subpages)
                used_model = True
            except InferenceError as exc:
                logger.warning(f"Model news extraction failed, using selectors: {exc.message}")

        if not used_model:
            method = "heuristic-selector-analysis"
            items = await self._selector_items(fetched)

        if not items:
            raise NoItemsFoundError(
                "No news items found. The website might not contain news content or may be blocking access.",
                suggestion="Try the selector-based feed generator instead.",
            )

        original_count = len(items)
        if used_model and len(items) < self.settings.NEWS_MIN_ITEMS and len(subpages) > 1:
            logger.info(f"Found only {len(items)} items, scanning subpages for more")
            items.extend(await self._rescan_subpages(subpages[1 : 1 + self.settings.NEWS_RESCAN_SUBPAGES], url))

        unique = dedupe(items, DedupeStrategy.LINK_AND_TITLE)
        top = rank(unique, RankStrategy.IMPORTANCE, self.settings.NEWS_MAX_ITEMS)
        final = [
            item.model_copy(update={"confidence": CONFIDENCE_BY_IMPORTANCE.get(item.importance or "medium", "medium")})
            for item in top
        ]
        logger.info(f"News scan result: {len(final)} unique news items")

        return {
            "success": True,
            "newsItems": [item.to_dict() for item in final],
            "pageTitle": title,
            "url": url,
            "method": method,
            "totalFound": len(final),
            "pagesScanned": len(subpages),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "stats": {
                "originalItems": original_count,
                "afterDeduplication": len(unique),
                "finalItems": len(final),
                "pagesAnalyzed": len(subpages),
            },
        }
