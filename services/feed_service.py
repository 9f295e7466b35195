# services/feed_service.py
"""
The selector-driven pipeline behind the feed endpoints:

    fetch seed → infer selectors → crawl → extract per page → dedupe → rank → render
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from loguru import logger

from core.config import Settings, get_settings
from core.exceptions import FetchError, InvalidRequestError, NoItemsFoundError, SelectorValidationError
from models.content_item import ContentItem
from models.crawler_request import CrawlerRequest
from models.selectors import SelectorSet
from services.crawler.config_loader import Catalogue, get_catalogue
from services.crawler.content_extractor import page_title
from services.crawler.crawler_service import CrawlerService
from services.crawler.dedupe import DedupeStrategy, RankStrategy, dedupe, rank
from services.crawler.item_extractor import extract_items
from services.inference.selector_service import SelectorService
from services.inference.validation import validate_selectors
from services.render.magazine import DEFAULT_LAYOUT, LAYOUTS, ImageFinder, build_entries, render_magazine
from services.render.rss import build_feed_document, build_news_document, render_rss, selected_items
from services.scraper.fetcher import PageFetcher


class FeedService:
    def __init__(
        self,
        fetcher: PageFetcher,
        selector_service: SelectorService,
        settings: Optional[Settings] = None,
        catalogue: Optional[Catalogue] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.fetcher = fetcher
        self.selector_service = selector_service
        self.settings = settings or get_settings()
        self.catalogue = catalogue or get_catalogue()
        self._sleep = sleep

    def _new_feed_url(self) -> str:
        return self.settings.feed_url(uuid.uuid4().hex)

    def _page_limit(self, max_pages: Optional[int]) -> int:
        return max(1, min(max_pages or self.settings.DEFAULT_MAX_PAGES, self.settings.MAX_PAGES_LIMIT))

    # ------------------------------------------------------------------
    async def detect_selectors(self, url: str) -> Dict[str, Any]:
        page = await self.fetcher.fetch(url, timeout=self.settings.SEED_FETCH_TIMEOUT)
        detection = await self.selector_service.detect(page.html, url)
        return {
            "success": True,
            "selectors": detection.selectors.to_dict(),
            "suggestedTitle": page_title(page.html),
            "strategy": detection.strategy,
        }

    # ------------------------------------------------------------------
    async def crawl_and_extract(
        self,
        url: str,
        selectors: Optional[Mapping[str, Any]] = None,
        max_pages: Optional[int] = None,
        recursive: bool = False,
    ) -> Dict[str, Any]:
        """
        Crawl from ``url`` and extract items from every page reached.

        Caller-supplied selectors are used when complete and valid CSS;
        otherwise they are inferred once on the seed page.  Items are
        deduplicated by link and sorted by title.
        """
        seed = await self.fetcher.fetch(url, timeout=self.settings.SEED_FETCH_TIMEOUT)

        chosen: Optional[SelectorSet] = None
        strategy = "provided"
        if selectors:
            try:
                chosen = validate_selectors(selectors)
            except SelectorValidationError as exc:
                logger.warning(f"Ignoring supplied selectors for {url}: {exc.message}")
        if chosen is None:
            detection = await self.selector_service.detect(seed.html, url)
            chosen, strategy = detection.selectors, detection.strategy

        request = CrawlerRequest(
            url=url,
            max_pages=self._page_limit(max_pages),
            recursive=recursive,
            delay_seconds=self.settings.CRAWL_DELAY_SECONDS,
        )
        crawler = CrawlerService(self.fetcher, self.settings, self.catalogue, sleep=self._sleep)
        targets = await crawler.crawl(request, seed_html=seed.html)

        all_items: List[ContentItem] = []
        pages_crawled = 0
        for target in targets:
            html = target.html
            if html is None:
                await self._sleep(request.delay_seconds)
                try:
                    html = (await self.fetcher.fetch(target.url, timeout=self.settings.PAGE_FETCH_TIMEOUT)).html
                except FetchError as exc:
                    logger.warning(f"Error processing page {target.url}: {exc.message}")
                    continue
            pages_crawled += 1
            all_items.extend(extract_items(html, chosen, target.url, self.settings))

        unique = dedupe(all_items, DedupeStrategy.LINK)
        ordered = rank(unique, RankStrategy.ALPHABETICAL)
        logger.info(f"Extracted {len(all_items)} items ({len(unique)} unique) from {pages_crawled} pages")

        return {
            "success": True,
            "items": [item.to_dict() for item in ordered],
            "selectors": chosen.to_dict(),
            "strategy": strategy,
            "suggestedTitle": page_title(seed.html),
            "pagesCrawled": pages_crawled,
            "totalPagesFound": len(targets),
            "stats": {
                "totalItems": len(all_items),
                "uniqueItems": len(unique),
                "duplicatesRemoved": len(all_items) - len(unique),
            },
        }

    # ------------------------------------------------------------------
    async def generate_feed(
        self,
        url: str,
        selectors: Optional[Mapping[str, Any]] = None,
        feed_title: Optional[str] = None,
        max_items: Optional[int] = None,
        max_pages: Optional[int] = None,
        recursive: bool = False,
    ) -> Dict[str, Any]:
        """Whole pipeline in one call: crawl, extract and render RSS."""
        result = await self.crawl_and_extract(url, selectors, max_pages, recursive)
        items = [ContentItem(**data) for data in result["items"]]
        if not items:
            raise NoItemsFoundError(
                "No items found with the detected selectors.",
                suggestion="Try providing custom selectors or use the news scanner instead.",
            )
        if max_items:
            items = items[:max_items]

        doc = build_feed_document(url, items, feed_title or result["suggestedTitle"])
        feed_url = self._new_feed_url()
        return {
            "success": True,
            "xml": render_rss(doc, feed_url),
            "feedUrl": feed_url,
            "preview": doc.preview(),
            "itemsCount": len(items),
            "selectors": result["selectors"],
            "pagesCrawled": result["pagesCrawled"],
        }

    # ------------------------------------------------------------------
    def render_feed(self, url: str, items: List[ContentItem], feed_title: Optional[str] = None) -> Dict[str, Any]:
        """RSS for items the user picked (``selected`` ones only)."""
        chosen = selected_items(items)
        if not chosen:
            raise InvalidRequestError("No items selected")
        doc = build_feed_document(url, chosen, feed_title)
        feed_url = self._new_feed_url()
        return {"success": True, "xml": render_rss(doc, feed_url), "feedUrl": feed_url, "preview": doc.preview()}

    def render_news_feed(self, url: str, items: List[ContentItem], feed_title: Optional[str] = None) -> Dict[str, Any]:
        chosen = selected_items(items)
        if not chosen:
            raise InvalidRequestError("No news items selected")
        doc = build_news_document(url, chosen, feed_title)
        feed_url = self._new_feed_url()
        return {
            "success": True,
            "xml": render_rss(doc, feed_url),
            "feedUrl": feed_url,
            "preview": doc.preview(),
            "stats": {
                "totalScanned": len(items),
                "selected": len(chosen),
                "categories": len(doc.categories),
                "highImportance": sum(1 for item in chosen if item.importance == "high"),
            },
        }

    async def preview_images(self, items: List[ContentItem]) -> Dict[str, Any]:
        """Attach a ``previewImage`` to every item: its lead image, else a placeholder."""
        finder = ImageFinder(self.fetcher, self.settings, self.catalogue)
        entries = await build_entries(items, finder, self.catalogue)
        return {
            "success": True,
            "items": [dict(entry.item.to_dict(), previewImage=entry.image_url) for entry in entries],
        }

    async def render_magazine(
        self,
        items: List[ContentItem],
        feed_title: Optional[str] = None,
        layout: str = DEFAULT_LAYOUT,
        enrich_images: bool = True,
        source_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        chosen = selected_items(items)
        if not chosen:
            raise InvalidRequestError("No news items selected")
        if layout not in LAYOUTS:
            logger.info(f"Unknown magazine layout {layout!r}, using {DEFAULT_LAYOUT}")
            layout = DEFAULT_LAYOUT

        finder = ImageFinder(self.fetcher, self.settings, self.catalogue) if enrich_images else None
        entries = await build_entries(chosen, finder, self.catalogue)
        now = datetime.now(timezone.utc)
        return {
            "success": True,
            "magazineHtml": render_magazine(entries, feed_title or "News Magazine", layout, now, source_url),
            "itemsCount": len(chosen),
            "layout": layout,
            "timestamp": now.isoformat(),
        }
