# api/v1/endpoints/feeds.py
from fastapi import APIRouter, Depends
from loguru import logger

from api.deps import get_feed_service
from models.requests import CrawlExtractRequest, GenerateFeedRequest, RenderFeedRequest
from services.feed_service import FeedService
from services.scraper.fetcher import ensure_http_url

router = APIRouter()


@router.post("/crawl-and-extract")
async def crawl_and_extract(body: CrawlExtractRequest, service: FeedService = Depends(get_feed_service)):
    """Crawl the site and return every extracted item for review."""
    url = ensure_http_url(body.url)
    logger.info(f"Starting to crawl: {url}")
    return await service.crawl_and_extract(url, body.selectors, body.max_pages, body.recursive)


@router.post("/render-feed")
async def render_feed(body: RenderFeedRequest, service: FeedService = Depends(get_feed_service)):
    url = ensure_http_url(body.url)
    return service.render_feed(url, body.selected_items, body.feed_title)


@router.post("/generate-feed")
async def generate_feed(body: GenerateFeedRequest, service: FeedService = Depends(get_feed_service)):
    """Crawl, extract and render RSS in one request."""
    url = ensure_http_url(body.url)
    return await service.generate_feed(
        url,
        selectors=body.selectors,
        feed_title=body.feed_title,
        max_items=body.max_items,
        max_pages=body.max_pages,
        recursive=body.recursive,
    )
