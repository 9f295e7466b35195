# api/v1/endpoints/news.py
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from loguru import logger

from api.deps import get_feed_service, get_grok, get_news_service
from core.exceptions import InferenceError
from models.requests import NewsFeedRequest, PreviewImagesRequest, RenderMagazineRequest, UrlRequest
from services.feed_service import FeedService
from services.inference.grok import GrokNewsExtractor
from services.inference.news_service import NewsScanService
from services.scraper.fetcher import ensure_http_url

router = APIRouter()


@router.post("/news-scan")
async def news_scan(body: UrlRequest, service: NewsScanService = Depends(get_news_service)):
    """Model-driven news extraction over the seed page and its section pages."""
    url = ensure_http_url(body.url)
    return await service.scan(url)


@router.post("/news-feed")
async def news_feed(body: NewsFeedRequest, service: FeedService = Depends(get_feed_service)):
    url = ensure_http_url(body.url)
    return service.render_news_feed(url, body.news_items, body.feed_title)


@router.post("/render-magazine")
async def render_magazine(body: RenderMagazineRequest, service: FeedService = Depends(get_feed_service)):
    """Styled HTML magazine for the selected news items."""
    source_url = ensure_http_url(body.url) if body.url else None
    return await service.render_magazine(
        body.news_items,
        feed_title=body.feed_title,
        layout=body.layout,
        enrich_images=body.enrich_images,
        source_url=source_url,
    )


@router.post("/generate-preview-images")
async def generate_preview_images(body: PreviewImagesRequest, service: FeedService = Depends(get_feed_service)):
    return await service.preview_images(body.items)


@router.post("/test-grok")
async def test_grok(grok: Optional[GrokNewsExtractor] = Depends(get_grok)):
    """Connectivity check; the one place a provider failure is reported as such."""
    timestamp = datetime.now(timezone.utc).isoformat()
    if grok is None:
        return {"success": False, "error": "Grok is not configured (XAI_API_KEY missing)", "timestamp": timestamp}
    try:
        reply = await grok.test_connection()
    except InferenceError as exc:
        logger.error(f"Grok test failed: {exc.message}")
        return {"success": False, "error": exc.message, "timestamp": timestamp}
    return {
        "success": True,
        "message": "Grok connection successful!",
        "grokResponse": reply,
        "timestamp": timestamp,
    }
