# api/v1/endpoints/selectors.py
from fastapi import APIRouter, Depends
from loguru import logger

from api.deps import get_feed_service, get_fetcher, get_page_analysis
from models.requests import UrlRequest
from services.crawler.diagnostics import analyze_selectors
from services.feed_service import FeedService
from services.inference.page_analysis import PageAnalysisService
from services.scraper.fetcher import PageFetcher, ensure_http_url

router = APIRouter()


@router.post("/detect-selectors")
async def detect_selectors(body: UrlRequest, service: FeedService = Depends(get_feed_service)):
    """Infer the four feed selectors for a page."""
    url = ensure_http_url(body.url)
    logger.info(f"Detecting selectors for {url}")
    return await service.detect_selectors(url)


@router.post("/debug-selectors")
async def debug_selectors(body: UrlRequest, fetcher: PageFetcher = Depends(get_fetcher)):
    """Element counts and candidate selectors with samples; changes nothing."""
    url = ensure_http_url(body.url)
    page = await fetcher.fetch(url, timeout=fetcher.settings.SEED_FETCH_TIMEOUT)
    return {"success": True, **analyze_selectors(page.html, url)}


@router.post("/analyze-page")
async def analyze_page(body: UrlRequest, service: PageAnalysisService = Depends(get_page_analysis)):
    url = ensure_http_url(body.url)
    return await service.analyze(url)
