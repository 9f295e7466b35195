# api/deps.py
"""FastAPI dependencies handing out the services built in the app lifespan."""

from typing import Optional

from fastapi import Request

from services.feed_service import FeedService
from services.inference.grok import GrokNewsExtractor
from services.inference.news_service import NewsScanService
from services.inference.page_analysis import PageAnalysisService
from services.scraper.fetcher import PageFetcher


def get_fetcher(request: Request) -> PageFetcher:
    return request.app.state.fetcher


def get_feed_service(request: Request) -> FeedService:
    return request.app.state.feed_service


def get_news_service(request: Request) -> NewsScanService:
    return request.app.state.news_service


def get_page_analysis(request: Request) -> PageAnalysisService:
    return request.app.state.page_analysis


def get_grok(request: Request) -> Optional[GrokNewsExtractor]:
    return request.app.state.grok
