# services/inference/page_analysis.py
"""Page structure analysis followed by selector detection."""

from typing import Any, Dict, Optional

from bs4 import BeautifulSoup
from loguru import logger

from core.config import Settings, get_settings
from core.exceptions import InferenceError
from services.crawler.content_extractor import page_title, prepare_html_excerpt
from services.scraper.fetcher import PageFetcher
from .base import StructureAnalyzer, first_success
from .heuristic import analyze_html_structure
from .selector_service import SelectorService


class PageAnalysisService:
    """
    Two ordered strategies describe the page (model analysis, then counting
    common containers), after which the usual selector chain runs.  No
    screenshot is taken; ``screenshot`` is always ``None`` in the result.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        selector_service: SelectorService,
        analyzer: Optional[StructureAnalyzer] = None,
        settings: Optional[Settings] = None,
    ):
        self.fetcher = fetcher
        self.selector_service = selector_service
        self.analyzer = analyzer
        self.settings = settings or get_settings()

    async def analyze(self, url: str) -> Dict[str, Any]:
        page = await self.fetcher.fetch(url, timeout=self.settings.SEED_FETCH_TIMEOUT)
        soup = BeautifulSoup(page.html, "html.parser")
        title = page_title(page.html, default="Unknown Page", soup=soup)

        attempts = []
        if self.analyzer is not None:
            excerpt = prepare_html_excerpt(page.html, self.settings.SELECTOR_EXCERPT_CHARS)

            async def model_analysis() -> Dict[str, Any]:
                try:
                    return await self.analyzer.analyze(excerpt, url, title)
                except InferenceError:
                    raise
                except Exception as exc:
                    logger.exception(f"Unexpected structure analysis failure for {url}")
                    raise InferenceError(str(exc)) from exc

            attempts.append(("gemini", model_analysis))

        async def structure_counts() -> Dict[str, Any]:
            return analyze_html_structure(soup)

        attempts.append(("html-structure", structure_counts))

        method, analysis = await first_success(attempts)
        detection = await self.selector_service.detect(page.html, url)

        return {
            "success": True,
            "screenshot": None,
            "analysis": analysis,
            "selectors": detection.selectors.to_dict(),
            "selectorStrategy": detection.strategy,
            "pageTitle": title,
            "url": url,
            "method": method,
        }
