# services/inference/selector_service.py
"""
Selector inference as an ordered list of strategies.

``gemini`` (when configured) → ``heuristic`` → ``fallback``.  The last one
cannot fail, so ``detect`` always returns a complete ``SelectorSet``.
"""

from typing import Optional

from bs4 import BeautifulSoup
from loguru import logger
from prometheus_client import Counter
from pydantic import BaseModel

from core.config import Settings, get_settings
from core.exceptions import InferenceError
from models.selectors import SelectorSet
from services.crawler.config_loader import Catalogue, get_catalogue
from services.crawler.content_extractor import prepare_html_excerpt
from .base import SelectorInferencer, first_success
from .heuristic import HeuristicSelectorInferencer

INFERENCE_STRATEGY = Counter("selector_inference_total", "Selector sets produced, by strategy", ["strategy"])


class SelectorDetection(BaseModel):
    selectors: SelectorSet
    strategy: str


class SelectorService:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        catalogue: Optional[Catalogue] = None,
        llm: Optional[SelectorInferencer] = None,
    ):
        self.settings = settings or get_settings()
        self.catalogue = catalogue or get_catalogue()
        self.llm = llm
        self.heuristic = HeuristicSelectorInferencer(
            self.catalogue, self.settings.HEURISTIC_MIN_OCCURRENCES
        )

    async def detect(self, html: str, url: str, use_llm: bool = True) -> SelectorDetection:
        """Infer selectors for the seed page ``html``; never raises for provider failures."""
        soup = BeautifulSoup(html, "html.parser")
        attempts = []

        if use_llm and self.llm is not None:
            excerpt_cfg = self.catalogue.html_excerpt
            excerpt = prepare_html_excerpt(
                html,
                self.settings.SELECTOR_EXCERPT_CHARS,
                strip=excerpt_cfg.strip_tags,
                containers=excerpt_cfg.containers,
            )

            async def llm() -> SelectorSet:
                try:
                    return await self.llm.infer(excerpt, url)
                except InferenceError:
                    raise
                except Exception as exc:
                    logger.exception(f"Unexpected selector inference failure for {url}")
                    raise InferenceError(str(exc)) from exc

            attempts.append(("gemini", llm))

        async def heuristic() -> SelectorSet:
            return self.heuristic.detect(soup)

        async def fallback() -> SelectorSet:
            return self.heuristic.static_fallback()

        attempts.append(("heuristic", heuristic))
        attempts.append(("fallback", fallback))

        strategy, selectors = await first_success(attempts)
        INFERENCE_STRATEGY.labels(strategy=strategy).inc()
        logger.info(f"Selectors for {url} from '{strategy}' strategy")
        return SelectorDetection(selectors=selectors, strategy=strategy)
