# services/inference/base.py
"""
Seams between the services and the hosted models.

The services only ever see these protocols, so tests (and deployments
without API keys) swap in stubs or leave the slot empty.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Tuple, TypeVar

from loguru import logger

from core.exceptions import InferenceError
from models.selectors import SelectorSet

T = TypeVar("T")


class SelectorInferencer(Protocol):
    async def infer(self, excerpt: str, url: str) -> SelectorSet:
        """Propose a selector set for the page, or raise ``InferenceError``."""
        ...


class StructureAnalyzer(Protocol):
    async def analyze(self, excerpt: str, url: str, page_title: str) -> Dict[str, Any]:
        ...


class NewsExtractor(Protocol):
    async def extract(self, excerpt: str, url: str, page_title: str, pages: Sequence[str]) -> List[Dict[str, Any]]:
        ...

    async def second_pass(self, excerpt: str, url: str, page_title: str) -> List[Dict[str, Any]]:
        ...

    async def extract_subpage(self, excerpt: str, url: str, site: str) -> List[Dict[str, Any]]:
        ...


Attempt = Tuple[str, Callable[[], Awaitable[T]]]


async def first_success(attempts: Sequence[Attempt]) -> Tuple[str, T]:
    """
    Run named strategies in order and return ``(name, result)`` of the first
    one that does not raise ``InferenceError``.  Re-raises the last error when
    every strategy fails.
    """
    last_error: Optional[InferenceError] = None
    for name, attempt in attempts:
        try:
            return name, await attempt()
        except InferenceError as exc:
            logger.info(f"Strategy '{name}' failed, falling through: {exc.message}")
            last_error = exc
    raise last_error or InferenceError("No strategy available")
