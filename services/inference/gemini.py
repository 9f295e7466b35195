# services/inference/gemini.py
"""
Gemini adapters: selector inference and page-structure analysis.

Provider calls are retried on transient API errors; whatever still fails
is surfaced as ``InferenceError`` so the caller's strategy chain can move on.
"""

import asyncio
from typing import Any, Dict, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from loguru import logger
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.config import Settings, get_settings
from core.exceptions import InferenceError, ParseError
from models.selectors import SelectorSet
from .llm_json import parse_json_object
from .validation import validate_selectors

SELECTOR_PROMPT = """
You are an expert web scraper analyzing HTML to create RSS feeds. Analyze this HTML content from {url} and suggest the best CSS selectors for extracting RSS feed items.

HTML Content (truncated for analysis):
{html}

IMPORTANT: You must provide valid, non-empty CSS selectors. If you cannot find clear patterns, use common fallback selectors.

Please analyze the HTML structure and provide CSS selectors in this exact JSON format:
{{
  "item": "CSS selector for each content item/article",
  "title": "CSS selector for the title within each item",
  "link": "CSS selector for the link within each item",
  "description": "CSS selector for description/excerpt within each item (can be empty string if none)"
}}

Guidelines:
1. Look for repeating content patterns (articles, posts, news items, products, listings, etc.)
2. The "item" selector should target the container of each piece of content
3. The "title", "link", and "description" selectors should work WITHIN each item container
4. Prefer semantic HTML elements when available (article, h1-h6, a, p)
5. If no clear description is available, return empty string for description
6. Never return empty strings for item, title, or link
7. Selectors should work across pages with a similar structure

Return ONLY the JSON object, no additional text or explanation.
"""

STRUCTURE_PROMPT = """
You are an expert web content analyst. Analyze the HTML of the website "{title}" ({url}) and identify the content areas that would be valuable for an RSS feed (news articles, blog posts, product listings, events, job postings, forum posts).

HTML Content (truncated for analysis):
{html}

Provide your analysis in this JSON format:
{{
  "contentType": "Type of content (news, blog, ecommerce, forum, etc.)",
  "mainContentAreas": [
    {{
      "description": "Description of content area",
      "location": "Where in the page it sits",
      "importance": "high/medium/low",
      "contentPattern": "Description of repeating pattern"
    }}
  ],
  "recommendedFocus": "What content should be prioritized for RSS",
  "layoutType": "grid/list/cards/mixed",
  "excludeAreas": ["Areas to avoid like navigation, ads, etc."],
  "confidence": "high/medium/low"
}}

Return ONLY the JSON object, no additional text or explanation.
"""

TRANSIENT_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.ResourceExhausted,
    google_exceptions.DeadlineExceeded,
    google_exceptions.InternalServerError,
    asyncio.TimeoutError,
)


class GeminiClient:
    """Thin async wrapper over ``genai.GenerativeModel``."""

    def __init__(self, api_key: str, model_name: str, max_attempts: int = 2, timeout: float = 60.0):
        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(model_name)
        self.model_name = model_name
        self.max_attempts = max_attempts
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> Optional["GeminiClient"]:
        settings = settings or get_settings()
        if not settings.gemini_configured:
            return None
        return cls(
            api_key=settings.GEMINI_API_KEY,
            model_name=settings.GEMINI_MODEL,
            max_attempts=settings.LLM_MAX_ATTEMPTS,
            timeout=settings.LLM_TIMEOUT,
        )

    async def _generate_once(self, prompt: str) -> str:
        response = await asyncio.wait_for(self.model.generate_content_async(prompt), timeout=self.timeout)
        return response.text

    async def generate(self, prompt: str) -> str:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=1, min=1, max=4),
                retry=retry_if_exception_type(TRANSIENT_ERRORS),
                reraise=True,
            ):
                with attempt:
                    return await self._generate_once(prompt)
        except (google_exceptions.GoogleAPIError, asyncio.TimeoutError, ValueError) as exc:
            # ValueError: response.text on a blocked / empty candidate
            raise InferenceError(f"Gemini request failed: {exc}") from exc
        raise InferenceError("Gemini request failed")


class GeminiSelectorInferencer:
    """Asks Gemini for the four feed selectors."""

    def __init__(self, client: GeminiClient):
        self.client = client

    async def infer(self, excerpt: str, url: str) -> SelectorSet:
        text = await self.client.generate(SELECTOR_PROMPT.format(url=url, html=excerpt))
        selectors = validate_selectors(parse_json_object(text))
        logger.info(f"Gemini proposed selectors for {url}: item={selectors.item!r}")
        return selectors.model_copy(update={"confidence": selectors.confidence or "high"})


class GeminiStructureAnalyzer:
    """Asks Gemini what kind of page this is and where its content lives."""

    def __init__(self, client: GeminiClient):
        self.client = client

    async def analyze(self, excerpt: str, url: str, page_title: str) -> Dict[str, Any]:
        text = await self.client.generate(STRUCTURE_PROMPT.format(url=url, title=page_title, html=excerpt))
        analysis = parse_json_object(text)
        if not analysis.get("contentType") or not isinstance(analysis.get("mainContentAreas"), list):
            raise ParseError("Invalid analysis structure from model")
        analysis.setdefault("layoutType", "mixed")
        analysis.setdefault("excludeAreas", [])
        analysis.setdefault("confidence", "medium")
        analysis["method"] = "gemini-structure-analysis"
        return analysis
