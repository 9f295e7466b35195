# services/inference/grok.py
"""
Grok (xAI) adapters for news extraction, through the OpenAI-compatible API.

Each call returns the model's JSON array of raw news dicts; turning them into
``ContentItem`` objects is the news service's job.
"""

from typing import Any, Dict, List, Optional, Sequence

import openai
from loguru import logger
from openai import AsyncOpenAI
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.config import Settings, get_settings
from core.exceptions import InferenceError
from .llm_json import parse_json_array

CATEGORY_LIST = "Technology, Business, Politics, Sports, Entertainment, Health, Science, World, General"

NEWS_SYSTEM_PROMPT = f"""You are an expert news analyst and web scraper. Your task is to analyze HTML content from news websites and extract AT LEAST 10-15 news items, but preferably more if available.

ANALYSIS GUIDELINES:
1. Focus on actual news articles, stories, and reports
2. Include breaking news, featured stories, regular articles, and news briefs
3. Avoid advertisements, navigation, and promotional content
4. Ensure each item has a clear title and link
5. Look for news in different sections (politics, tech, sports, business, etc.)

CATEGORY CLASSIFICATION - use ONE of: {CATEGORY_LIST}

IMPORTANCE LEVELS:
- high: Breaking news, major announcements, significant events
- medium: Regular news stories, updates
- low: Minor updates, brief mentions

RESPONSE FORMAT - a JSON array:
[
  {{
    "title": "Clear, descriptive news headline",
    "link": "Full URL to the article",
    "description": "Brief summary (2-3 sentences max)",
    "category": "One of the 9 categories",
    "importance": "high/medium/low",
    "timestamp": "Publication time if available, or 'recent'"
  }}
]

Return ONLY the JSON array, no additional text."""

NEWS_PROMPT = """Analyze this HTML content from {url} ({title}) and extract ALL available news items. The content may include multiple pages: {pages}

HTML CONTENT:
{html}

Website URL: {url}
Page Title: {title}
Pages Analyzed: {page_count}

Use ONLY these 9 categories: """ + CATEGORY_LIST

SECOND_PASS_SYSTEM_PROMPT = f"""You are a comprehensive news extraction specialist. Find EVERY possible news item, article, or story in the provided HTML content: headlines, article titles, story briefs, blog posts, analysis pieces, from every section of the page.

CATEGORIES: use ONLY {CATEGORY_LIST}

Return ONLY a JSON array of objects with title, link, description, category, importance, timestamp."""

SECOND_PASS_PROMPT = """Perform a comprehensive second-pass extraction on this HTML content. Find EVERY possible news item:

{html}"""

SUBPAGE_PROMPT = """Extract all news items from this HTML content from {url} ({site}). Return a JSON array with title, link, description, category (use ONLY: """ + CATEGORY_LIST + """), importance, timestamp fields:

{html}"""

TEST_PROMPT = (
    "Hello! Can you confirm that you're working properly? Please respond with a brief "
    "confirmation and your current capabilities for web content analysis."
)

SECOND_PASS_CHARS = 15000
SUBPAGE_CHARS = 10000

TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class GrokClient:
    """Chat-completions client pointed at the xAI endpoint."""

    def __init__(self, api_key: str, base_url: str, model: str, max_attempts: int = 2, timeout: float = 60.0):
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        self.model = model
        self.max_attempts = max_attempts

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> Optional["GrokClient"]:
        settings = settings or get_settings()
        if not settings.grok_configured:
            return None
        return cls(
            api_key=settings.XAI_API_KEY,
            base_url=settings.XAI_BASE_URL,
            model=settings.GROK_MODEL,
            max_attempts=settings.LLM_MAX_ATTEMPTS,
            timeout=settings.LLM_TIMEOUT,
        )

    async def complete(self, prompt: str, system: Optional[str] = None) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=1, min=1, max=4),
                retry=retry_if_exception_type(TRANSIENT_ERRORS),
                reraise=True,
            ):
                with attempt:
                    response = await self.client.chat.completions.create(model=self.model, messages=messages)
        except openai.OpenAIError as exc:
            raise InferenceError(f"Grok analysis failed: {exc}") from exc

        if not response.choices or not response.choices[0].message.content:
            raise InferenceError("Grok returned an empty response")
        return response.choices[0].message.content

    async def close(self) -> None:
        await self.client.close()


class GrokNewsExtractor:
    def __init__(self, client: GrokClient):
        self.client = client

    async def extract(self, excerpt: str, url: str, page_title: str, pages: Sequence[str]) -> List[Dict[str, Any]]:
        prompt = NEWS_PROMPT.format(
            url=url, title=page_title, pages=", ".join(pages), html=excerpt, page_count=len(pages)
        )
        items = parse_json_array(await self.client.complete(prompt, system=NEWS_SYSTEM_PROMPT))
        logger.info(f"Grok returned {len(items)} raw news items for {url}")
        return items

    async def second_pass(self, excerpt: str, url: str, page_title: str) -> List[Dict[str, Any]]:
        prompt = SECOND_PASS_PROMPT.format(html=excerpt[:SECOND_PASS_CHARS])
        return parse_json_array(await self.client.complete(prompt, system=SECOND_PASS_SYSTEM_PROMPT))

    async def extract_subpage(self, excerpt: str, url: str, site: str) -> List[Dict[str, Any]]:
        prompt = SUBPAGE_PROMPT.format(url=url, site=site, html=excerpt[:SUBPAGE_CHARS])
        return parse_json_array(await self.client.complete(prompt))

    async def test_connection(self) -> str:
        return await self.client.complete(TEST_PROMPT)
