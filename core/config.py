# core/config.py
"""
Application settings.

Values come from the environment (or a local ``.env`` file) and are validated
by ``pydantic-settings``.  ``get_settings()`` returns the cached process-wide
instance; tests build their own ``Settings(...)`` and pass it
explicitly to the services they exercise.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for the feed generator service."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Service
    PROJECT_NAME: str = "site2feed"
    VERSION: str = "1.0.0"
    BASE_URL: str = "http://localhost:3000"
    ALLOWED_HOSTS: List[str] = ["*"]
    PORT: int = 8000
    DEBUG: bool = False
    WORKERS: int = 1
    LOG_LEVEL: str = "INFO"

    # LLM providers (opaque bearer tokens)
    LLM_ENABLED: bool = True
    LLM_MAX_ATTEMPTS: int = 2
    LLM_TIMEOUT: float = 60.0
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-1.5-flash"
    XAI_API_KEY: Optional[str] = None
    XAI_BASE_URL: str = "https://api.x.ai/v1"
    GROK_MODEL: str = "grok-3"

    # Fetching
    DEFAULT_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )
    SEED_FETCH_TIMEOUT: float = 30.0
    PAGE_FETCH_TIMEOUT: float = 15.0
    IMAGE_FETCH_TIMEOUT: float = 8.0
    MIN_BODY_LENGTH: int = 100

    # Crawling
    DEFAULT_MAX_PAGES: int = 25
    MAX_PAGES_LIMIT: int = 50
    CRAWL_DELAY_SECONDS: float = 0.5
    NEWS_SUBPAGE_DELAY_SECONDS: float = 1.0

    # Extraction
    SELECTOR_EXCERPT_CHARS: int = 8000
    NEWS_EXCERPT_CHARS: int = 25000
    TITLE_MAX_CHARS: int = 200
    DESCRIPTION_MAX_CHARS: int = 300
    MIN_TITLE_LENGTH: int = 3
    HEURISTIC_MIN_OCCURRENCES: int = 3

    # News scan
    NEWS_MIN_ITEMS: int = 10
    NEWS_MAX_ITEMS: int = 20
    NEWS_MAX_SECTION_PAGES: int = 5
    NEWS_COMBINED_PAGES: int = 3
    NEWS_RESCAN_SUBPAGES: int = 3

    @property
    def gemini_configured(self) -> bool:
        return self.LLM_ENABLED and bool(self.GEMINI_API_KEY)

    @property
    def grok_configured(self) -> bool:
        return self.LLM_ENABLED and bool(self.XAI_API_KEY)

    def feed_url(self, feed_id: str) -> str:
        """Public URL a generated feed is advertised under."""
        return f"{self.BASE_URL.rstrip('/')}/api/feed/{feed_id}"


@lru_cache()
def get_settings() -> Settings:
    return Settings()

