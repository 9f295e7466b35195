# models/crawler_request.py
import re
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ----------------------------------------------------------------------
#  Crawl status enumeration – used by the service to track progress
# ----------------------------------------------------------------------
class CrawlStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# ----------------------------------------------------------------------
#  Simple stats container – the service updates these while crawling
# ----------------------------------------------------------------------
class CrawlStats(BaseModel):
    pages_discovered: int = 0
    pages_fetched: int = 0
    pages_failed: int = 0
    duration_seconds: float = 0.0


# ----------------------------------------------------------------------
#  One URL in the crawl queue
# ----------------------------------------------------------------------
class CrawlTarget(BaseModel):
    """
    A page the crawl session will visit.

    ``html`` is filled when the crawler already fetched the page while
    looking for links, so the extraction pass can reuse it within the same
    session.  It never leaves the process.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    depth: int = 0
    html: Optional[str] = Field(default=None, exclude=True, repr=False)


# ----------------------------------------------------------------------
#  Main request model – what the feed service hands to CrawlerService
# ----------------------------------------------------------------------
class CrawlerRequest(BaseModel):
    """
    Parameters for one crawl session.

    ``recursive`` switches between the two crawl shapes: ``False`` scans only
    the seed page for links (single-level fan-out), ``True`` keeps expanding
    breadth-first until ``max_pages`` targets are known.
    """

    url: str = Field(..., description="Seed URL to start crawling from")
    max_pages: int = Field(
        default=25,
        ge=1,
        le=200,
        description="Maximum number of pages in the crawl output (seed included)",
    )
    recursive: bool = Field(
        default=False,
        description="Follow links found on every visited page, not only the seed",
    )
    delay_seconds: float = Field(
        default=0.5,
        ge=0.0,
        description="Politeness delay between successive page fetches",
    )
    exclude_patterns: List[str] = Field(
        default_factory=list,
        description="Regex patterns for URLs that should be skipped",
    )
    include_patterns: List[str] = Field(
        default_factory=list,
        description="Regex patterns for URLs that must be crawled",
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("exclude_patterns", "include_patterns")
    @classmethod
    def _validate_regex(cls, patterns: List[str]) -> List[str]:
        """Ensure every supplied pattern is a valid regular expression."""
        for pattern in patterns:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"Invalid regex pattern '{pattern}': {exc}") from exc
        return patterns

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "url": "https://example.com/blog",
                "max_pages": 10,
                "recursive": False,
                "delay_seconds": 0.5,
                "exclude_patterns": [r"/tag/.*"],
                "include_patterns": [],
            }
        }
    )
