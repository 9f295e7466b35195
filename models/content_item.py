# models/content_item.py
from __future__ import annotations

import uuid
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Importance = Literal["high", "medium", "low"]

IMPORTANCE_ORDER: Dict[str, int] = {"high": 3, "medium": 2, "low": 1}


def _new_item_id() -> str:
    return uuid.uuid4().hex


class ContentItem(BaseModel):
    """
    One candidate feed entry.

    The first block of fields is filled by selector-based extraction; the
    optional block is only populated on the LLM news-extraction path.  JSON
    uses camelCase names (``sourcePage``) to match what the browser UI sends
    back in ``selectedItems`` / ``newsItems``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str = Field(default_factory=_new_item_id)
    title: str
    link: str
    description: str = ""
    source_page: Optional[str] = None
    selected: bool = True

    # LLM news-extraction extras
    category: Optional[str] = None
    importance: Optional[Importance] = None
    rank: Optional[int] = None
    timestamp: Optional[str] = None
    confidence: Optional[str] = None
    source: Optional[str] = None

    @field_validator("title", "link", "description", mode="before")
    @classmethod
    def _strip(cls, v: Optional[Union[str, Any]]) -> Any:
        if v is None:
            return ""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("importance", mode="before")
    @classmethod
    def _normalise_importance(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip().lower()
        return v if v in IMPORTANCE_ORDER else "medium"

    @property
    def importance_tier(self) -> int:
        return IMPORTANCE_ORDER.get(self.importance or "medium", 2)

    def to_dict(self) -> Dict[str, Any]:
        """camelCase JSON payload with unset optional fields dropped."""
        return self.model_dump(by_alias=True, exclude_none=True)
