# models/selectors.py
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator

REQUIRED_SELECTOR_FIELDS = ("item", "title", "link")


class SelectorSet(BaseModel):
    """
    The four CSS selectors used to pull feed items out of a page.

    Each value may itself be a comma-joined union of simpler selectors.
    ``item``, ``title`` and ``link`` must be non-empty for the set to be
    usable; ``description`` may be empty.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    item: str = ""
    title: str = ""
    link: str = ""
    description: str = ""
    confidence: Optional[str] = None
    reasoning: Optional[str] = None

    @field_validator("item", "title", "link", "description", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        if v is None:
            return ""
        if not isinstance(v, str):
            raise ValueError("selector must be a string")
        return v.strip()

    def is_complete(self) -> bool:
        return all(getattr(self, name) for name in REQUIRED_SELECTOR_FIELDS)

    def missing_fields(self) -> list[str]:
        return [name for name in REQUIRED_SELECTOR_FIELDS if not getattr(self, name)]

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
