# services/inference/llm_json.py
"""Turning raw model replies into JSON."""

import json
import re
from typing import Any, Dict, List

from core.exceptions import ParseError

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ``` or ``` ... ```)."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", cleaned))
    return cleaned.strip()


def _loads(text: str) -> Any:
    cleaned = strip_code_fences(text)
    if not cleaned:
        raise ParseError("Empty response from model")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Model returned malformed JSON: {exc.msg}") from exc


def parse_json_object(text: str) -> Dict[str, Any]:
    data = _loads(text)
    if not isinstance(data, dict):
        raise ParseError("Model did not return a JSON object")
    return data


def parse_json_array(text: str) -> List[Any]:
    data = _loads(text)
    if not isinstance(data, list):
        raise ParseError("Model did not return a JSON array")
    return data
