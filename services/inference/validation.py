# services/inference/validation.py
from typing import Any, Mapping

import soupsieve
from pydantic import ValidationError

from core.exceptions import SelectorValidationError
from models.selectors import SelectorSet


def validate_selectors(data: Mapping[str, Any]) -> SelectorSet:
    """
    Build a ``SelectorSet`` from model output and check it is usable:
    ``item``, ``title`` and ``link`` present and every selector compiles.
    """
    try:
        selectors = SelectorSet(**{k: v for k, v in data.items() if k in SelectorSet.model_fields})
    except ValidationError as exc:
        raise SelectorValidationError(f"Invalid selector payload: {exc.error_count()} error(s)") from exc

    missing = selectors.missing_fields()
    if missing:
        raise SelectorValidationError(f"Missing selectors: {', '.join(missing)}")

    for name in ("item", "title", "link", "description"):
        value = getattr(selectors, name)
        if not value:
            continue
        try:
            soupsieve.compile(value)
        except soupsieve.SelectorSyntaxError as exc:
            raise SelectorValidationError(f"Invalid CSS for {name}: {value!r}") from exc
    return selectors
