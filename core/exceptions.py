# core/exceptions.py
"""
Error taxonomy shared by the services and the API layer.

Every endpoint reports failures as ``{"success": false, "error": "..."}``;
``FeedToolError.to_dict()`` produces exactly that shape so the exception
handlers in ``main.py`` can return it unchanged.
"""

from typing import Any, Dict, List, Optional


class FeedToolError(Exception):
    """Base class for every error the service reports to a caller."""

    code = "FEED_TOOL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": False, "error": self.message}
        if self.details:
            payload.update(self.details)
        return payload


class InvalidRequestError(FeedToolError):
    """Missing or malformed top-level request parameters."""

    code = "INVALID_REQUEST"


MISSING_FIELD_MESSAGES = {"url": "URL is required", "items": "Items array is required"}


class RequestValidationFailed(InvalidRequestError):
    """Wraps the error list produced by FastAPI request validation."""

    def __init__(self, errors: List[Dict[str, Any]]):
        message = "Invalid request data"
        for err in errors:
            if err.get("type") == "missing" and err.get("loc", [None])[-1] in MISSING_FIELD_MESSAGES:
                message = MISSING_FIELD_MESSAGES[err["loc"][-1]]
                break
        super().__init__(message)
        self.errors = errors


# ----------------------------------------------------------------------
# Fetch failures – skip-and-continue while crawling, fatal on the seed URL
# ----------------------------------------------------------------------
class FetchError(FeedToolError):
    """Any failure retrieving a page."""

    code = "FETCH_ERROR"

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class HttpStatusError(FetchError):
    code = "HTTP_STATUS"

    def __init__(self, url: str, status_code: int, reason: str = ""):
        text = f"Website returned {status_code}"
        if reason:
            text = f"{text} {reason}"
        super().__init__(url, text)
        self.status_code = status_code


class ContentTypeError(FetchError):
    code = "CONTENT_TYPE"

    def __init__(self, url: str, content_type: Optional[str]):
        super().__init__(url, "URL does not point to an HTML page")
        self.content_type = content_type


class FetchTimeoutError(FetchError):
    code = "TIMEOUT"

    def __init__(self, url: str):
        super().__init__(url, "Request timed out. The website may be slow or unreachable.")


class NetworkError(FetchError):
    code = "NETWORK"

    def __init__(self, url: str, reason: str = ""):
        message = "Failed to fetch webpage. The site may be blocking requests or temporarily unavailable."
        if reason:
            message = f"{message} ({reason})"
        super().__init__(url, message)


class EmptyBodyError(FetchError):
    code = "EMPTY_BODY"

    def __init__(self, url: str, length: int):
        super().__init__(url, "Received empty or very short response from website")
        self.length = length


# ----------------------------------------------------------------------
# Inference failures – always absorbed by the fallback strategy
# ----------------------------------------------------------------------
class InferenceError(FeedToolError):
    """An LLM provider was unavailable or returned something unusable."""

    code = "INFERENCE_ERROR"


class ParseError(InferenceError):
    code = "PARSE_ERROR"


class SelectorValidationError(InferenceError):
    code = "SELECTOR_VALIDATION"


class NoItemsFoundError(FeedToolError):
    code = "NO_ITEMS"

    def __init__(self, message: Optional[str] = None, suggestion: Optional[str] = None):
        super().__init__(
            message or "No items found with the detected selectors.",
            {"suggestion": suggestion} if suggestion else None,
        )
