# tests/test_selector_inference.py
import pytest

from conftest import html_page, run
from core.exceptions import InferenceError, ParseError, SelectorValidationError
from models.selectors import SelectorSet
from services.inference.base import first_success
from services.inference.gemini import GeminiSelectorInferencer, GeminiStructureAnalyzer
from services.inference.heuristic import HeuristicSelectorInferencer, analyze_html_structure
from services.inference.llm_json import parse_json_array, parse_json_object, strip_code_fences
from services.inference.selector_service import SelectorService
from services.inference.validation import validate_selectors


# ----------------------------------------------------------------------
# Stubs standing in for the hosted models
# ----------------------------------------------------------------------
class FailingInferencer:
    def __init__(self, exc: Exception):
        self.exc = exc
        self.calls = 0

    async def infer(self, excerpt, url):
        self.calls += 1
        raise self.exc


class FixedInferencer:
    def __init__(self, selectors: SelectorSet):
        self.selectors = selectors
        self.excerpts = []

    async def infer(self, excerpt, url):
        self.excerpts.append(excerpt)
        return self.selectors


class ScriptedClient:
    """Quacks like ``GeminiClient``: returns canned replies in order."""

    def __init__(self, *replies: str):
        self.replies = list(replies)
        self.prompts = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.replies.pop(0)


NO_PATTERN_PAGE = html_page("<div><h1>Welcome</h1><p>Nothing repeats on this page at all.</p></div>")


def _assert_usable(selectors: SelectorSet):
    assert selectors.item and selectors.title and selectors.link


# ----------------------------------------------------------------------
# Strategy chain
# ----------------------------------------------------------------------
@pytest.mark.parametrize(
    "error",
    [InferenceError("provider down"), ParseError("garbage"), RuntimeError("client blew up")],
)
def test_provider_failure_still_yields_complete_selectors(settings, catalogue, five_articles, error):
    llm = FailingInferencer(error)
    service = SelectorService(settings, catalogue, llm=llm)

    detection = run(service.detect(five_articles, "https://example.com/"))

    assert llm.calls == 1
    assert detection.strategy == "heuristic"
    _assert_usable(detection.selectors)
    assert detection.selectors.item.startswith("article")


def test_static_fallback_when_nothing_repeats(settings, catalogue):
    service = SelectorService(settings, catalogue, llm=FailingInferencer(InferenceError("down")))

    detection = run(service.detect(NO_PATTERN_PAGE, "https://example.com/"))

    assert detection.strategy == "fallback"
    assert detection.selectors.confidence == "low"
    assert detection.selectors.item == catalogue.fallback.item
    _assert_usable(detection.selectors)


def test_model_selectors_win_when_available(settings, catalogue, five_articles):
    proposed = SelectorSet(item="main article", title="h2", link="a", description="p", confidence="high")
    llm = FixedInferencer(proposed)
    service = SelectorService(settings, catalogue, llm=llm)

    detection = run(service.detect(five_articles, "https://example.com/"))

    assert detection.strategy == "gemini"
    assert detection.selectors == proposed
    # The model sees a trimmed excerpt, not the whole document.
    assert "<script" not in llm.excerpts[0]
    assert len(llm.excerpts[0]) <= settings.SELECTOR_EXCERPT_CHARS + 3


def test_use_llm_false_skips_the_model(settings, catalogue, five_articles):
    llm = FailingInferencer(InferenceError("should not be called"))
    service = SelectorService(settings, catalogue, llm=llm)

    detection = run(service.detect(five_articles, "https://example.com/", use_llm=False))

    assert llm.calls == 0
    assert detection.strategy == "heuristic"


def test_first_success_reraises_last_error():
    async def boom():
        raise InferenceError("second")

    async def first():
        raise InferenceError("first")

    with pytest.raises(InferenceError) as exc_info:
        run(first_success([("a", first), ("b", boom)]))
    assert exc_info.value.message == "second"


# ----------------------------------------------------------------------
# Heuristic detector
# ----------------------------------------------------------------------
def test_heuristic_picks_most_frequent_class_pattern(catalogue):
    cards = "".join(f'<div class="news-card"><h3>Card {n}</h3><a href="/c/{n}">go</a></div>' for n in range(4))
    page = html_page(f"<article><h2>Lonely</h2></article>{cards}")

    selectors = HeuristicSelectorInferencer(catalogue).detect(page)

    assert selectors.item.split(", ")[0] in ("[class*='news']", "[class*='card']")
    assert selectors.confidence == "medium"
    assert "4 elements" in selectors.reasoning


def test_heuristic_threshold_raises(catalogue):
    page = html_page("<article><h2>One</h2></article><article><h2>Two</h2></article>")

    with pytest.raises(SelectorValidationError):
        HeuristicSelectorInferencer(catalogue, min_occurrences=3).detect(page)


def test_html_structure_classification():
    from bs4 import BeautifulSoup

    blog = analyze_html_structure(BeautifulSoup("<article></article>", "html.parser"))
    shop = analyze_html_structure(BeautifulSoup('<div class="product"></div>', "html.parser"))
    bare = analyze_html_structure(BeautifulSoup("<div></div>", "html.parser"))

    assert (blog["contentType"], blog["layoutType"]) == ("blog", "list")
    assert (shop["contentType"], shop["layoutType"]) == ("ecommerce", "grid")
    assert (bare["contentType"], bare["layoutType"]) == ("unknown", "mixed")
    assert blog["method"] == "html-structure-analysis"


# ----------------------------------------------------------------------
# Model reply parsing and validation
# ----------------------------------------------------------------------
@pytest.mark.parametrize(
    "reply",
    [
        '{"item": "article"}',
        '```json\n{"item": "article"}\n```',
        '```\n{"item": "article"}\n```',
        '  ```JSON {"item": "article"} ```  ',
    ],
)
def test_code_fences_are_stripped(reply):
    assert parse_json_object(reply) == {"item": "article"}


def test_malformed_replies_raise_parse_error():
    with pytest.raises(ParseError):
        parse_json_object("Sure! Here are your selectors: item=article")
    with pytest.raises(ParseError):
        parse_json_object("[1, 2]")
    with pytest.raises(ParseError):
        parse_json_array('{"not": "a list"}')
    with pytest.raises(ParseError):
        parse_json_array("   ")
    assert strip_code_fences("```json\n[]\n```") == "[]"


def test_validate_selectors():
    good = validate_selectors({"item": " .post ", "title": "h2", "link": "a", "description": None, "extra": 1})
    assert good.item == ".post"
    assert good.description == ""

    with pytest.raises(SelectorValidationError):
        validate_selectors({"item": "article", "title": "", "link": "a"})
    with pytest.raises(SelectorValidationError):
        validate_selectors({"item": "article[", "title": "h2", "link": "a"})
    with pytest.raises(SelectorValidationError):
        validate_selectors({"item": ["article"], "title": "h2", "link": "a"})


def test_gemini_adapter_parses_and_validates():
    client = ScriptedClient('```json\n{"item": ".post", "title": "h2 a", "link": "h2 a", "description": ".excerpt"}\n```')
    selectors = run(GeminiSelectorInferencer(client).infer("<div class='post'></div>", "https://example.com/"))

    assert selectors.item == ".post"
    assert selectors.confidence == "high"
    assert "https://example.com/" in client.prompts[0]


def test_gemini_adapter_rejects_incomplete_reply():
    client = ScriptedClient('{"item": ".post", "title": "", "link": "a"}')

    with pytest.raises(SelectorValidationError):
        run(GeminiSelectorInferencer(client).infer("<p></p>", "https://example.com/"))


def test_structure_analyzer_requires_content_areas():
    client = ScriptedClient(
        '{"contentType": "news", "mainContentAreas": [{"description": "headlines"}]}',
        '{"contentType": "news"}',
    )
    analyzer = GeminiStructureAnalyzer(client)

    analysis = run(analyzer.analyze("<p></p>", "https://example.com/", "Example"))
    assert analysis["method"] == "gemini-structure-analysis"
    assert analysis["layoutType"] == "mixed"

    with pytest.raises(ParseError):
        run(analyzer.analyze("<p></p>", "https://example.com/", "Example"))
