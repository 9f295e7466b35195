# tests/test_link_extractor.py
from models.crawler_request import CrawlerRequest
from services.crawler.link_extractor import LinkExtractor, origin_of

SEED = "https://example.com/blog/"


def _links(body: str, **request_kwargs):
    request = CrawlerRequest(url=SEED, **request_kwargs)
    return LinkExtractor(request).extract_links(f"<html><body>{body}</body></html>", SEED)


def test_excluded_links_never_appear():
    links = _links(
        '<a href="/files/report.pdf">PDF</a>'
        '<a href="mailto:foo@bar.com">Mail</a>'
        '<a href="#section">Jump</a>'
        '<a href="http://other-domain.com/x">Elsewhere</a>'
        '<a href="/articles/1">Article</a>'
    )

    assert links == ["https://example.com/articles/1"]


def test_relative_links_resolve_against_page():
    links = _links('<a href="post-2">Two</a><a href="../about">About</a>')

    assert links == ["https://example.com/blog/post-2", "https://example.com/about"]


def test_fragment_dropped_query_kept_and_deduplicated():
    links = _links(
        '<a href="/a?page=2#comments">A</a>'
        '<a href="/a?page=2">A again</a>'
        '<a href="/b">B</a>'
    )

    assert links == ["https://example.com/a?page=2", "https://example.com/b"]


def test_non_navigational_schemes_and_auth_paths_skipped():
    links = _links(
        '<a href="javascript:void(0)">JS</a>'
        '<a href="tel:+15551234">Call</a>'
        '<a href="/login">Login</a>'
        '<a href="/cart/">Cart</a>'
        '<a href="/logins-explained">Story</a>'
        '<a href="">Empty</a>'
    )

    assert links == ["https://example.com/logins-explained"]


def test_request_patterns_filter_urls():
    links = _links(
        '<a href="/tag/python">Tag</a><a href="/post/1">Post</a><a href="/page/2">Page</a>',
        exclude_patterns=[r"/tag/"],
        include_patterns=[r"/post/"],
    )

    assert links == ["https://example.com/post/1"]


def test_origin_is_lower_cased():
    assert origin_of("HTTPS://Example.COM:8443/Path") == "https://example.com:8443"
