from typing import List, Optional, Set
from urllib.parse import urljoin, urlparse
import re

from bs4 import BeautifulSoup
from loguru import logger

from models.crawler_request import CrawlerRequest
from .config_loader import Catalogue, get_catalogue


def origin_of(url: str) -> str:
    """``scheme://host[:port]`` of a URL, lower-cased."""
    parsed = urlparse(url)
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"


def canonical_url(url: str) -> str:
    """Drop the fragment and give an empty path its root slash."""
    parsed = urlparse(url)._replace(fragment="")
    if not parsed.path:
        parsed = parsed._replace(path="/")
    return parsed.geturl()


class LinkExtractor:
    """
    Extracts and validates links from HTML content.
    Handles URL normalization, same-origin filtering and the catalogue's
    scheme, extension and path exclusions.
    """

    def __init__(self, request: CrawlerRequest, catalogue: Optional[Catalogue] = None):
        """
        Initialize the LinkExtractor with crawler request settings.

        Args:
            request (CrawlerRequest): The crawler request containing settings
            catalogue (Catalogue): Static exclusion lists; defaults to selectors.yaml
        """
        crawl_cfg = (catalogue or get_catalogue()).crawl
        self.base_origin = origin_of(str(request.url))
        self.excluded_schemes = tuple(s.lower() for s in crawl_cfg.excluded_schemes)
        self.excluded_extensions = {e.lower().lstrip(".") for e in crawl_cfg.excluded_extensions}
        self.exclude_patterns = [
            re.compile(p, re.IGNORECASE) for p in crawl_cfg.excluded_path_patterns
        ] + [re.compile(p) for p in request.exclude_patterns]
        self.include_patterns = [re.compile(p) for p in request.include_patterns]

    def _normalize_url(self, href: str, base_url: str) -> Optional[str]:
        """Resolve ``href`` against ``base_url`` and drop the fragment; query strings are kept."""
        try:
            absolute_url = urljoin(base_url, href)
            parsed = urlparse(absolute_url)
            if parsed.scheme not in ("http", "https"):
                return None
            return canonical_url(absolute_url)
        except ValueError as e:
            logger.debug(f"URL normalization failed for {href}: {e}")
            return None

    def _is_excluded_href(self, href: str) -> bool:
        """Raw-attribute checks: in-page anchors and non-navigational schemes."""
        lowered = href.strip().lower()
        return not lowered or lowered.startswith("#") or lowered.startswith(self.excluded_schemes)

    def _has_excluded_extension(self, url: str) -> bool:
        path = urlparse(url).path.lower()
        last = path.rsplit("/", 1)[-1]
        if "." not in last:
            return False
        return last.rsplit(".", 1)[-1] in self.excluded_extensions

    def _should_include_url(self, url: str) -> bool:
        """
        Check if URL should be included based on patterns and origin.

        Args:
            url (str): Absolute, normalized URL to check

        Returns:
            bool: True if URL should be included
        """
        if origin_of(url) != self.base_origin:
            return False

        if self._has_excluded_extension(url):
            return False

        path = urlparse(url).path
        for pattern in self.exclude_patterns:
            if pattern.search(path) or pattern.search(url):
                return False

        if self.include_patterns:
            return any(pattern.search(url) for pattern in self.include_patterns)

        return True

    def extract_links(self, html: str, base_url: str) -> List[str]:
        """
        Extract valid links from HTML content.

        Args:
            html (str): HTML content to parse
            base_url (str): Base URL for resolving relative links

        Returns:
            List[str]: Ordered list of valid, normalized URLs (document order, no duplicates)
        """
        seen: Set[str] = set()
        links: List[str] = []
        soup = BeautifulSoup(html, "html.parser")

        for anchor in soup.find_all("a", href=True):
            href = anchor["href"]
            if self._is_excluded_href(href):
                continue

            normalized_url = self._normalize_url(href, base_url)
            if not normalized_url or normalized_url in seen:
                continue

            if self._should_include_url(normalized_url):
                seen.add(normalized_url)
                links.append(normalized_url)

        return links
