# services/render/magazine.py
"""
Static "magazine" HTML for a set of news items.

Two layouts: ``cosmic-universe`` (dark, the default) and ``classic``
(light).  Every interpolated value goes through ``html.escape``.  Image
enrichment looks for a lead image on each article page and falls back to
an inline SVG placeholder.
"""

import asyncio
import base64
import html
from datetime import datetime, timezone
from typing import Dict, List, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from loguru import logger
from pydantic import BaseModel

from core.config import Settings, get_settings
from core.exceptions import FetchError
from models.content_item import ContentItem
from services.crawler.config_loader import Catalogue, category_color, get_catalogue
from services.scraper.fetcher import PageFetcher

LAYOUTS = ("cosmic-universe", "classic")
DEFAULT_LAYOUT = "cosmic-universe"

INTENSITY = {"high": "0.8", "medium": "0.6", "low": "0.4"}


class MagazineEntry(BaseModel):
    item: ContentItem
    image_url: str
    accent_rgb: str

    @property
    def accent(self) -> str:
        return f"rgb({self.accent_rgb})"

    @property
    def glow(self) -> str:
        return f"rgba({self.accent_rgb}, {INTENSITY.get(self.item.importance or 'medium', '0.6')})"


def placeholder_image(item: ContentItem, accent_rgb: str, index: int) -> str:
    """Inline SVG data URI with the category badge and a shortened title."""
    title = item.title if len(item.title) <= 30 else item.title[:27] + "..."
    category = html.escape((item.category or "General").upper())
    svg = f"""<svg width="400" height="240" xmlns="http://www.w3.org/2000/svg">
  <defs>
    <radialGradient id="grad{index}" cx="50%" cy="50%" r="70%">
      <stop offset="0%" style="stop-color:rgb({accent_rgb});stop-opacity:0.9"/>
      <stop offset="70%" style="stop-color:#8b5cf6;stop-opacity:0.3"/>
      <stop offset="100%" style="stop-color:#000000;stop-opacity:1"/>
    </radialGradient>
  </defs>
  <rect width="100%" height="100%" fill="#000000" rx="12"/>
  <ellipse cx="200" cy="120" rx="150" ry="80" fill="url(#grad{index})" opacity="0.7"/>
  <circle cx="200" cy="120" r="20" fill="rgb({accent_rgb})" opacity="0.8"/>
  <rect x="150" y="30" width="100" height="24" rx="12" fill="rgb({accent_rgb})" opacity="0.9"/>
  <text x="200" y="47" text-anchor="middle" fill="white" font-family="Arial" font-size="12" font-weight="bold">{category}</text>
  <text x="200" y="205" text-anchor="middle" fill="white" font-family="Arial" font-size="14">{html.escape(title)}</text>
</svg>"""
    return "data:image/svg+xml;base64," + base64.b64encode(svg.encode("utf-8")).decode("ascii")


class ImageFinder:
    """Looks up an article's lead image (og:image, twitter:image, hero images)."""

    def __init__(self, fetcher: PageFetcher, settings: Optional[Settings] = None, catalogue: Optional[Catalogue] = None):
        self.fetcher = fetcher
        self.settings = settings or get_settings()
        self.catalogue = catalogue or get_catalogue()

    def image_from_html(self, page_html: str, article_url: str) -> Optional[str]:
        soup = BeautifulSoup(page_html, "html.parser")
        for selector in self.catalogue.magazine.image_selectors:
            node = soup.select_one(selector)
            if node is None:
                continue
            src = node.get("content") or node.get("src")
            if src and src.strip():
                resolved = urljoin(article_url, src.strip())
                if resolved.startswith(("http://", "https://")):
                    return resolved
        return None

    async def find(self, article_url: str) -> Optional[str]:
        try:
            page = await self.fetcher.fetch(article_url, timeout=self.settings.IMAGE_FETCH_TIMEOUT)
        except FetchError:
            return None
        return self.image_from_html(page.html, article_url)


async def build_entries(
    items: List[ContentItem],
    finder: Optional[ImageFinder] = None,
    catalogue: Optional[Catalogue] = None,
) -> List[MagazineEntry]:
    """Pair each item with its accent colour and an image (found or placeholder)."""
    catalogue = catalogue or get_catalogue()
    if finder is not None:
        found = await asyncio.gather(*(finder.find(item.link) for item in items))
    else:
        found = [None] * len(items)

    entries = []
    for index, (item, image) in enumerate(zip(items, found)):
        accent = category_color(item.category, catalogue)
        if image is None:
            logger.debug(f"No lead image for {item.link}, using placeholder")
        entries.append(
            MagazineEntry(item=item, image_url=image or placeholder_image(item, accent, index), accent_rgb=accent)
        )
    return entries


# ----------------------------------------------------------------------
#  Layouts
# ----------------------------------------------------------------------
_THEMES: Dict[str, Dict[str, str]] = {
    "cosmic-universe": {
        "background": "radial-gradient(ellipse at 20% 20%, rgba(147, 51, 234, 0.3) 0%, transparent 50%), "
        "radial-gradient(ellipse at 80% 80%, rgba(59, 130, 246, 0.2) 0%, transparent 50%), "
        "linear-gradient(135deg, #000000 0%, #0f0f23 30%, #1a0033 70%, #000000 100%)",
        "text": "#ffffff",
        "muted": "rgba(255, 255, 255, 0.7)",
        "card": "rgba(15, 15, 35, 0.85)",
        "title": "linear-gradient(45deg, #ffffff, #a855f7, #06b6d4, #ec4899)",
    },
    "classic": {
        "background": "#f8fafc",
        "text": "#0f172a",
        "muted": "#475569",
        "card": "#ffffff",
        "title": "linear-gradient(45deg, #0f172a, #334155)",
    },
}


def _story(entry: MagazineEntry, lead: bool = False) -> str:
    item = entry.item
    esc = html.escape
    css_class = "story lead" if lead else "story"
    meta = [esc(item.category or "General")]
    if item.importance:
        meta.append(esc(item.importance.upper()))
    if item.source:
        meta.append(esc(item.source))
    return f"""
      <article class="{css_class}" style="--accent: {entry.accent}; --glow: {entry.glow};">
        <a href="{esc(item.link)}" target="_blank" rel="noopener">
          <img src="{esc(entry.image_url)}" alt="{esc(item.title)}" loading="lazy">
        </a>
        <div class="story-body">
          <span class="badge">{' · '.join(meta)}</span>
          <h2><a href="{esc(item.link)}" target="_blank" rel="noopener">{esc(item.title)}</a></h2>
          <p>{esc(item.description)}</p>
        </div>
      </article>"""


def render_magazine(
    entries: List[MagazineEntry],
    title: str,
    layout: str = DEFAULT_LAYOUT,
    generated_at: Optional[datetime] = None,
    source_url: Optional[str] = None,
) -> str:
    """Full standalone HTML page; the first entry is the lead story."""
    theme = _THEMES.get(layout, _THEMES[DEFAULT_LAYOUT])
    now = generated_at or datetime.now(timezone.utc)
    lead = _story(entries[0], lead=True) if entries else ""
    rest = "".join(_story(entry) for entry in entries[1:])
    esc_title = html.escape(title)
    source = ""
    if source_url:
        source = f" · from {html.escape(urlparse(source_url).hostname or source_url)}"

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{esc_title}</title>
  <style>
    * {{ margin: 0; padding: 0; box-sizing: border-box; }}
    body {{
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      background: {theme["background"]};
      color: {theme["text"]};
      min-height: 100vh;
    }}
    .magazine-container {{ max-width: 1400px; margin: 0 auto; padding: 2rem; }}
    .magazine-header {{ text-align: center; margin-bottom: 3rem; }}
    .magazine-title {{
      font-size: 3.5rem; font-weight: 900;
      background: {theme["title"]};
      -webkit-background-clip: text; -webkit-text-fill-color: transparent; background-clip: text;
    }}
    .magazine-subtitle {{ color: {theme["muted"]}; margin-top: 0.5rem; }}
    .grid {{ display: grid; grid-template-columns: repeat(auto-fill, minmax(320px, 1fr)); gap: 2rem; }}
    .story {{
      background: {theme["card"]}; border-radius: 16px; overflow: hidden;
      border: 1px solid var(--accent); box-shadow: 0 0 24px var(--glow);
    }}
    .story.lead {{ grid-column: 1 / -1; display: grid; grid-template-columns: 3fr 2fr; }}
    .story img {{ width: 100%; height: 240px; object-fit: cover; display: block; }}
    .story.lead img {{ height: 100%; min-height: 320px; }}
    .story-body {{ padding: 1.5rem; }}
    .badge {{
      display: inline-block; background: var(--accent); color: #fff;
      font-size: 0.75rem; font-weight: 700; padding: 0.25rem 0.75rem; border-radius: 999px;
    }}
    .story h2 {{ font-size: 1.25rem; margin: 0.75rem 0; line-height: 1.3; }}
    .story.lead h2 {{ font-size: 2rem; }}
    .story h2 a {{ color: inherit; text-decoration: none; }}
    .story p {{ color: {theme["muted"]}; line-height: 1.6; }}
    .magazine-footer {{ text-align: center; margin-top: 3rem; color: {theme["muted"]}; font-size: 0.85rem; }}
    @media (max-width: 768px) {{ .story.lead {{ grid-template-columns: 1fr; }} .magazine-title {{ font-size: 2.25rem; }} }}
  </style>
</head>
<body class="layout-{html.escape(layout)}">
  <div class="magazine-container">
    <header class="magazine-header">
      <h1 class="magazine-title">{esc_title}</h1>
      <p class="magazine-subtitle">{len(entries)} stories{source} · {now.strftime("%B %d, %Y")}</p>
    </header>
    <main class="grid">{lead}{rest}
    </main>
    <footer class="magazine-footer">Generated {html.escape(now.isoformat())}</footer>
  </div>
</body>
</html>
"""
