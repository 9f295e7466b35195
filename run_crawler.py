# run_crawler.py
"""
Run the feed pipeline once from the command line.

    python run_crawler.py https://example.com/blog --max-pages 10 --recursive
    python run_crawler.py https://example.com/blog --xml > feed.xml
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Make the repo root importable
repo_root = Path(__file__).resolve().parent
if str(repo_root) not in sys.path:
    sys.path.append(str(repo_root))

from loguru import logger

from core.config import get_settings
from core.exceptions import FeedToolError
from core.logging import setup_logging
from services.feed_service import FeedService
from services.inference.gemini import GeminiClient, GeminiSelectorInferencer
from services.inference.selector_service import SelectorService
from services.scraper.fetcher import PageFetcher, ensure_http_url


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate an RSS feed for a website")
    parser.add_argument("url", help="Seed URL to crawl")
    parser.add_argument("--max-pages", type=int, default=None, help="Pages to crawl, seed included")
    parser.add_argument("--recursive", action="store_true", help="Follow links beyond the seed page")
    parser.add_argument("--title", default=None, help="Feed title")
    parser.add_argument("--xml", action="store_true", help="Print the RSS XML instead of a summary")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    gemini = GeminiClient.from_settings(settings)
    selector_service = SelectorService(settings, llm=GeminiSelectorInferencer(gemini) if gemini else None)
    fetcher = PageFetcher.create(settings)
    service = FeedService(fetcher, selector_service, settings)

    try:
        url = ensure_http_url(args.url)
        if args.xml:
            result = await service.generate_feed(
                url, feed_title=args.title, max_pages=args.max_pages, recursive=args.recursive
            )
            print(result["xml"])
            return 0

        result = await service.crawl_and_extract(url, max_pages=args.max_pages, recursive=args.recursive)
    except FeedToolError as exc:
        logger.error(exc.message)
        return 1
    finally:
        await fetcher.aclose()

    print("\n=== CRAWL SUMMARY ===")
    print(f"Selectors       : {result['selectors']} ({result['strategy']})")
    print(f"Pages crawled   : {result['pagesCrawled']} of {result['totalPagesFound']}")
    print(f"Items extracted : {result['stats']['uniqueItems']} unique, "
          f"{result['stats']['duplicatesRemoved']} duplicates removed")
    for item in result["items"][:10]:
        print(f"  - {item['title']} <{item['link']}>")
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
