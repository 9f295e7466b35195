from .content_item import ContentItem
from .crawler_request import CrawlerRequest, CrawlStats, CrawlStatus, CrawlTarget
from .feed import FeedDocument
from .selectors import SelectorSet

__all__ = [
    'ContentItem',
    'CrawlerRequest',
    'CrawlStats',
    'CrawlStatus',
    'CrawlTarget',
    'FeedDocument',
    'SelectorSet',
]
