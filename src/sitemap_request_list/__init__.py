"""
Sitemap Request List

Crawl work queue populated incrementally from sitemaps.
"""

from sitemap_request_list.db.state_store import (
    MemoryStateStore,
    SqliteStateStore,
    StateStoreError,
)
from sitemap_request_list.models.request import Request, RequestState
from sitemap_request_list.queue import InvalidRequestStateError, RequestQueue
from sitemap_request_list.request_list import SitemapRequestList
from sitemap_request_list.services.fetcher import (
    AiohttpContentFetcher,
    SourceFetchError,
)
from sitemap_request_list.utils.sitemap_parser import SitemapParser

__all__ = [
    "SitemapRequestList",
    "Request",
    "RequestState",
    "RequestQueue",
    "InvalidRequestStateError",
    "SitemapParser",
    "AiohttpContentFetcher",
    "SourceFetchError",
    "MemoryStateStore",
    "SqliteStateStore",
    "StateStoreError",
]
