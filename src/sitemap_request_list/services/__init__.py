"""
Services package initialization
"""

from sitemap_request_list.services.fetcher import (
    AiohttpContentFetcher,
    ContentFetcher,
    SourceFetchError,
)
from sitemap_request_list.services.persistence import PersistenceManager

__all__ = [
    "AiohttpContentFetcher",
    "ContentFetcher",
    "SourceFetchError",
    "PersistenceManager",
]
