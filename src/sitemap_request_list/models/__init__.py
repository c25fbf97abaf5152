"""
Models package initialization
"""

from sitemap_request_list.models.request import Request, RequestState
from sitemap_request_list.models.sitemap import (
    SitemapItem,
    SitemapItemKind,
    SourceDescriptor,
    SourceStatus,
)
from sitemap_request_list.models.state import (
    ListStateSnapshot,
    RequestSnapshot,
    SourceSnapshot,
)

__all__ = [
    "Request",
    "RequestState",
    "SitemapItem",
    "SitemapItemKind",
    "SourceDescriptor",
    "SourceStatus",
    "ListStateSnapshot",
    "RequestSnapshot",
    "SourceSnapshot",
]
