"""
Sitemap Models

Parser output items and frontier source descriptors.
"""

from dataclasses import dataclass, field
from enum import Enum


class SitemapItemKind(str, Enum):
    PAGE = "page"
    NESTED_SITEMAP = "nested_sitemap"


@dataclass(frozen=True)
class SitemapItem:
    kind: SitemapItemKind
    loc: str
    metadata: dict[str, str] = field(default_factory=dict)


class SourceStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


@dataclass
class SourceDescriptor:
    url: str
    status: SourceStatus = SourceStatus.PENDING
    parent_url: str | None = None
    error: str | None = None
    items_found: int = 0

    @property
    def is_done(self) -> bool:
        return self.status in (SourceStatus.EXHAUSTED, SourceStatus.FAILED)
