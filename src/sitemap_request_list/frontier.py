"""
Source Frontier

Ordered list of sitemap sources still to be (or being) processed.
"""

import logging
from typing import Iterable, Optional

from sitemap_request_list.models.sitemap import SourceDescriptor, SourceStatus

logger = logging.getLogger(__name__)


class SourceFrontier:
    """
    Sitemap sources in processing order.

    Only one source is active at a time. Sitemaps discovered in the active
    source (sitemap index entries) are inserted right after it, ahead of the
    sources that were already pending, giving a depth-first traversal.
    """

    def __init__(self, urls: Iterable[str] = ()):
        self._sources: list[SourceDescriptor] = []
        self._known: set[str] = set()
        self._active: Optional[SourceDescriptor] = None
        self._insert_at = 0

        for url in urls:
            self._append(SourceDescriptor(url=url))

    def _append(self, descriptor: SourceDescriptor) -> bool:
        if descriptor.url in self._known:
            logger.debug(f"Skipping duplicate sitemap source: {descriptor.url}")
            return False
        self._known.add(descriptor.url)
        self._sources.append(descriptor)
        return True

    def add(self, url: str) -> bool:
        """
        Append a source to the end of the frontier.

        Returns:
            True if added, False if the URL is already in the frontier
        """
        return self._append(SourceDescriptor(url=url))

    @property
    def sources(self) -> list[SourceDescriptor]:
        return list(self._sources)

    @property
    def active(self) -> Optional[SourceDescriptor]:
        return self._active

    def next_pending(self) -> Optional[SourceDescriptor]:
        """
        Activate and return the next pending source.

        Returns:
            SourceDescriptor or None if no source is pending
        """
        if self._active is not None and self._active.status == SourceStatus.ACTIVE:
            raise RuntimeError(
                f"Source {self._active.url} is still active; "
                "mark it exhausted or failed first"
            )

        for index, descriptor in enumerate(self._sources):
            if descriptor.status == SourceStatus.PENDING:
                descriptor.status = SourceStatus.ACTIVE
                self._active = descriptor
                self._insert_at = index + 1
                return descriptor

        self._active = None
        return None

    def add_nested(self, url: str) -> bool:
        """
        Insert a sitemap discovered in the active source.

        Returns:
            True if added, False if the URL is already in the frontier
        """
        if self._active is None:
            raise RuntimeError("Cannot add a nested sitemap without an active source")
        if url in self._known:
            logger.debug(f"Skipping already known sitemap: {url}")
            return False

        self._known.add(url)
        self._sources.insert(
            self._insert_at, SourceDescriptor(url=url, parent_url=self._active.url)
        )
        self._insert_at += 1
        return True

    def mark_exhausted(self, descriptor: SourceDescriptor) -> None:
        descriptor.status = SourceStatus.EXHAUSTED
        descriptor.error = None

    def mark_failed(self, descriptor: SourceDescriptor, error: str) -> None:
        descriptor.status = SourceStatus.FAILED
        descriptor.error = error

    def is_consumed(self) -> bool:
        """True when every source is exhausted or failed."""
        return all(descriptor.is_done for descriptor in self._sources)

    def restore(self, descriptors: Iterable[SourceDescriptor]) -> None:
        """
        Replace the frontier with persisted descriptors.

        Exhausted sources stay exhausted. Active, pending and failed sources
        are fetched again.
        """
        self._sources = []
        self._known = set()
        self._active = None
        self._insert_at = 0

        for descriptor in descriptors:
            if descriptor.status != SourceStatus.EXHAUSTED:
                descriptor.status = SourceStatus.PENDING
                descriptor.error = None
                descriptor.items_found = 0
            self._append(descriptor)

    def stats(self) -> dict:
        counts = {status.value: 0 for status in SourceStatus}
        for descriptor in self._sources:
            counts[descriptor.status.value] += 1
        return counts
