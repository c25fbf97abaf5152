"""
Frontier Populator

Background task that walks the sitemap frontier one source at a time and
feeds discovered pages into the request queue.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from sitemap_request_list.frontier import SourceFrontier
from sitemap_request_list.models.sitemap import (
    SitemapItem,
    SitemapItemKind,
    SourceDescriptor,
)
from sitemap_request_list.queue import RequestQueue
from sitemap_request_list.services.fetcher import ContentFetcher, SourceFetchError
from sitemap_request_list.utils.sitemap_parser import SitemapParser

logger = logging.getLogger(__name__)

# Errors that mark a single source as failed instead of stopping population
SOURCE_ERRORS = (SourceFetchError, OSError, asyncio.TimeoutError)


@dataclass(frozen=True)
class SourceFailure:
    url: str
    error: str


def _compile(patterns: Optional[Iterable[str | re.Pattern]]) -> list[re.Pattern]:
    return [re.compile(p) if isinstance(p, str) else p for p in patterns or ()]


class FrontierPopulator:
    """
    Sequential sitemap processor.

    The next source is not requested until the current one's byte stream
    has ended, so pages from source k are always enqueued before any page
    from source k+1.
    """

    def __init__(
        self,
        frontier: SourceFrontier,
        queue: RequestQueue,
        fetcher: ContentFetcher,
        include: Optional[Iterable[str | re.Pattern]] = None,
        exclude: Optional[Iterable[str | re.Pattern]] = None,
        on_progress: Optional[Callable[[], None]] = None,
    ):
        self.frontier = frontier
        self.queue = queue
        self.fetcher = fetcher
        self.include = _compile(include)
        self.exclude = _compile(exclude)
        self._on_progress = on_progress

        self.finished = False
        self.failures: list[SourceFailure] = []
        self.parse_warnings = 0
        self.pages_enqueued = 0

    async def run(self) -> None:
        """Process every pending source, then mark population finished."""
        logger.info(f"Populating from {len(self.frontier.sources)} sitemap source(s)")

        while (descriptor := self.frontier.next_pending()) is not None:
            await self._process_source(descriptor)

        self.finished = True
        logger.info(
            f"Sitemap population finished: {self.pages_enqueued} pages enqueued, "
            f"{len(self.failures)} failed source(s)"
        )
        self._notify()

    async def _process_source(self, descriptor: SourceDescriptor) -> None:
        url = descriptor.url
        parser = SitemapParser(url)
        logger.info(f"Fetching sitemap: {url}")

        try:
            async for chunk in self.fetcher.stream(url):
                for item in parser.feed(chunk):
                    self._handle_item(descriptor, item)
        except SOURCE_ERRORS as e:
            logger.warning(f"Sitemap source failed, skipping: {url}: {e}")
            self.frontier.mark_failed(descriptor, str(e))
            self.failures.append(SourceFailure(url=url, error=str(e)))
            self.parse_warnings += len(parser.warnings)
            return

        for item in parser.close():
            self._handle_item(descriptor, item)

        self.parse_warnings += len(parser.warnings)
        self.frontier.mark_exhausted(descriptor)
        logger.info(
            f"Sitemap exhausted: {url} ({descriptor.items_found} entries, "
            f"{len(parser.warnings)} warnings)"
        )

    def _handle_item(self, descriptor: SourceDescriptor, item: SitemapItem) -> None:
        descriptor.items_found += 1

        if item.kind == SitemapItemKind.NESTED_SITEMAP:
            if self.frontier.add_nested(item.loc):
                logger.debug(f"Discovered nested sitemap {item.loc} in {descriptor.url}")
            return

        if not self._is_allowed(item.loc):
            logger.debug(f"Filtered out {item.loc}")
            return

        try:
            request = self.queue.enqueue(
                item.loc, source_url=descriptor.url, metadata=item.metadata
            )
        except ValueError as e:
            logger.warning(f"Skipping unusable URL from {descriptor.url}: {e}")
            return

        if request is not None:
            self.pages_enqueued += 1
            self._notify()

    def _is_allowed(self, url: str) -> bool:
        if self.include and not any(p.search(url) for p in self.include):
            return False
        return not any(p.search(url) for p in self.exclude)

    def _notify(self) -> None:
        if self._on_progress is not None:
            self._on_progress()
