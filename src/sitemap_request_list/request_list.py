"""
Sitemap Request List

Public handle combining the request queue, the sitemap frontier populator
and optional state persistence.
"""

import asyncio
import logging
import re
from typing import Iterable, Optional

from sitemap_request_list.core.config import settings
from sitemap_request_list.db.state_store import StateStore, open_state_store
from sitemap_request_list.frontier import SourceFrontier
from sitemap_request_list.models.request import Request
from sitemap_request_list.queue import RequestQueue
from sitemap_request_list.services.fetcher import AiohttpContentFetcher, ContentFetcher
from sitemap_request_list.services.persistence import PersistenceManager
from sitemap_request_list.workers.populator import FrontierPopulator, SourceFailure

logger = logging.getLogger(__name__)


class SitemapRequestList:
    """
    Crawl work queue populated incrementally from sitemaps.

    Use SitemapRequestList.open() to create one; it restores persisted state
    (if persist_state_key is set) and starts loading sitemaps in the
    background. Consumer methods never wait for sitemap data: poll
    fetch_next_request() / is_finished(), or use wait_for_request().
    """

    def __init__(
        self,
        sitemap_urls: Iterable[str],
        *,
        persist_state_key: str | None = None,
        fetcher: ContentFetcher | None = None,
        state_store: StateStore | None = None,
        include: Optional[Iterable[str | re.Pattern]] = None,
        exclude: Optional[Iterable[str | re.Pattern]] = None,
    ):
        self.sitemap_urls = list(sitemap_urls)
        self.persist_state_key = persist_state_key

        self._queue = RequestQueue()
        self._frontier = SourceFrontier(self.sitemap_urls)
        self._owns_fetcher = fetcher is None
        self._fetcher = fetcher or AiohttpContentFetcher()

        self._persistence: PersistenceManager | None = None
        if persist_state_key:
            store = state_store or open_state_store(settings.STATE_STORE_URL)
            self._persistence = PersistenceManager(store, persist_state_key)

        self._activity = asyncio.Event()
        self._populator = FrontierPopulator(
            self._frontier,
            self._queue,
            self._fetcher,
            include=include,
            exclude=exclude,
            on_progress=self._activity.set,
        )
        self._task: asyncio.Task | None = None

    @classmethod
    async def open(
        cls, sitemap_urls: Iterable[str], **kwargs
    ) -> "SitemapRequestList":
        """Create a list, restore persisted state and start population."""
        request_list = cls(sitemap_urls, **kwargs)
        await request_list._restore_state()
        request_list._start()
        return request_list

    async def _restore_state(self) -> None:
        if self._persistence is None:
            return
        snapshot = await self._persistence.load()
        if snapshot is None:
            return

        self._persistence.restore(snapshot, self._queue, self._frontier)
        for url in self.sitemap_urls:
            if self._frontier.add(url):
                logger.info(f"Added sitemap not present in persisted state: {url}")

    def _start(self) -> None:
        if self._task is not None:
            raise RuntimeError("Sitemap population already started")
        self._task = asyncio.create_task(
            self._populator.run(), name="sitemap-frontier-populator"
        )
        self._task.add_done_callback(self._on_populator_done)

    def _on_populator_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Sitemap populator crashed: {exc}", exc_info=exc)
        self._activity.set()

    def _raise_if_crashed(self) -> None:
        task = self._task
        if task is None or not task.done() or task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            raise RuntimeError("Sitemap population failed") from exc

    # --- Queue operations ---

    async def fetch_next_request(self) -> Optional[Request]:
        """Return the next pending request, or None if none is available now."""
        return self._queue.fetch_next()

    async def mark_request_handled(self, request: Request) -> None:
        self._queue.mark_handled(request)
        self._activity.set()

    async def reclaim_request(self, request: Request) -> None:
        self._queue.reclaim(request)
        self._activity.set()

    async def is_empty(self) -> bool:
        return self._queue.is_empty()

    async def is_finished(self) -> bool:
        """
        True once every sitemap was processed and every request handled.

        Raises:
            RuntimeError: if the background populator crashed
        """
        self._raise_if_crashed()
        return self._queue.is_empty() and self._populator.finished

    def handled_count(self) -> int:
        return self._queue.handled_count

    async def wait_for_request(self, timeout: float | None = None) -> Optional[Request]:
        """
        Wait until a request is available.

        Returns:
            The next request, or None if the list finished or timeout elapsed
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        while True:
            self._activity.clear()
            request = self._queue.fetch_next()
            if request is not None:
                return request
            if await self.is_finished():
                return None

            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                return None
            try:
                await asyncio.wait_for(self._activity.wait(), remaining)
            except asyncio.TimeoutError:
                return None

    # --- Persistence ---

    async def persist_state(self) -> None:
        """
        Save queue and frontier progress under persist_state_key.

        Raises:
            StateStoreError: if the state store write fails
        """
        if self._persistence is None:
            logger.debug("persist_state() called without persist_state_key; skipped")
            return
        await self._persistence.save(self._queue, self._frontier)

    # --- Lifecycle ---

    @property
    def is_populating(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def failures(self) -> list[SourceFailure]:
        return list(self._populator.failures)

    def stats(self) -> dict:
        return {
            **self._queue.stats(),
            "sources": self._frontier.stats(),
            "failed_sources": len(self._populator.failures),
            "parse_warnings": self._populator.parse_warnings,
            "population_finished": self._populator.finished,
        }

    async def close(self) -> None:
        """Stop background population and release the fetcher."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        if self._owns_fetcher and isinstance(self._fetcher, AiohttpContentFetcher):
            await self._fetcher.close()

    async def __aenter__(self) -> "SitemapRequestList":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
