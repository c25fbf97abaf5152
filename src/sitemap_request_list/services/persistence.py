"""
Persistence Manager

Saves and restores request list state through a StateStore.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from sitemap_request_list.db.state_store import StateStore, StateStoreError
from sitemap_request_list.frontier import SourceFrontier
from sitemap_request_list.models.sitemap import SourceDescriptor
from sitemap_request_list.models.state import (
    SNAPSHOT_VERSION,
    ListStateSnapshot,
    RequestSnapshot,
    SourceSnapshot,
)
from sitemap_request_list.queue import RequestQueue

logger = logging.getLogger(__name__)


class PersistenceManager:
    """Snapshot read/write for one persist_state_key."""

    def __init__(self, store: StateStore, key: str):
        self.store = store
        self.key = key

    async def load(self) -> Optional[ListStateSnapshot]:
        """
        Load the stored snapshot.

        Unreadable stores and corrupt snapshots are treated as "no prior
        state" so the list can still start fresh.
        """
        try:
            blob = await self.store.get(self.key)
        except StateStoreError as e:
            logger.warning(f"Could not read state for {self.key!r}, starting fresh: {e}")
            return None

        if blob is None:
            logger.debug(f"No persisted state under {self.key!r}")
            return None

        try:
            snapshot = ListStateSnapshot.model_validate_json(blob)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid state for {self.key!r}: {e}")
            return None

        if snapshot.version != SNAPSHOT_VERSION:
            logger.warning(
                f"Ignoring state for {self.key!r} with unsupported version "
                f"{snapshot.version}"
            )
            return None
        return snapshot

    @staticmethod
    def build_snapshot(
        queue: RequestQueue, frontier: SourceFrontier
    ) -> ListStateSnapshot:
        return ListStateSnapshot(
            pending=[RequestSnapshot.from_request(r) for r in queue.pending_requests()],
            in_progress=[
                RequestSnapshot.from_request(r) for r in queue.in_progress_requests()
            ],
            handled_count=queue.handled_count,
            handled_unique_keys=queue.handled_unique_keys(),
            sources=[SourceSnapshot.from_descriptor(d) for d in frontier.sources],
        )

    async def save(self, queue: RequestQueue, frontier: SourceFrontier) -> None:
        """
        Write the current state.

        Raises:
            StateStoreError: if the store rejects the write
        """
        snapshot = self.build_snapshot(queue, frontier)
        await self.store.put(self.key, snapshot.model_dump_json())
        logger.info(
            f"Persisted state {self.key!r}: {len(snapshot.pending)} pending, "
            f"{len(snapshot.in_progress)} in progress, "
            f"{snapshot.handled_count} handled"
        )

    @staticmethod
    def restore(
        snapshot: ListStateSnapshot, queue: RequestQueue, frontier: SourceFrontier
    ) -> None:
        queue.restore(
            pending=[r.to_request() for r in snapshot.pending],
            in_progress=[r.to_request() for r in snapshot.in_progress],
            handled_unique_keys=snapshot.handled_unique_keys,
            handled_count=snapshot.handled_count,
        )
        frontier.restore(
            SourceDescriptor(
                url=s.url,
                status=s.status,
                parent_url=s.parent_url,
                error=s.error,
                items_found=s.items_found,
            )
            for s in snapshot.sources
        )
        logger.info(
            f"Restored state: {queue.pending_count} pending, "
            f"{queue.handled_count} handled, {len(snapshot.sources)} sources"
        )
