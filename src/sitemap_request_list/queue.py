"""
Request Queue

In-memory pending -> in_progress -> handled bookkeeping for sitemap requests.

Every operation mutates state without awaiting, so under a single asyncio
event loop each call is atomic with respect to other consumers and the
populator task.
"""

import logging
from collections import deque
from typing import Iterable, Optional

from sitemap_request_list.models.request import Request, RequestState
from sitemap_request_list.utils.url import compute_unique_key

logger = logging.getLogger(__name__)


class InvalidRequestStateError(RuntimeError):
    """A queue operation was called on a request in the wrong state."""


class RequestQueue:
    """
    FIFO request queue deduplicated by unique key.

    Lifecycle of a request:
    - pending: enqueued, waiting for a consumer
    - in_progress: returned by fetch_next(), not yet handled or reclaimed
    - handled: counted in handled_count, never redelivered
    """

    def __init__(self):
        self._pending: deque[Request] = deque()
        self._in_progress: dict[str, Request] = {}
        self._handled_keys: set[str] = set()
        self._seen_keys: set[str] = set()
        self._handled_count = 0

    def enqueue(
        self,
        url: str,
        *,
        source_url: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> Optional[Request]:
        """
        Add a URL as pending unless its unique key was seen before.

        Returns:
            The new Request, or None if the URL is a duplicate

        Raises:
            ValueError: if the URL is not an absolute http(s) URL
        """
        unique_key = compute_unique_key(url)
        if unique_key in self._seen_keys:
            return None

        request = Request.from_url(url, source_url=source_url, metadata=metadata)
        self._seen_keys.add(unique_key)
        self._pending.append(request)
        return request

    def fetch_next(self) -> Optional[Request]:
        """Pop the oldest pending request and mark it in progress."""
        if not self._pending:
            return None
        request = self._pending.popleft()
        request.state = RequestState.IN_PROGRESS
        self._in_progress[request.unique_key] = request
        return request

    def mark_handled(self, request: Request) -> None:
        self._take_in_progress(request, "mark as handled")
        request.state = RequestState.HANDLED
        self._handled_keys.add(request.unique_key)
        self._handled_count += 1

    def reclaim(self, request: Request) -> None:
        """Return an in-progress request to the tail of the pending queue."""
        self._take_in_progress(request, "reclaim")
        request.state = RequestState.PENDING
        request.retry_count += 1
        self._pending.append(request)
        logger.debug(f"Reclaimed {request.url} (retry {request.retry_count})")

    def _take_in_progress(self, request: Request, action: str) -> Request:
        if request is None:
            raise InvalidRequestStateError(f"Cannot {action} request None")
        current = self._in_progress.get(request.unique_key)
        if current is None or current is not request:
            raise InvalidRequestStateError(
                f"Cannot {action} request {request.url!r}: not in progress "
                f"(state={request.state.value})"
            )
        del self._in_progress[request.unique_key]
        return current

    def is_empty(self) -> bool:
        return not self._pending and not self._in_progress

    def contains(self, url: str) -> bool:
        """Check if a URL's unique key was ever enqueued."""
        return compute_unique_key(url) in self._seen_keys

    @property
    def handled_count(self) -> int:
        return self._handled_count

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def in_progress_count(self) -> int:
        return len(self._in_progress)

    def pending_requests(self) -> list[Request]:
        return list(self._pending)

    def in_progress_requests(self) -> list[Request]:
        return list(self._in_progress.values())

    def handled_unique_keys(self) -> list[str]:
        return sorted(self._handled_keys)

    def restore(
        self,
        pending: Iterable[Request],
        in_progress: Iterable[Request],
        handled_unique_keys: Iterable[str],
        handled_count: int,
    ) -> None:
        """
        Replace queue contents with previously persisted state.

        In-progress requests are not assumed to have finished, so they are
        demoted to the tail of the pending queue.
        """
        self._pending.clear()
        self._in_progress.clear()
        self._handled_keys = set(handled_unique_keys)
        self._seen_keys = set(self._handled_keys)
        self._handled_count = max(handled_count, len(self._handled_keys))

        for request in [*pending, *in_progress]:
            if request.unique_key in self._seen_keys:
                continue
            request.state = RequestState.PENDING
            self._seen_keys.add(request.unique_key)
            self._pending.append(request)

    def stats(self) -> dict:
        """Get queue statistics."""
        return {
            "pending": len(self._pending),
            "in_progress": len(self._in_progress),
            "handled": self._handled_count,
            "seen": len(self._seen_keys),
        }
