"""
Request Model

A page URL discovered in a sitemap and tracked by the request queue.
"""

from dataclasses import dataclass, field
from enum import Enum

from sitemap_request_list.utils.url import compute_unique_key, request_id


class RequestState(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    HANDLED = "handled"


@dataclass(eq=False)
class Request:
    id: str
    url: str
    unique_key: str
    state: RequestState = RequestState.PENDING
    source_url: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    retry_count: int = 0

    @classmethod
    def from_url(
        cls,
        url: str,
        source_url: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> "Request":
        """Build a pending request, deriving unique_key and id from the URL."""
        unique_key = compute_unique_key(url)
        return cls(
            id=request_id(unique_key),
            url=url,
            unique_key=unique_key,
            source_url=source_url,
            metadata=dict(metadata or {}),
        )
