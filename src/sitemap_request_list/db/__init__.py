"""
State Storage Layer

Provides durable key/value stores for persisted list snapshots.
"""

from sitemap_request_list.db.state_store import (
    MemoryStateStore,
    SqliteStateStore,
    StateStore,
    StateStoreError,
    open_state_store,
)
from sitemap_request_list.db.redis_store import RedisStateStore

__all__ = [
    "MemoryStateStore",
    "SqliteStateStore",
    "RedisStateStore",
    "StateStore",
    "StateStoreError",
    "open_state_store",
]
