"""
State Store - Durable Key/Value Storage for List Snapshots

Backends:
- memory: process-local dict (tests, ephemeral runs)
- sqlite: local file, WAL mode
- redis: see sitemap_request_list.db.redis_store
"""

import asyncio
import logging
import sqlite3
import time
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


class StateStoreError(Exception):
    """Reading from or writing to a state store failed."""


class StateStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def put(self, key: str, value: str) -> None: ...


class MemoryStateStore:
    """In-memory state store."""

    def __init__(self):
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def put(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self) -> list[str]:
        return list(self._data)


SCHEMA = """
CREATE TABLE IF NOT EXISTS list_state (
    state_key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at INTEGER NOT NULL
) WITHOUT ROWID;
"""


class SqliteStateStore:
    """
    SQLite-backed state store.

    Blocking sqlite3 calls run in the default executor so the event loop
    (and the populator task) keeps running while a snapshot is written.
    The database file and schema are created on first use.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_db(self):
        """Initialize database."""
        if self._initialized:
            return
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        con = self._connect()
        try:
            con.execute("PRAGMA journal_mode=WAL")
            con.executescript(SCHEMA)
        finally:
            con.close()
        self._initialized = True

    def _get_sync(self, key: str) -> Optional[str]:
        self._init_db()
        con = self._connect()
        try:
            cur = con.execute(
                "SELECT value FROM list_state WHERE state_key = ?", (key,)
            )
            row = cur.fetchone()
            return row[0] if row else None
        finally:
            con.close()

    def _put_sync(self, key: str, value: str) -> None:
        self._init_db()
        now = int(time.time())
        con = self._connect()
        try:
            con.execute(
                """
                INSERT INTO list_state (state_key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT (state_key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value, now),
            )
            con.commit()
        finally:
            con.close()

    async def get(self, key: str) -> Optional[str]:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._get_sync, key)
        except (sqlite3.Error, OSError) as e:
            raise StateStoreError(f"SQLite read failed for {key!r}: {e}") from e

    async def put(self, key: str, value: str) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._put_sync, key, value)
        except (sqlite3.Error, OSError) as e:
            raise StateStoreError(f"SQLite write failed for {key!r}: {e}") from e


def open_state_store(url: str) -> StateStore:
    """
    Build a state store from a URL.

    Supported:
        memory://
        sqlite:///relative/or/absolute/path.db
        redis://host:port/db (also rediss://)

    Raises:
        ValueError: for unsupported schemes
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()

    if scheme == "memory":
        return MemoryStateStore()

    if scheme == "sqlite":
        path = url[len("sqlite:///") :] if url.startswith("sqlite:///") else ""
        if not path:
            raise ValueError(f"SQLite state store URL needs a path: {url!r}")
        logger.info(f"Using SQLite state store at {path}")
        return SqliteStateStore(path)

    if scheme in ("redis", "rediss"):
        from sitemap_request_list.db.redis_store import RedisStateStore

        logger.info(f"Using Redis state store at {parsed.hostname}")
        return RedisStateStore.from_url(url)

    raise ValueError(f"Unsupported state store URL: {url!r}")
