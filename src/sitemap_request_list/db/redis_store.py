import asyncio
from typing import Optional

import redis

from sitemap_request_list.db.state_store import StateStoreError

KEY_PREFIX = "sitemap:state:"


class RedisStateStore:
    """State store keeping each snapshot under a Redis string key."""

    def __init__(self, redis_client: redis.Redis, prefix: str = KEY_PREFIX):
        self._redis = redis_client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = KEY_PREFIX) -> "RedisStateStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        loop = asyncio.get_running_loop()
        try:
            value = await loop.run_in_executor(None, self._redis.get, self._key(key))
        except redis.RedisError as e:
            raise StateStoreError(f"Redis read failed for {key!r}: {e}") from e
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        return value

    async def put(self, key: str, value: str) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None, lambda: self._redis.set(self._key(key), value)
            )
        except redis.RedisError as e:
            raise StateStoreError(f"Redis write failed for {key!r}: {e}") from e
