# src/cache/redis_store.py — v2
"""Redis-based durable store (CACHE_DURABLE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for multi-instance deployments sharing one cache.
"""

from __future__ import annotations

import logging
import math

from revycore.cache.base_durable_store import BaseDurableStore
from revycore.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_KEY_PREFIX = "revycore:cache:"
_INDEX_KEY = "revycore:cache:__index__"


class RedisDurableStore(BaseDurableStore):
    """Redis-backed durable store.

    Entries carry a native Redis expiry equal to their ttl, so stale keys
    disappear server-side. A set of known keys backs keys() since Redis
    has no cheap listing by prefix.
    """

    def __init__(self, redis_url: str) -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve entry by key."""
        data = self._client.get(f"{_KEY_PREFIX}{key}")
        if data is None:
            return None
        try:
            return CacheEntry.model_validate_json(data)
        except Exception as e:
            logger.warning("Failed to deserialize durable entry %s: %s", key, e)
            return None

    async def put(self, entry: CacheEntry) -> None:
        """Store an entry with a server-side expiry."""
        self._client.set(
            f"{_KEY_PREFIX}{entry.key}",
            entry.model_dump_json(),
            ex=max(1, math.ceil(entry.ttl_s)),
        )
        self._client.sadd(_INDEX_KEY, entry.key)

    async def delete(self, key: str) -> bool:
        """Remove an entry."""
        removed = self._client.delete(f"{_KEY_PREFIX}{key}")
        self._client.srem(_INDEX_KEY, key)
        return bool(removed)

    async def keys(self) -> list[str]:
        """List indexed keys, pruning those Redis has already expired."""
        live: list[str] = []
        for key in sorted(self._client.smembers(_INDEX_KEY)):
            if self._client.exists(f"{_KEY_PREFIX}{key}"):
                live.append(key)
            else:
                self._client.srem(_INDEX_KEY, key)
        return live

    async def close(self) -> None:
        """Close the connection pool."""
        self._client.close()
