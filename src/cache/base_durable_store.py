# src/cache/base_durable_store.py — v2
"""Abstract durable-tier interface.

The durable tier sits behind CacheManager's in-process tier. Adapters may
raise freely; CacheManager wraps every call so failures degrade to a miss
or a no-op.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

from revycore.cache.models import CacheEntry


class BaseDurableStore(ABC):
    """Unified interface for key-value persistence backends."""

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve an entry by exact key."""

    @abstractmethod
    async def put(self, entry: CacheEntry) -> None:
        """Store (upsert) an entry under entry.key."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove an entry. Returns True if something was removed."""

    @abstractmethod
    async def keys(self) -> list[str]:
        """List all stored keys."""

    async def delete_matching(self, pattern: re.Pattern[str]) -> int:
        """Remove every entry whose key matches ``pattern``.

        Default implementation scans keys(); backends with a native
        pattern facility may override.
        """
        removed = 0
        for key in await self.keys():
            if pattern.search(key) and await self.delete(key):
                removed += 1
        return removed

    async def close(self) -> None:
        """Release backend resources."""
