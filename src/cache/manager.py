# src/cache/manager.py — v1
"""Two-tier cache manager: in-process fast tier + best-effort durable tier.

Lookup order is fast tier, then durable tier; a fresh durable hit is copied
back into the fast tier. Writes land in the fast tier synchronously and are
replicated to the durable tier in the background. Durable-tier failures are
logged and degrade to a miss or a no-op, never an exception.

Eviction is a per-strategy FIFO bound on insertion timestamp. There is no
access-recency tracking, so this is not an LRU.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
import time
from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any

from revycore.cache.base_durable_store import BaseDurableStore
from revycore.cache.models import CacheEntry, CacheMetrics, CacheStrategy
from revycore.config.strategies import DEFAULT_CACHE_STRATEGIES

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_S = 300.0


class CacheManager:
    """Strategy-driven keyed cache.

    Args:
        durable_store: Optional durable tier. None = fast tier only.
        strategies: Strategy table; defaults to DEFAULT_CACHE_STRATEGIES.
        sweep_interval_s: Period of the background expiry sweep.
        clock: Wall-clock source in epoch seconds (injectable for tests).
    """

    def __init__(
        self,
        durable_store: BaseDurableStore | None = None,
        strategies: dict[str, CacheStrategy] | None = None,
        sweep_interval_s: float = DEFAULT_SWEEP_INTERVAL_S,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._durable = durable_store
        self._strategies = dict(strategies or DEFAULT_CACHE_STRATEGIES)
        self._sweep_interval_s = sweep_interval_s
        self._clock = clock

        self._fast: dict[str, CacheEntry] = {}
        self._metrics = CacheMetrics()
        self._key_locks: dict[str, list[Any]] = {}
        self._pending: set[asyncio.Task[bool]] = set()
        self._sweeper: asyncio.Task[None] | None = None

    @property
    def strategies(self) -> dict[str, CacheStrategy]:
        """Return mapping of strategy name -> strategy."""
        return dict(self._strategies)

    @property
    def has_durable_tier(self) -> bool:
        return self._durable is not None

    # --- Public API ---

    async def get(self, key: str, strategy_name: str) -> Any | None:
        """Return the cached value, or None on miss or expiry."""
        started = time.perf_counter()
        self._metrics.total_requests += 1

        try:
            entry, tier = await self._lookup(key)
        except Exception:
            logger.exception("Cache get error for %s", key)
            entry, tier = None, None

        if entry is None:
            self._metrics.misses += 1
            logger.debug("Cache MISS: %s", key)
        else:
            self._metrics.hits += 1
            logger.debug("Cache HIT (%s): %s", tier, key)

        self._record_response_time((time.perf_counter() - started) * 1000.0)

        if entry is None:
            return None
        return self._decode(entry.data, self._strategies.get(strategy_name))

    async def set(
        self,
        key: str,
        value: Any,
        strategy_name: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Cache a value under a strategy.

        Never raises: an unknown strategy or an invalid entry is logged and
        the call becomes a no-op.
        """
        strategy = self._strategies.get(strategy_name)
        if strategy is None:
            logger.error("Unknown cache strategy: %s", strategy_name)
            return

        try:
            entry = CacheEntry(
                key=key,
                data=self._encode(value, strategy),
                created_at=self._clock(),
                ttl_s=strategy.ttl_s,
                strategy=strategy_name,
                metadata=metadata,
            )
        except Exception:
            logger.exception("Cache set error for %s", key)
            return

        async with self._key_lock(key):
            self._store_in_memory(entry)

        # Fire-and-forget; callers wanting durability await flush()
        self.replicate(entry)
        logger.debug("Cache SET: %s (strategy: %s)", key, strategy_name)

    async def invalidate(self, pattern: str | re.Pattern[str]) -> int:
        """Remove an exact key or every key matching a regex from both tiers.

        Returns:
            Number of fast-tier removals plus durable-tier removals.
        """
        removed = 0
        if isinstance(pattern, str):
            if self._fast.pop(pattern, None) is not None:
                removed += 1
        else:
            for key in [k for k in self._fast if pattern.search(k)]:
                del self._fast[key]
                removed += 1

        # A pending replication must not resurrect an invalidated key
        await self.flush()
        removed += await self._invalidate_durable(pattern)

        logger.info("Cache invalidated: %d entries", removed)
        return removed

    def get_metrics(self) -> CacheMetrics:
        """Return a snapshot of the access counters."""
        return self._metrics.model_copy(update={"fast_tier_size": len(self._fast)})

    async def warm_up(self, keys: Iterable[str], strategy_name: str) -> None:
        """Pull keys through the lookup path so durable hits reach memory."""
        keys = list(keys)
        logger.info("Warming up cache for %d keys", len(keys))
        for key in keys:
            try:
                await self.get(key, strategy_name)
            except Exception as e:
                logger.warning("Cache warm-up failed for %s: %s", key, e)

    def sweep_expired(self) -> int:
        """Drop every fast-tier entry whose age has reached its ttl."""
        now = self._clock()
        stale = [k for k, e in self._fast.items() if not e.is_fresh(now)]
        for key in stale:
            del self._fast[key]
        if stale:
            logger.info("Cleaned up %d expired cache entries", len(stale))
        return len(stale)

    def replicate(self, entry: CacheEntry) -> asyncio.Task[bool] | None:
        """Schedule a best-effort durable write.

        Returns the background task (resolving to True on success) so a
        caller may await it; discarding it is the normal case.
        """
        if self._durable is None:
            return None
        task = asyncio.create_task(self._replicate(entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def flush(self) -> None:
        """Wait for outstanding durable writes."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # --- Lifecycle ---

    def start(self) -> None:
        """Start the background expiry sweep (requires a running loop)."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop())

    async def aclose(self) -> None:
        """Stop the sweeper, drain pending writes and close the durable tier."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        await self.flush()
        if self._durable is not None:
            try:
                await self._durable.close()
            except Exception as e:
                logger.warning("Failed to close durable cache store: %s", e)

    async def __aenter__(self) -> CacheManager:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # --- Internals ---

    async def _lookup(self, key: str) -> tuple[CacheEntry | None, str | None]:
        entry = self._fresh_from_memory(key)
        if entry is not None:
            return entry, "memory"
        if self._durable is None:
            return None, None

        async with self._key_lock(key):
            # A concurrent set may have landed while we waited for the lock
            entry = self._fresh_from_memory(key)
            if entry is not None:
                return entry, "memory"

            entry = await self._durable_get(key)
            if entry is None or not entry.is_fresh(self._clock()):
                return None, None

            self._store_in_memory(entry)
            return entry, "durable"

    def _fresh_from_memory(self, key: str) -> CacheEntry | None:
        entry = self._fast.get(key)
        if entry is None:
            return None
        if entry.is_fresh(self._clock()):
            return entry
        del self._fast[key]
        return None

    def _store_in_memory(self, entry: CacheEntry) -> None:
        self._fast[entry.key] = entry
        self._enforce_limit(entry.strategy)

    def _enforce_limit(self, strategy_name: str) -> None:
        """Evict oldest-by-timestamp entries of one strategy down to max_size."""
        strategy = self._strategies.get(strategy_name)
        if strategy is None or strategy.max_size is None:
            return

        owned = sorted(
            (e for e in self._fast.values() if e.strategy == strategy_name),
            key=lambda e: e.created_at,
        )
        excess = len(owned) - strategy.max_size
        for entry in owned[:max(excess, 0)]:
            del self._fast[entry.key]
            self._metrics.evictions += 1
            logger.debug("Cache EVICT: %s (strategy: %s)", entry.key, strategy_name)

    async def _durable_get(self, key: str) -> CacheEntry | None:
        try:
            return await self._durable.get(key)  # type: ignore[union-attr]
        except Exception as e:
            logger.warning("Durable cache get failed for %s: %s", key, e)
            return None

    async def _replicate(self, entry: CacheEntry) -> bool:
        try:
            await self._durable.put(entry)  # type: ignore[union-attr]
            return True
        except Exception as e:
            logger.warning("Durable cache write failed for %s: %s", entry.key, e)
            return False

    async def _invalidate_durable(self, pattern: str | re.Pattern[str]) -> int:
        if self._durable is None:
            return 0
        try:
            if isinstance(pattern, str):
                return 1 if await self._durable.delete(pattern) else 0
            return await self._durable.delete_matching(pattern)
        except Exception as e:
            logger.warning("Durable cache invalidation failed: %s", e)
            return 0

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval_s)
            try:
                self.sweep_expired()
            except Exception:
                logger.exception("Cache expiry sweep failed")

    @contextlib.asynccontextmanager
    async def _key_lock(self, key: str) -> AsyncIterator[None]:
        """Per-key lock, discarded once no coroutine holds or awaits it."""
        slot = self._key_locks.get(key)
        if slot is None:
            slot = [asyncio.Lock(), 0]
            self._key_locks[key] = slot
        slot[1] += 1
        try:
            async with slot[0]:
                yield
        finally:
            slot[1] -= 1
            if slot[1] == 0:
                self._key_locks.pop(key, None)

    def _record_response_time(self, elapsed_ms: float) -> None:
        n = self._metrics.total_requests
        avg = self._metrics.average_response_time_ms
        self._metrics.average_response_time_ms = (avg * (n - 1) + elapsed_ms) / n

    @staticmethod
    def _encode(data: Any, strategy: CacheStrategy | None) -> Any:
        # Compression flag is reserved; payloads pass through unchanged
        return data

    @staticmethod
    def _decode(data: Any, strategy: CacheStrategy | None) -> Any:
        return data
