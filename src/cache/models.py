# src/cache/models.py — v2
"""Cache domain models: CacheStrategy, CacheEntry, CacheMetrics."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

CachePriority = Literal["low", "medium", "high"]


class CacheStrategy(BaseModel):
    """Named caching policy shared by a class of keys."""

    model_config = ConfigDict(frozen=True)

    name: str
    ttl_s: float = Field(gt=0)
    max_size: int | None = Field(default=None, ge=1)
    compression: bool = False
    priority: CachePriority = "medium"


class CacheEntry(BaseModel):
    """Single cached value with its freshness bookkeeping."""

    key: str
    data: Any = None
    created_at: float
    ttl_s: float
    version: str = "1.0"
    strategy: str
    metadata: dict[str, Any] | None = None

    def is_fresh(self, now: float) -> bool:
        """True while the entry is younger than its ttl."""
        return now - self.created_at < self.ttl_s


class CacheMetrics(BaseModel):
    """Point-in-time snapshot of cache access counters."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    total_requests: int = 0
    average_response_time_ms: float = 0.0
    fast_tier_size: int = 0

    @property
    def hit_rate(self) -> float:
        """hits / (hits + misses), 0.0 before the first lookup."""
        looked_up = self.hits + self.misses
        if looked_up == 0:
            return 0.0
        return self.hits / looked_up
