# tests/unit/cache/test_cache_models.py — v2
"""Tests for cache/models.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from revycore.cache.models import CacheEntry, CacheMetrics, CacheStrategy


class TestCacheStrategy:
    def test_defaults(self):
        s = CacheStrategy(name="x", ttl_s=60)
        assert s.max_size is None
        assert s.compression is False
        assert s.priority == "medium"

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValidationError):
            CacheStrategy(name="x", ttl_s=0)

    def test_max_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            CacheStrategy(name="x", ttl_s=1, max_size=0)

    def test_frozen(self):
        s = CacheStrategy(name="x", ttl_s=1)
        with pytest.raises(ValidationError):
            s.ttl_s = 5


class TestCacheEntry:
    def _entry(self, **kw) -> CacheEntry:
        defaults = dict(key="k1", data={"a": 1}, created_at=100.0, ttl_s=10.0, strategy="x")
        defaults.update(kw)
        return CacheEntry(**defaults)

    def test_fresh_before_ttl(self):
        assert self._entry().is_fresh(109.9)

    def test_stale_at_exact_ttl(self):
        assert not self._entry().is_fresh(110.0)

    def test_version_default(self):
        assert self._entry().version == "1.0"

    def test_json_roundtrip_keeps_key(self):
        entry = self._entry(metadata={"source": "test"})
        restored = CacheEntry.model_validate_json(entry.model_dump_json())
        assert restored == entry


class TestCacheMetrics:
    def test_hit_rate_empty(self):
        assert CacheMetrics().hit_rate == 0.0

    def test_hit_rate_ratio(self):
        assert CacheMetrics(hits=3, misses=1).hit_rate == pytest.approx(0.75)
