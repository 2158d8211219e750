# src/config/strategies.py — v1
"""Declarative cache strategy table.

Strategies are immutable and process-wide. Every key cached through
CacheManager is governed by exactly one of these.
"""

from __future__ import annotations

from revycore.cache.models import CacheStrategy

_MINUTE = 60.0

DEFAULT_CACHE_STRATEGIES: dict[str, CacheStrategy] = {
    "context-analysis": CacheStrategy(
        name="Context Analysis Cache",
        ttl_s=10 * _MINUTE,
        max_size=100,
        compression=True,
        priority="high",
    ),
    "prompt-enhancement": CacheStrategy(
        name="Prompt Enhancement Cache",
        ttl_s=5 * _MINUTE,
        max_size=200,
        compression=False,
        priority="high",
    ),
    "ai-responses": CacheStrategy(
        name="AI Response Cache",
        ttl_s=30 * _MINUTE,
        max_size=50,
        compression=True,
        priority="medium",
    ),
    "document-analysis": CacheStrategy(
        name="Document Analysis Cache",
        ttl_s=60 * _MINUTE,
        max_size=25,
        compression=True,
        priority="medium",
    ),
    "knowledge-search": CacheStrategy(
        name="Knowledge Search Cache",
        ttl_s=120 * _MINUTE,
        max_size=150,
        compression=True,
        priority="low",
    ),
}
