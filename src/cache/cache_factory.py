# src/cache/cache_factory.py — v3
"""Factory for durable-tier store instantiation."""

from __future__ import annotations

from revycore.cache.base_durable_store import BaseDurableStore
from revycore.config.settings import Settings


def create_durable_store(settings: Settings | None = None) -> BaseDurableStore | None:
    """Instantiate the configured durable backend.

    Args:
        settings: Application settings. Defaults to no durable tier.

    Returns:
        Configured BaseDurableStore, or None for CACHE_DURABLE_BACKEND=none.
    """
    backend = "none" if settings is None else settings.cache_durable_backend

    if backend == "none":
        return None

    if backend == "json":
        from revycore.cache.json_store import JsonDurableStore
        return JsonDurableStore(cache_root=settings.cache_root)

    if backend == "sqlite":
        from revycore.cache.sqlite_store import SqliteDurableStore
        db_path = settings.cache_root.expanduser() / "revycore_cache.db"
        return SqliteDurableStore(db_path=db_path)

    if backend == "redis":
        from revycore.cache.redis_store import RedisDurableStore
        if not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_DURABLE_BACKEND=redis"
            )
        return RedisDurableStore(redis_url=settings.cache_redis_url)

    raise ValueError(f"Unsupported durable cache backend: {backend!r}")
