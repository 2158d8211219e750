# src/cache/json_store.py — v2
"""JSON file-based durable store (CACHE_DURABLE_BACKEND=json).

Stores each entry as an individual JSON file under CACHE_ROOT. The file
name is a digest of the key; the key itself lives inside the document.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path

from revycore.cache.base_durable_store import BaseDurableStore
from revycore.cache.models import CacheEntry

logger = logging.getLogger(__name__)


class JsonDurableStore(BaseDurableStore):
    """File-based durable store using one JSON file per key."""

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve entry by key."""
        path = self._entry_path(key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return CacheEntry(**data)
        except Exception as e:
            logger.warning("Failed to read durable entry %s: %s", key, e)
            return None

    async def put(self, entry: CacheEntry) -> None:
        """Store an entry."""
        path = self._entry_path(entry.key)
        path.write_text(entry.model_dump_json(), encoding="utf-8")

    async def delete(self, key: str) -> bool:
        """Remove an entry."""
        path = self._entry_path(key)
        if not path.exists():
            return False
        path.unlink()
        return True

    async def keys(self) -> list[str]:
        """List all stored keys."""
        keys: list[str] = []
        for path in sorted(self._root.glob("*.json")):
            try:
                keys.append(json.loads(path.read_text(encoding="utf-8"))["key"])
            except Exception:
                logger.debug("Skipping unreadable durable entry %s", path.name)
        return keys

    def _entry_path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self._root / f"{digest}.json"
