"""product_scout.store: visited/result store backends."""

from __future__ import annotations

from product_scout.store.base import CrawlStore
from product_scout.store.memory import MemoryStore


def build_store(backend: str, redis_url: str, key_prefix: str) -> CrawlStore:
    """Store for the configured backend (``redis`` or ``memory``)."""
    if backend == "memory":
        return MemoryStore()
    if backend == "redis":
        from product_scout.store.redis_store import RedisStore

        return RedisStore.from_url(redis_url, key_prefix)
    raise ValueError(f"Unknown store backend: {backend}")


__all__ = ["CrawlStore", "MemoryStore", "build_store"]
