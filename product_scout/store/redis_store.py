# product_scout/store/redis_store.py
"""
Redis-backed :class:`CrawlStore`.

Layout (everything under ``key_prefix``)::

    visited_urls              SET   normalized domain URLs with results
    product_urls:<domain>     SET   product URLs discovered for a domain
    domain:<domain>           HASH  {name, urls (JSON array)}
"""
from __future__ import annotations

import json
from typing import Iterable, Optional, Set

from redis.asyncio import Redis
from redis.exceptions import RedisError

from product_scout.errors import StoreUnavailableError
from product_scout.logger import get_logger
from product_scout.models import DomainMetadata
from product_scout.store.base import CrawlStore

log = get_logger("store")


class RedisStore(CrawlStore):
    def __init__(self, client: Redis, key_prefix: str = "product_scout:") -> None:
        self._redis = client
        self._prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "product_scout:") -> RedisStore:
        return cls(Redis.from_url(url, decode_responses=True), key_prefix)

    # keys ------------------------------------------------------------------
    @property
    def visited_key(self) -> str:
        return f"{self._prefix}visited_urls"

    def product_key(self, url: str) -> str:
        return f"{self._prefix}product_urls:{url}"

    def metadata_key(self, url: str) -> str:
        return f"{self._prefix}domain:{url}"

    # lifecycle -------------------------------------------------------------
    async def ping(self) -> None:
        try:
            await self._redis.ping()
        except (RedisError, OSError) as exc:
            raise StoreUnavailableError(f"Redis store unavailable: {exc}") from exc
        log.info("Redis connected")

    async def clear(self) -> None:
        removed = 0
        async for key in self._redis.scan_iter(match=f"{self._prefix}*", count=500):
            removed += await self._redis.delete(key)
        log.info("Redis cache cleared (%d keys)", removed)

    async def close(self) -> None:
        await self._redis.aclose()
        log.info("Redis connection closed")

    # visited ---------------------------------------------------------------
    async def is_visited(self, url: str) -> bool:
        return bool(await self._redis.sismember(self.visited_key, url))

    async def mark_visited(self, url: str) -> bool:
        return bool(await self._redis.sadd(self.visited_key, url))

    async def unmark_visited(self, url: str) -> bool:
        return bool(await self._redis.srem(self.visited_key, url))

    # results ---------------------------------------------------------------
    async def add_product_urls(self, url: str, product_urls: Iterable[str]) -> int:
        members = list(product_urls)
        if not members:
            return 0
        return int(await self._redis.sadd(self.product_key(url), *members))

    async def get_product_urls(self, url: str) -> Set[str]:
        return set(await self._redis.smembers(self.product_key(url)))

    async def write_metadata(self, url: str, metadata: DomainMetadata) -> None:
        await self._redis.hset(
            self.metadata_key(url),
            mapping={"name": metadata.name, "urls": json.dumps(sorted(metadata.urls))},
        )

    async def read_metadata(self, url: str) -> Optional[DomainMetadata]:
        data = await self._redis.hgetall(self.metadata_key(url))
        if not data:
            return None
        return DomainMetadata(data.get("name", ""), json.loads(data.get("urls") or "[]"))
