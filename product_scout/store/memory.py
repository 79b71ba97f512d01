# product_scout/store/memory.py
"""In-process store for tests and ``--store memory`` dry runs. Not durable."""
from __future__ import annotations

from typing import Dict, Iterable, Optional, Set

from product_scout.models import DomainMetadata
from product_scout.store.base import CrawlStore


class MemoryStore(CrawlStore):
    def __init__(self) -> None:
        self.visited: Set[str] = set()
        self.product_urls: Dict[str, Set[str]] = {}
        self.metadata: Dict[str, DomainMetadata] = {}

    async def ping(self) -> None:
        return None

    async def clear(self) -> None:
        self.visited.clear()
        self.product_urls.clear()
        self.metadata.clear()

    async def is_visited(self, url: str) -> bool:
        return url in self.visited

    async def mark_visited(self, url: str) -> bool:
        fresh = url not in self.visited
        self.visited.add(url)
        return fresh

    async def unmark_visited(self, url: str) -> bool:
        present = url in self.visited
        self.visited.discard(url)
        return present

    async def add_product_urls(self, url: str, product_urls: Iterable[str]) -> int:
        bucket = self.product_urls.setdefault(url, set())
        before = len(bucket)
        bucket.update(product_urls)
        return len(bucket) - before

    async def get_product_urls(self, url: str) -> Set[str]:
        return set(self.product_urls.get(url, ()))

    async def write_metadata(self, url: str, metadata: DomainMetadata) -> None:
        self.metadata[url] = DomainMetadata(metadata.name, metadata.urls)

    async def read_metadata(self, url: str) -> Optional[DomainMetadata]:
        return self.metadata.get(url)
