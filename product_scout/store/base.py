# product_scout/store/base.py
"""
Durable store boundary: visited set, per-domain product URL sets and
per-domain metadata hashes.

Keys are always normalized domain URLs (see :func:`product_scout.utils.normalize_url`).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional, Set

from product_scout.models import DomainMetadata


class CrawlStore(ABC):
    """Async interface every store backend implements."""

    @abstractmethod
    async def ping(self) -> None:
        """Raise :class:`~product_scout.errors.StoreUnavailableError` if unreachable."""

    @abstractmethod
    async def clear(self) -> None:
        """Drop all session state. Called once at session start."""

    @abstractmethod
    async def is_visited(self, url: str) -> bool: ...

    @abstractmethod
    async def mark_visited(self, url: str) -> bool:
        """Add *url* to the visited set; True if it was not there before."""

    @abstractmethod
    async def unmark_visited(self, url: str) -> bool:
        """Remove *url* from the visited set; True if it was there."""

    @abstractmethod
    async def add_product_urls(self, url: str, product_urls: Iterable[str]) -> int:
        """Set-add; returns the number of newly added members."""

    @abstractmethod
    async def get_product_urls(self, url: str) -> Set[str]: ...

    @abstractmethod
    async def write_metadata(self, url: str, metadata: DomainMetadata) -> None: ...

    @abstractmethod
    async def read_metadata(self, url: str) -> Optional[DomainMetadata]: ...

    async def close(self) -> None:
        return None

    async def __aenter__(self) -> CrawlStore:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
