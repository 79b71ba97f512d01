# product_scout/job.py
"""
Domain crawl job: run both extractors for one domain, merge, and reconcile
with the visited/result store.
"""
from __future__ import annotations

from typing import Protocol, Set

from product_scout.errors import NoProductURLsFound
from product_scout.logger import get_logger
from product_scout.models import DomainMetadata, DomainTarget
from product_scout.store.base import CrawlStore


class PageExtractor(Protocol):
    async def extract(self, page_url: str) -> Set[str]: ...


class DomainCrawlJob:
    """
    ``crawl(target, attempt)`` returns the merged product URLs of *target*.

    * first attempt on an already visited domain → empty set, nothing written;
    * both extractors empty → :class:`NoProductURLsFound` (the queue retries);
    * otherwise the domain is marked visited, its URL set and metadata written.
    """

    def __init__(self, store: CrawlStore, static: PageExtractor, dynamic: PageExtractor) -> None:
        self.store = store
        self.static = static
        self.dynamic = dynamic
        self.logger = get_logger("job")

    async def crawl(self, target: DomainTarget, attempt: int = 0) -> Set[str]:
        key = target.identity

        if attempt == 0 and await self.store.is_visited(key):
            self.logger.info("Skipping already visited URL: %s", key)
            return set()

        self.logger.info("Crawling: %s (attempt %d)", key, attempt + 1)
        static_urls = await self.static.extract(target.url)
        dynamic_urls = await self.dynamic.extract(target.url)
        product_urls = static_urls | dynamic_urls

        if not product_urls:
            self.logger.info("No product URLs found on %s", key)
            raise NoProductURLsFound(key)

        fresh = await self.store.mark_visited(key)
        added = await self.store.add_product_urls(key, product_urls)
        await self.store.write_metadata(key, DomainMetadata(target.name, product_urls))
        self.logger.info(
            "Found %d product URLs on %s (static %d, dynamic %d, %d new%s)",
            len(product_urls), key, len(static_urls), len(dynamic_urls), added,
            "" if fresh else ", already visited",
        )
        return product_urls
