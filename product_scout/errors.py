"""
Иерархия исключений ProductScout.

Recoverable extractor failures never raise: they become an empty result.
Everything below is what is allowed to leave a component.
"""
from __future__ import annotations


class ProductScoutError(Exception):
    """Base class for all project errors."""


class RetryableJobError(ProductScoutError):
    """The domain crawl failed in a way the queue should retry."""


class NoProductURLsFound(RetryableJobError):
    """Both extractors came back empty for a domain."""

    def __init__(self, url: str) -> None:
        super().__init__(f"no product URLs discovered on {url}")
        self.url = url


class BrowserLaunchError(ProductScoutError):
    """The headless browser could not be started for this attempt."""


class StoreUnavailableError(ProductScoutError):
    """Durable store is unreachable at session start (fatal for the run)."""


class QueueUnavailableError(ProductScoutError):
    """Job-queue transport is unreachable at session start (fatal for the run)."""


__all__ = [
    "ProductScoutError",
    "RetryableJobError",
    "NoProductURLsFound",
    "BrowserLaunchError",
    "StoreUnavailableError",
    "QueueUnavailableError",
]
