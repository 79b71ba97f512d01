# File: tests/conftest.py
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Set, Union

import pytest

from product_scout.config import CrawlerConfig
from product_scout.jobqueue import BackoffPolicy, MemoryJobQueue
from product_scout.store import MemoryStore

ResultT = Union[Set[str], BaseException]


class FakeExtractor:
    """
    Extractor double. *results* is either one set returned on every call or
    a sequence consumed call by call (the last item repeats); an exception
    instance in place of a set is raised.
    """

    def __init__(
        self,
        results: Union[Iterable[str], Sequence[ResultT]] = (),
        *,
        delay: float = 0.0,
    ) -> None:
        items = list(results)
        if items and all(isinstance(i, (set, frozenset, BaseException)) for i in items):
            self._sequence: List[ResultT] = items
        else:
            self._sequence = [set(items)]
        self.delay = delay
        self.calls: List[str] = []

    async def extract(self, page_url: str) -> Set[str]:
        index = min(len(self.calls), len(self._sequence) - 1)
        self.calls.append(page_url)
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self._sequence[index]
        if isinstance(result, BaseException):
            raise result
        return set(result)


@pytest.fixture()
def fake_extractor() -> Callable[..., FakeExtractor]:
    """Factory for :class:`FakeExtractor`."""
    return FakeExtractor


@pytest.fixture()
def fast_config(tmp_path: Path) -> CrawlerConfig:
    """Config with every wait set to zero and in-memory backends."""
    return CrawlerConfig(
        domains=["https://example.com/shop"],
        workers=2,
        fetch_timeout=1.0,
        navigation_timeout=1.0,
        scroll_settle=0,
        load_more_settle=0,
        backoff_delay=0,
        rate_limit_window=0,
        poll_timeout=0.05,
        store_backend="memory",
        queue_backend="memory",
        metrics_interval=0,
        output=str(tmp_path / "crawled_urls.json"),
    )


@pytest.fixture()
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def make_queue() -> Callable[..., MemoryJobQueue]:
    def _make(
        max_attempts: int = 4,
        delay: float = 0.0,
        kind: str = "exponential",
        visibility_timeout: float = 30.0,
        backoff: Optional[BackoffPolicy] = None,
    ) -> MemoryJobQueue:
        return MemoryJobQueue(
            max_attempts=max_attempts,
            backoff=backoff or BackoffPolicy(kind, delay),
            visibility_timeout=visibility_timeout,
        )

    return _make
