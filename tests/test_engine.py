# File: tests/test_engine.py
"""Full session through the engine with fake extractors and in-memory backends."""
from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from product_scout.engine import start_crawl, write_report
from product_scout.errors import QueueUnavailableError, StoreUnavailableError
from product_scout.jobqueue import MemoryJobQueue
from product_scout.store import MemoryStore

SHOP = "https://example.com/shop"


class DownStore(MemoryStore):
    async def ping(self) -> None:
        raise StoreUnavailableError("connection refused")


class DownQueue(MemoryJobQueue):
    async def ping(self) -> None:
        raise QueueUnavailableError("connection refused")


@pytest.mark.asyncio()
async def test_end_to_end_scenario(fast_config, memory_store, fake_extractor):
    static = fake_extractor({f"https://example.com/products/{n}" for n in (123, 456)})
    dynamic = fake_extractor({f"https://example.com/products/{n}" for n in (456, 789)})

    summary = await start_crawl(fast_config, store=memory_store, static=static, dynamic=dynamic)

    expected = {f"https://example.com/products/{n}" for n in (123, 456, 789)}
    assert await memory_store.get_product_urls(SHOP) == expected
    assert await memory_store.is_visited(SHOP)

    data = json.loads(Path(summary.output_path).read_text(encoding="utf-8"))
    assert data == {SHOP: {"name": "example", "urls": sorted(expected)}}
    assert len(data[SHOP]["urls"]) == 3


@pytest.mark.asyncio()
async def test_failed_domain_is_present_with_empty_urls(fast_config, memory_store, fake_extractor):
    config = fast_config.override(domains=[SHOP, "https://www.nothing.org/"], max_attempts=2)

    class OnlyShop:
        async def extract(self, url):
            return {"https://example.com/products/1"} if "example" in url else set()

    summary = await start_crawl(config, store=memory_store, static=OnlyShop(), dynamic=fake_extractor())

    data = json.loads(Path(summary.output_path).read_text(encoding="utf-8"))
    assert data["https://www.nothing.org/"] == {"name": "nothing", "urls": []}
    assert data[SHOP]["urls"] == ["https://example.com/products/1"]
    assert set(summary.failed) == {"https://www.nothing.org"}


@pytest.mark.asyncio()
async def test_session_starts_from_clean_store(fast_config, memory_store, fake_extractor):
    await memory_store.mark_visited(SHOP)
    await memory_store.add_product_urls(SHOP, {"https://example.com/products/old"})
    static = fake_extractor({"https://example.com/products/new"})

    await start_crawl(fast_config, store=memory_store, static=static, dynamic=fake_extractor())

    # not skipped as visited: the store was cleared first
    assert static.calls == [SHOP]
    assert await memory_store.get_product_urls(SHOP) == {"https://example.com/products/new"}


@pytest.mark.asyncio()
async def test_store_unavailable_aborts_before_crawling(fast_config, fake_extractor):
    static = fake_extractor({"https://example.com/products/1"})
    with pytest.raises(StoreUnavailableError):
        await start_crawl(fast_config, store=DownStore(), static=static, dynamic=fake_extractor())
    assert static.calls == []
    assert not Path(fast_config.output).exists()


@pytest.mark.asyncio()
async def test_queue_unavailable_aborts_before_crawling(fast_config, memory_store, fake_extractor):
    static = fake_extractor({"https://example.com/products/1"})
    with pytest.raises(QueueUnavailableError):
        await start_crawl(
            fast_config, store=memory_store, queue=DownQueue(), static=static, dynamic=fake_extractor()
        )
    assert static.calls == []


@pytest.mark.asyncio()
async def test_write_report_from_store(fast_config, memory_store, tmp_path):
    from product_scout.models import DomainMetadata

    await memory_store.write_metadata(SHOP, DomainMetadata("example", {"https://example.com/p/1"}))
    out = tmp_path / "again.json"

    saved = await write_report(fast_config, str(out), store=memory_store)

    assert saved == str(out)
    assert json.loads(out.read_text(encoding="utf-8")) == {
        SHOP: {"name": "example", "urls": ["https://example.com/p/1"]}
    }


@pytest.mark.asyncio()
async def test_output_written_when_session_times_out(fast_config, memory_store, fake_extractor):
    slow = fake_extractor({"https://example.com/products/1"}, delay=5)

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(
            start_crawl(fast_config, store=memory_store, static=slow, dynamic=fake_extractor()),
            timeout=0.3,
        )

    data = json.loads(Path(fast_config.output).read_text(encoding="utf-8"))
    assert data == {SHOP: {"name": "example", "urls": []}}


@pytest.mark.asyncio()
async def test_output_written_when_dispatcher_crashes(fast_config, memory_store, fake_extractor, monkeypatch):
    from product_scout.dispatcher import Dispatcher

    async def broken_run(self, domains):
        raise RuntimeError("event channel lost")

    monkeypatch.setattr(Dispatcher, "run", broken_run)

    with pytest.raises(RuntimeError):
        await start_crawl(fast_config, store=memory_store, static=fake_extractor(), dynamic=fake_extractor())

    data = json.loads(Path(fast_config.output).read_text(encoding="utf-8"))
    assert data[SHOP]["urls"] == []
