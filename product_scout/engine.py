# File: product_scout/engine.py
"""product_scout.engine: управление сессией обхода, от подключения к хранилищу до итогового JSON."""

from __future__ import annotations

from contextlib import AsyncExitStack
from typing import Optional

from product_scout.config import CrawlerConfig
from product_scout.dispatcher import Dispatcher
from product_scout.extractors.dynamic import DynamicExtractor
from product_scout.extractors.static import StaticExtractor
from product_scout.job import DomainCrawlJob, PageExtractor
from product_scout.jobqueue import BackoffPolicy, JobQueue, build_queue
from product_scout.logger import logger
from product_scout.metrics import MetricsCollector
from product_scout.models import CrawlSummary
from product_scout.report.json_report import build_report, render_json
from product_scout.store import CrawlStore, build_store

__all__ = ["start_crawl", "write_report", "queue_for", "store_for"]


def store_for(config: CrawlerConfig) -> CrawlStore:
    return build_store(config.store_backend, config.redis_url, config.key_prefix)


def queue_for(config: CrawlerConfig) -> JobQueue:
    return build_queue(
        config.queue_backend,
        redis_url=config.redis_url,
        key_prefix=config.key_prefix,
        max_attempts=config.max_attempts,
        backoff=BackoffPolicy(config.backoff_type, config.backoff_delay),
        visibility_timeout=config.visibility_timeout,
    )


async def start_crawl(
    config: CrawlerConfig,
    *,
    store: Optional[CrawlStore] = None,
    queue: Optional[JobQueue] = None,
    static: Optional[PageExtractor] = None,
    dynamic: Optional[PageExtractor] = None,
) -> CrawlSummary:
    """
    Полная сессия: проверка хранилища и очереди, очистка, обход всех доменов,
    запись итогового JSON.

    Компоненты, переданные явно, используются как есть и не закрываются;
    недоступность хранилища или очереди прерывает запуск до начала обхода.
    """
    async with AsyncExitStack() as stack:
        if store is None:
            store = store_for(config)
            stack.push_async_callback(store.close)
        if queue is None:
            queue = queue_for(config)
            stack.push_async_callback(queue.close)

        await store.ping()
        await queue.ping()
        await store.clear()

        if static is None:
            static = await stack.enter_async_context(StaticExtractor(config))
        if dynamic is None:
            dynamic = DynamicExtractor(config)

        metrics = MetricsCollector(config.metrics_interval)
        dispatcher = Dispatcher(config, queue, DomainCrawlJob(store, static, dynamic), store, metrics)
        logger.info("Starting crawl of %d domains with %d workers", len(config.domains), config.workers)
        summary: Optional[CrawlSummary] = None
        metrics.start()
        try:
            summary = await dispatcher.run(config.domains)
        finally:
            await metrics.stop()
            # итоговый файл пишется всегда; недообработанные домены идут с пустыми urls
            output = await _write_output(store, config.domains, config.output)
            if summary is None:
                logger.warning("Crawl interrupted, partial results written to %s", output)

        summary.output_path = str(output)
        return summary


async def _write_output(store: CrawlStore, domains, path: str, *, pretty: bool = True):
    data = await build_report(store, domains)
    return render_json(data, path, pretty=pretty)


async def write_report(
    config: CrawlerConfig,
    output: Optional[str] = None,
    *,
    store: Optional[CrawlStore] = None,
    pretty: bool = True,
) -> str:
    """Перестраивает итоговый JSON из текущего содержимого хранилища, без обхода."""
    async with AsyncExitStack() as stack:
        if store is None:
            store = store_for(config)
            stack.push_async_callback(store.close)
        await store.ping()
        return str(await _write_output(store, config.domains, output or config.output, pretty=pretty))
