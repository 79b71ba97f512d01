# product_scout/dispatcher.py
"""
Dispatcher and worker pool.

One job per domain is submitted under the domain's normalized URL; a fixed
number of worker tasks consume jobs one at a time, each behind its own rate
limiter; a single aggregator reads queue events and resolves every domain
exactly once (completed or terminally failed).
"""
from __future__ import annotations

import asyncio
import time
from typing import Dict, Iterable, List, Optional, Set

from product_scout.config import CrawlerConfig
from product_scout.errors import RetryableJobError
from product_scout.job import DomainCrawlJob
from product_scout.jobqueue.base import JobEvent, JobQueue, QueuedJob
from product_scout.logger import get_logger
from product_scout.metrics import MetricsCollector
from product_scout.models import CrawlJob, CrawlSummary, DomainTarget, JobOutcome, Success, failure, success
from product_scout.rate_limiter import RateLimiter
from product_scout.store.base import CrawlStore

__all__ = ("Dispatcher",)


class Dispatcher:
    def __init__(
        self,
        config: CrawlerConfig,
        queue: JobQueue,
        job: DomainCrawlJob,
        store: CrawlStore,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.config = config
        self.queue = queue
        self.job = job
        self.store = store
        self.metrics = metrics or MetricsCollector(interval=0)
        self.logger = get_logger("dispatcher")

    async def run(self, domains: Iterable[str]) -> CrawlSummary:
        """Crawl *domains* until each one is completed or has failed for good."""
        start = time.monotonic()
        pending = await self._submit_all(domains)
        summary = CrawlSummary(total=len(pending))
        self.metrics.total = len(pending)

        workers = [
            asyncio.create_task(self._worker(i + 1), name=f"worker-{i + 1}")
            for i in range(self.config.workers)
        ]
        try:
            await self._aggregate(pending, summary, workers)
        finally:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        summary.duration = time.monotonic() - start
        self.logger.info(
            "All domains processed: %d completed, %d failed in %.2f s",
            len(summary.completed), len(summary.failed), summary.duration,
        )
        return summary

    # submission -------------------------------------------------------------
    async def _submit_all(self, domains: Iterable[str]) -> Dict[str, DomainTarget]:
        pending: Dict[str, DomainTarget] = {}
        for url in domains:
            target = DomainTarget(url)
            job_id = target.identity
            if not await self.queue.submit(job_id, CrawlJob(target).payload()):
                self.logger.info("Job for %s is already queued", job_id)
            pending.setdefault(job_id, target)
        self.logger.info("Added %d jobs to queue", len(pending))
        return pending

    # workers ----------------------------------------------------------------
    async def _worker(self, number: int) -> None:
        limiter = RateLimiter(self.config.rate_limit_window)
        while True:
            queued = await self.queue.consume(self.config.poll_timeout)
            if queued is None:
                continue
            await limiter.wait()
            await self._process(number, queued)

    async def _process(self, number: int, queued: QueuedJob) -> None:
        job = CrawlJob.from_payload(queued.payload, queued.attempt)
        self.logger.info("Worker %d processing: %s", number, job.target.url)
        self.metrics.job_started()
        try:
            outcome = await self._attempt(number, job)
        finally:
            self.metrics.job_finished()

        if isinstance(outcome, Success):
            await self.queue.complete(queued, outcome.urls)
        else:
            await self.queue.fail(queued, outcome.reason)

    async def _attempt(self, number: int, job: CrawlJob) -> JobOutcome:
        try:
            return success(await self.job.crawl(job.target, job.attempt))
        except RetryableJobError as exc:
            self.logger.warning("Worker %d: %s", number, exc)
            return failure(exc)
        except Exception as exc:
            self.logger.exception("Worker %d failed job for %s", number, job.target.url)
            return failure(exc)

    # aggregation ------------------------------------------------------------
    async def _aggregate(
        self,
        pending: Dict[str, DomainTarget],
        summary: CrawlSummary,
        workers: List[asyncio.Task[None]],
    ) -> None:
        unresolved: Set[str] = set(pending)
        while unresolved:
            event = await self.queue.next_event(self.config.poll_timeout)
            if event is None:
                self._check_workers(workers)
                continue
            if event.job_id not in unresolved:
                self.logger.debug("Ignoring %s event for %s", event.kind, event.job_id)
                continue
            self.metrics.record(event.kind)
            if event.kind == "retrying":
                self.logger.warning(
                    "Attempt %d for %s failed, retrying in %.1f s: %s",
                    event.attempt + 1, event.job_id, event.delay, event.error,
                )
                continue

            unresolved.discard(event.job_id)
            await self._resolve(event, summary)
            progress = 100.0 * summary.resolved / summary.total
            self.logger.info("Progress: %.2f%% (%d/%d)", progress, summary.resolved, summary.total)

    async def _resolve(self, event: JobEvent, summary: CrawlSummary) -> None:
        if event.kind == "completed":
            summary.completed[event.job_id] = event.urls
            self.logger.info("Completed job for %s: %d product URLs", event.job_id, len(event.urls))
            return
        # a partially marked attempt must not make the next session skip this domain
        await self.store.unmark_visited(event.job_id)
        summary.failed[event.job_id] = event.error or "unknown error"
        self.logger.error(
            "Failed job for %s after %d attempts: %s", event.job_id, event.attempt + 1, event.error
        )

    @staticmethod
    def _check_workers(workers: List[asyncio.Task[None]]) -> None:
        for w in workers:
            if w.done() and not w.cancelled() and w.exception() is not None:
                raise w.exception()  # type: ignore[misc]
