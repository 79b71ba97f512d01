"""product_scout.jobqueue: job-queue transports with retry/backoff and dedup-by-identity."""

from __future__ import annotations

from product_scout.jobqueue.base import BackoffPolicy, JobEvent, JobQueue, QueuedJob
from product_scout.jobqueue.memory import MemoryJobQueue


def build_queue(
    backend: str,
    *,
    redis_url: str,
    key_prefix: str,
    max_attempts: int,
    backoff: BackoffPolicy,
    visibility_timeout: float,
) -> JobQueue:
    """Queue for the configured backend (``memory`` or ``redis``)."""
    options = dict(max_attempts=max_attempts, backoff=backoff, visibility_timeout=visibility_timeout)
    if backend == "memory":
        return MemoryJobQueue(**options)
    if backend == "redis":
        from product_scout.jobqueue.redis_queue import RedisJobQueue

        return RedisJobQueue.from_url(redis_url, key_prefix=key_prefix, **options)
    raise ValueError(f"Unknown queue backend: {backend}")


__all__ = ["BackoffPolicy", "JobEvent", "JobQueue", "QueuedJob", "MemoryJobQueue", "build_queue"]
