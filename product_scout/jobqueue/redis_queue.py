# product_scout/jobqueue/redis_queue.py
"""
Redis transport for :class:`JobQueue`, shareable between processes.

Keys under ``<prefix>queue:<name>:``::

    ids      SET    identities still outstanding (dedup-by-identity)
    wait     LIST   ready jobs (JSON)
    delayed  ZSET   jobs waiting for their backoff, scored by ready time
    active   HASH   job_id -> {"job": ..., "token": ..., "deadline": ...}
    events   LIST   JobEvent JSON, consumed by the aggregator
"""
from __future__ import annotations

import json
import time
from typing import Any, Dict, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from product_scout.errors import QueueUnavailableError
from product_scout.jobqueue.base import JobEvent, JobQueue, QueuedJob, log


class RedisJobQueue(JobQueue):
    def __init__(
        self,
        client: Redis,
        *,
        name: str = "crawlQueue",
        key_prefix: str = "product_scout:",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._redis = client
        base = f"{key_prefix}queue:{name}:"
        self.ids_key = base + "ids"
        self.wait_key = base + "wait"
        self.delayed_key = base + "delayed"
        self.active_key = base + "active"
        self.events_key = base + "events"

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> RedisJobQueue:
        return cls(Redis.from_url(url, decode_responses=True), **kwargs)

    async def ping(self) -> None:
        try:
            await self._redis.ping()
        except (RedisError, OSError) as exc:
            raise QueueUnavailableError(f"Redis queue unavailable: {exc}") from exc

    async def close(self) -> None:
        await self._redis.aclose()

    async def submit(
        self, job_id: str, payload: Dict[str, Any], *, attempt: int = 0, delay: float = 0.0
    ) -> bool:
        if not await self._redis.sadd(self.ids_key, job_id):
            log.debug("Duplicate submit ignored: %s", job_id)
            return False
        await self._push(QueuedJob(job_id, dict(payload), attempt), delay)
        return True

    async def consume(self, timeout: float) -> Optional[QueuedJob]:
        await self._promote_delayed()
        await self._reap_stalled()
        item = await self._redis.blpop([self.wait_key], timeout=timeout)
        if item is None:
            return None
        _, raw = item
        job = QueuedJob.from_json(raw).leased()
        lease = {"job": raw, "token": job.token, "deadline": time.time() + self.visibility_timeout}
        await self._redis.hset(self.active_key, job.job_id, json.dumps(lease))
        return job

    async def next_event(self, timeout: float) -> Optional[JobEvent]:
        item = await self._redis.blpop([self.events_key], timeout=timeout)
        if item is None:
            return None
        return JobEvent.from_json(item[1])

    # primitives -------------------------------------------------------------
    async def _is_current(self, job: QueuedJob) -> bool:
        raw = await self._redis.hget(self.active_key, job.job_id)
        return raw is not None and json.loads(raw).get("token") == job.token

    async def _release(self, job: QueuedJob) -> None:
        if await self._is_current(job):
            await self._redis.hdel(self.active_key, job.job_id)
        await self._redis.srem(self.ids_key, job.job_id)

    async def _reschedule(self, job: QueuedJob, delay: float) -> None:
        await self._redis.hdel(self.active_key, job.job_id)
        await self._push(job, delay)

    async def _emit(self, event: JobEvent) -> None:
        await self._redis.rpush(self.events_key, event.to_json())

    # helpers ----------------------------------------------------------------
    async def _push(self, job: QueuedJob, delay: float) -> None:
        if delay > 0:
            await self._redis.zadd(self.delayed_key, {job.to_json(): time.time() + delay})
        else:
            await self._redis.rpush(self.wait_key, job.to_json())

    async def _promote_delayed(self) -> None:
        due = await self._redis.zrangebyscore(self.delayed_key, 0, time.time())
        for raw in due:
            # zrem decides which consumer moves the job when several race
            if await self._redis.zrem(self.delayed_key, raw):
                await self._redis.rpush(self.wait_key, raw)

    async def _reap_stalled(self) -> None:
        now = time.time()
        leases = await self._redis.hgetall(self.active_key)
        for job_id, raw in leases.items():
            lease = json.loads(raw)
            if lease["deadline"] > now:
                continue
            if await self._redis.hdel(self.active_key, job_id):
                log.warning("Job %s stalled, delivering again", job_id)
                await self._redis.rpush(self.wait_key, lease["job"])
