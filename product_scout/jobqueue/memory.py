# product_scout/jobqueue/memory.py
"""Single-process queue on top of :class:`asyncio.Queue`."""
from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, Optional, Set, Tuple

from product_scout.jobqueue.base import JobEvent, JobQueue, QueuedJob, log


class MemoryJobQueue(JobQueue):
    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._ready: asyncio.Queue[QueuedJob] = asyncio.Queue()
        self._events: asyncio.Queue[JobEvent] = asyncio.Queue()
        self._outstanding: Set[str] = set()
        # job_id -> (lease token, deadline, job)
        self._leases: Dict[str, Tuple[str, float, QueuedJob]] = {}
        self._timers: Set[asyncio.TimerHandle] = set()

    @property
    def outstanding(self) -> Set[str]:
        return set(self._outstanding)

    async def submit(
        self, job_id: str, payload: Dict[str, Any], *, attempt: int = 0, delay: float = 0.0
    ) -> bool:
        if job_id in self._outstanding:
            log.debug("Duplicate submit ignored: %s", job_id)
            return False
        self._outstanding.add(job_id)
        self._enqueue(QueuedJob(job_id, dict(payload), attempt), delay)
        return True

    async def consume(self, timeout: float) -> Optional[QueuedJob]:
        self._reap_stalled()
        try:
            job = await asyncio.wait_for(self._ready.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None
        leased = job.leased()
        self._leases[job.job_id] = (leased.token, time.monotonic() + self.visibility_timeout, leased)
        return leased

    async def next_event(self, timeout: float) -> Optional[JobEvent]:
        try:
            return await asyncio.wait_for(self._events.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    async def close(self) -> None:
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()

    # primitives -------------------------------------------------------------
    async def _is_current(self, job: QueuedJob) -> bool:
        lease = self._leases.get(job.job_id)
        return lease is not None and lease[0] == job.token

    async def _release(self, job: QueuedJob) -> None:
        self._drop_lease(job)
        self._outstanding.discard(job.job_id)

    async def _reschedule(self, job: QueuedJob, delay: float) -> None:
        self._drop_lease(job)
        self._enqueue(job, delay)

    async def _emit(self, event: JobEvent) -> None:
        self._events.put_nowait(event)

    # helpers ----------------------------------------------------------------
    def _drop_lease(self, job: QueuedJob) -> None:
        lease = self._leases.get(job.job_id)
        if lease is not None and (job.token is None or lease[0] == job.token):
            del self._leases[job.job_id]

    def _enqueue(self, job: QueuedJob, delay: float) -> None:
        if delay <= 0:
            self._ready.put_nowait(job)
            return
        loop = asyncio.get_running_loop()
        handle: asyncio.TimerHandle

        def _fire() -> None:
            self._timers.discard(handle)
            self._ready.put_nowait(job)

        handle = loop.call_later(delay, _fire)
        self._timers.add(handle)

    def _reap_stalled(self) -> None:
        now = time.monotonic()
        for job_id, (_, deadline, job) in list(self._leases.items()):
            if deadline <= now:
                del self._leases[job_id]
                log.warning("Job %s stalled (attempt %d), delivering again", job_id, job.attempt)
                self._ready.put_nowait(QueuedJob(job.job_id, job.payload, job.attempt))
