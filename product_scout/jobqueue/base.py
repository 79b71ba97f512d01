# product_scout/jobqueue/base.py
"""
Job-queue boundary.

The queue owns the retry state machine::

    Queued -> Active -> Completed
                     -> Retrying -> Queued      (attempt + 1, after backoff)
                     -> Failed                  (attempt ceiling reached)

Workers only report ``complete(job, urls)`` or ``fail(job, error)``; every
state change is published as a :class:`JobEvent` on a single event channel
read by the dispatcher's aggregator.
"""
from __future__ import annotations

import json
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, Literal, Optional

from product_scout.logger import get_logger
from product_scout.models import failure

log = get_logger("queue")

EventKind = Literal["completed", "retrying", "failed"]


@dataclass(frozen=True, slots=True)
class QueuedJob:
    """One delivery of a job. ``token`` identifies the lease of this delivery."""

    job_id: str
    payload: Dict[str, Any]
    attempt: int = 0
    token: Optional[str] = None

    def leased(self) -> QueuedJob:
        return replace(self, token=uuid.uuid4().hex)

    def to_json(self) -> str:
        return json.dumps({"job_id": self.job_id, "payload": self.payload, "attempt": self.attempt})

    @classmethod
    def from_json(cls, raw: str) -> QueuedJob:
        data = json.loads(raw)
        return cls(data["job_id"], data["payload"], int(data.get("attempt", 0)))


@dataclass(frozen=True, slots=True)
class JobEvent:
    kind: EventKind
    job_id: str
    attempt: int
    payload: Dict[str, Any] = field(default_factory=dict)
    urls: FrozenSet[str] = frozenset()
    error: Optional[str] = None
    delay: float = 0.0

    @property
    def terminal(self) -> bool:
        return self.kind in ("completed", "failed")

    def to_json(self) -> str:
        return json.dumps(
            {
                "kind": self.kind,
                "job_id": self.job_id,
                "attempt": self.attempt,
                "payload": self.payload,
                "urls": sorted(self.urls),
                "error": self.error,
                "delay": self.delay,
            }
        )

    @classmethod
    def from_json(cls, raw: str) -> JobEvent:
        data = json.loads(raw)
        return cls(
            kind=data["kind"],
            job_id=data["job_id"],
            attempt=int(data["attempt"]),
            payload=data.get("payload") or {},
            urls=frozenset(data.get("urls") or ()),
            error=data.get("error"),
            delay=float(data.get("delay") or 0.0),
        )


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    """Delay before retry number *n* (1-based)."""

    kind: Literal["exponential", "linear", "fixed"] = "exponential"
    delay: float = 1.0

    def delay_for(self, retry: int) -> float:
        retry = max(1, retry)
        if self.kind == "fixed":
            return self.delay
        if self.kind == "linear":
            return self.delay * retry
        return self.delay * (2 ** (retry - 1))


class JobQueue(ABC):
    """At-least-once queue with dedup-by-identity, attempts and backoff."""

    def __init__(
        self,
        *,
        max_attempts: int = 4,
        backoff: BackoffPolicy = BackoffPolicy(),
        visibility_timeout: float = 180.0,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.visibility_timeout = visibility_timeout

    # transport primitives ---------------------------------------------------
    @abstractmethod
    async def submit(
        self, job_id: str, payload: Dict[str, Any], *, attempt: int = 0, delay: float = 0.0
    ) -> bool:
        """Enqueue a job. False if a job with this identity is still outstanding."""

    @abstractmethod
    async def consume(self, timeout: float) -> Optional[QueuedJob]:
        """Lease the next ready job, or None after *timeout* seconds."""

    @abstractmethod
    async def next_event(self, timeout: float) -> Optional[JobEvent]: ...

    @abstractmethod
    async def _is_current(self, job: QueuedJob) -> bool:
        """True if *job* still holds the active lease for its identity."""

    @abstractmethod
    async def _release(self, job: QueuedJob) -> None:
        """Drop the lease and the outstanding identity (terminal)."""

    @abstractmethod
    async def _reschedule(self, job: QueuedJob, delay: float) -> None:
        """Drop the lease and enqueue *job* again after *delay*; identity stays outstanding."""

    @abstractmethod
    async def _emit(self, event: JobEvent) -> None: ...

    async def ping(self) -> None:
        return None

    async def close(self) -> None:
        return None

    # state machine ----------------------------------------------------------
    async def complete(self, job: QueuedJob, urls: Iterable[str] = ()) -> None:
        await self._release(job)
        await self._emit(JobEvent("completed", job.job_id, job.attempt, job.payload, frozenset(urls)))

    async def fail(self, job: QueuedJob, error: BaseException | str | None) -> bool:
        """Report a failed attempt. Returns True if the job will be retried."""
        if not await self._is_current(job):
            # the lease expired and the job was delivered again; that delivery decides
            log.warning("Ignoring stale failure report for %s (attempt %d)", job.job_id, job.attempt)
            return False

        reason = failure(error).reason
        next_attempt = job.attempt + 1
        if next_attempt < self.max_attempts:
            delay = self.backoff.delay_for(next_attempt)
            await self._reschedule(QueuedJob(job.job_id, job.payload, next_attempt), delay)
            await self._emit(
                JobEvent("retrying", job.job_id, job.attempt, job.payload, error=reason, delay=delay)
            )
            return True

        await self._release(job)
        await self._emit(JobEvent("failed", job.job_id, job.attempt, job.payload, error=reason))
        return False

    async def __aenter__(self) -> JobQueue:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
