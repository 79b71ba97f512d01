# product_scout/metrics.py
"""
Session metrics with an explicit lifecycle.

The session engine creates one :class:`MetricsCollector`, starts it, hands it
to the dispatcher and stops it during cleanup.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import asdict, dataclass
from typing import Dict, Optional

from product_scout.logger import get_logger

log = get_logger("metrics")


@dataclass(slots=True)
class MetricsSnapshot:
    active: int
    completed: int
    failed: int
    retried: int
    total: int
    elapsed: float

    @property
    def progress(self) -> float:
        return 100.0 * (self.completed + self.failed) / self.total if self.total else 0.0


class MetricsCollector:
    def __init__(self, interval: float = 10.0) -> None:
        self.interval = interval
        self.total = 0
        self.active = 0
        self.completed = 0
        self.failed = 0
        self.retried = 0
        self._started: Optional[float] = None
        self._task: Optional[asyncio.Task[None]] = None

    # lifecycle --------------------------------------------------------------
    def start(self) -> None:
        if self._started is None:
            self._started = time.monotonic()
        if self.interval > 0 and self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._report_loop())

    async def stop(self) -> MetricsSnapshot:
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        snap = self.snapshot()
        log.info("Metrics: %s", self._format(snap))
        return snap

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # counters ---------------------------------------------------------------
    def job_started(self) -> None:
        self.active += 1

    def job_finished(self) -> None:
        self.active = max(0, self.active - 1)

    def record(self, kind: str) -> None:
        if kind == "completed":
            self.completed += 1
        elif kind == "failed":
            self.failed += 1
        elif kind == "retrying":
            self.retried += 1

    def snapshot(self) -> MetricsSnapshot:
        elapsed = time.monotonic() - self._started if self._started is not None else 0.0
        return MetricsSnapshot(
            self.active, self.completed, self.failed, self.retried, self.total, elapsed
        )

    def as_dict(self) -> Dict[str, float]:
        return asdict(self.snapshot())

    # internals --------------------------------------------------------------
    async def _report_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            log.info("Metrics: %s", self._format(self.snapshot()))

    @staticmethod
    def _format(s: MetricsSnapshot) -> str:
        return (
            f"active={s.active} completed={s.completed} failed={s.failed} "
            f"retried={s.retried} progress={s.progress:.2f}% elapsed={s.elapsed:.1f}s"
        )
