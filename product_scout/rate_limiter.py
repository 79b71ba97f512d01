"""
Minimum-interval limiter for job starts.
"""

from __future__ import annotations

import asyncio
import time


class RateLimiter:
    """
    Allows at most one acquisition per *interval* seconds.

    Each worker owns one, so the limit is per worker: ≤1 job start per window.
    """

    def __init__(self, interval: float) -> None:
        self.interval = max(0.0, interval)
        self._lock = asyncio.Lock()
        self._last_ts: float | None = None

    async def wait(self) -> None:
        """Sleep as needed so consecutive calls are spaced by the interval."""
        async with self._lock:
            if self._last_ts is not None:
                wait = self.interval - (time.monotonic() - self._last_ts)
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_ts = time.monotonic()
