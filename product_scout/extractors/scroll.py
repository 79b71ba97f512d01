# product_scout/extractors/scroll.py
"""
Scroll/expand discovery loop.

Scrolls a rendered page to the bottom until its height stops changing,
clicking "load more"-style controls on the way. The page only needs an
awaitable ``evaluate(expression, arg=None)``, so the loop runs unchanged
against a playwright page or a scripted fake.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol, Sequence

from product_scout.logger import get_logger

log = get_logger("scroll")

LOAD_MORE_PHRASES: Sequence[str] = ("load more", "show more", "view more")

SCROLL_HEIGHT_JS = "() => document.body ? document.body.scrollHeight : 0"
SCROLL_TO_BOTTOM_JS = "() => window.scrollTo(0, document.body ? document.body.scrollHeight : 0)"
CLICK_LOAD_MORE_JS = """
(phrases) => {
  const candidates = document.querySelectorAll('button, [role="button"], a');
  for (const el of candidates) {
    const text = (el.textContent || '').toLowerCase();
    if (!phrases.some((p) => text.includes(p))) continue;
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    if (el.disabled || rect.width === 0 || rect.height === 0) continue;
    if (style.visibility === 'hidden' || style.display === 'none') continue;
    el.click();
    return true;
  }
  return false;
}
"""


class ScriptablePage(Protocol):
    async def evaluate(self, expression: str, arg: Any = None) -> Any: ...


@dataclass(slots=True)
class ScrollStats:
    iterations: int = 0
    clicks: int = 0
    height_reads: int = 0
    final_height: int = 0
    exhausted: bool = False


class ScrollDiscovery:
    """
    Parameters
    ----------
    settle
        Pause after each scroll, seconds.
    load_more_settle
        Longer pause after a "load more" click, seconds.
    max_iterations
        Hard cap on scroll iterations for pages that never stabilise.
    stable_rounds
        Number of consecutive identical height readings that means the
        content is exhausted. With 3, heights ``100, 200, 200, 200`` stop
        the loop on the third ``200``.
    sleep
        Awaitable used for the pauses (tests pass a no-op).
    """

    def __init__(
        self,
        *,
        settle: float = 1.0,
        load_more_settle: float = 2.0,
        max_iterations: int = 20,
        stable_rounds: int = 3,
        phrases: Sequence[str] = LOAD_MORE_PHRASES,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if stable_rounds < 2:
            raise ValueError("stable_rounds must be >= 2")
        self.settle = settle
        self.load_more_settle = load_more_settle
        self.max_iterations = max_iterations
        self.stable_rounds = stable_rounds
        self.phrases = [p.lower() for p in phrases]
        self._sleep = sleep

    async def run(self, page: ScriptablePage) -> ScrollStats:
        stats = ScrollStats()
        height = await self._height(page, stats)
        same_run = 1

        for iteration in range(1, self.max_iterations + 1):
            stats.iterations = iteration
            await page.evaluate(SCROLL_TO_BOTTOM_JS)
            await self._sleep(self.settle)

            current = await self._height(page, stats)
            same_run = same_run + 1 if current == height else 1
            height = current
            if same_run >= self.stable_rounds:
                stats.exhausted = True
                break

            if await page.evaluate(CLICK_LOAD_MORE_JS, self.phrases):
                stats.clicks += 1
                log.debug("Clicked a load-more control (iteration %d)", iteration)
                await self._sleep(self.load_more_settle)

        stats.final_height = height
        log.debug(
            "Scroll loop done: %d iterations, %d clicks, height %d, exhausted=%s",
            stats.iterations, stats.clicks, height, stats.exhausted,
        )
        return stats

    @staticmethod
    async def _height(page: ScriptablePage, stats: ScrollStats) -> int:
        stats.height_reads += 1
        value = await page.evaluate(SCROLL_HEIGHT_JS)
        return int(value or 0)
