# product_scout/extractors/dynamic.py
"""
Dynamic extractor: render the page, run the scroll/expand loop, collect
anchors from the final DOM.
"""
from __future__ import annotations

import asyncio
from typing import Any, AsyncContextManager, Awaitable, Callable, Optional, Set

from playwright.async_api import Error as PlaywrightError

from product_scout.classifier import has_product_marker
from product_scout.config import CrawlerConfig
from product_scout.extractors.browser import browser_session
from product_scout.extractors.scroll import ScrollDiscovery
from product_scout.logger import get_logger

ANCHOR_SELECTOR = "a[href]"
ANCHOR_HREFS_JS = "(els) => els.map((el) => el.href)"

SessionFactory = Callable[[], AsyncContextManager[Any]]


class DynamicExtractor:
    def __init__(
        self,
        config: CrawlerConfig,
        session_factory: Optional[SessionFactory] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self._session_factory = session_factory or (lambda: browser_session(config))
        self.discovery = ScrollDiscovery(
            settle=config.scroll_settle,
            load_more_settle=config.load_more_settle,
            max_iterations=config.max_scroll_iterations,
            stable_rounds=config.stable_height_rounds,
            sleep=sleep,
        )
        self.logger = get_logger("dynamic")

    async def extract(self, page_url: str) -> Set[str]:
        """Product links of the fully scrolled page; empty on navigation or render errors."""
        async with self._session_factory() as page:
            try:
                await page.goto(
                    page_url,
                    wait_until="networkidle",
                    timeout=self.config.navigation_timeout * 1000,
                )
            except (PlaywrightError, asyncio.TimeoutError) as exc:
                self.logger.warning("Error scraping dynamic page %s: %s", page_url, exc)
                return set()

            try:
                stats = await self.discovery.run(page)
                hrefs = await page.eval_on_selector_all(ANCHOR_SELECTOR, ANCHOR_HREFS_JS)
            except Exception as exc:
                # partial scroll state is indistinguishable from a broken render
                self.logger.warning("Scroll loop failed on %s: %r", page_url, exc)
                return set()

        links = {href for href in hrefs or () if isinstance(href, str) and has_product_marker(href)}
        self.logger.debug(
            "Dynamic extractor: %d product links on %s after %d scrolls",
            len(links), page_url, stats.iterations,
        )
        return links
