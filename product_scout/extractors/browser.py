# product_scout/extractors/browser.py
"""Scoped headless-browser session on playwright."""
from __future__ import annotations

from contextlib import asynccontextmanager, suppress
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from product_scout.config import CrawlerConfig
from product_scout.errors import BrowserLaunchError
from product_scout.logger import get_logger

log = get_logger("browser")

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
]
VIEWPORT = {"width": 1920, "height": 1080}


@asynccontextmanager
async def browser_session(config: CrawlerConfig) -> AsyncIterator[Page]:
    """
    Launch Chromium, open one page and yield it.

    Page, context, browser and driver are closed on every exit path,
    cancellation included. A failed launch raises :class:`BrowserLaunchError`.
    """
    pw: Optional[Playwright] = None
    browser: Optional[Browser] = None
    context: Optional[BrowserContext] = None
    try:
        try:
            pw = await async_playwright().start()
            browser = await pw.chromium.launch(headless=config.headless, args=LAUNCH_ARGS)
        except (PlaywrightError, OSError) as exc:
            raise BrowserLaunchError(f"cannot launch browser: {exc}") from exc

        context = await browser.new_context(user_agent=config.user_agent, viewport=VIEWPORT)
        page = await context.new_page()
        yield page
    finally:
        # a crashed browser makes close() fail; the driver must still stop
        if context is not None:
            with suppress(PlaywrightError):
                await context.close()
        if browser is not None:
            with suppress(PlaywrightError):
                await browser.close()
        if pw is not None:
            await pw.stop()
        log.debug("Browser session closed")
