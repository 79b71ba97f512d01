# File: tests/test_browser.py
"""Browser session lifecycle with a fake playwright driver."""
from __future__ import annotations

import asyncio
from typing import List, Optional

import pytest
from playwright.async_api import Error as PlaywrightError

import product_scout.extractors.browser as browser_module
from product_scout.errors import BrowserLaunchError
from product_scout.extractors.browser import LAUNCH_ARGS, VIEWPORT, browser_session


class FakeContext:
    def __init__(self, events: List[str]) -> None:
        self.events = events
        self.options: dict = {}

    async def new_page(self) -> str:
        return "page"

    async def close(self) -> None:
        self.events.append("context.close")


class FakeBrowser:
    def __init__(self, events: List[str], close_error: Optional[Exception] = None) -> None:
        self.events = events
        self.close_error = close_error
        self.context = FakeContext(events)

    async def new_context(self, **options) -> FakeContext:
        self.context.options = options
        return self.context

    async def close(self) -> None:
        self.events.append("browser.close")
        if self.close_error:
            raise self.close_error


class FakeChromium:
    def __init__(self, browser: FakeBrowser, launch_error: Optional[Exception]) -> None:
        self.browser = browser
        self.launch_error = launch_error
        self.launch_kwargs: dict = {}

    async def launch(self, **kwargs) -> FakeBrowser:
        self.launch_kwargs = kwargs
        if self.launch_error:
            raise self.launch_error
        return self.browser


class FakePlaywright:
    def __init__(self, events: List[str], launch_error=None, close_error=None) -> None:
        self.events = events
        self.chromium = FakeChromium(FakeBrowser(events, close_error), launch_error)

    async def stop(self) -> None:
        self.events.append("driver.stop")


class FakeStarter:
    def __init__(self, driver: FakePlaywright) -> None:
        self.driver = driver

    async def start(self) -> FakePlaywright:
        return self.driver


@pytest.fixture()
def events() -> List[str]:
    return []


@pytest.fixture()
def install_driver(monkeypatch, events):
    def _install(**kwargs) -> FakePlaywright:
        driver = FakePlaywright(events, **kwargs)
        monkeypatch.setattr(browser_module, "async_playwright", lambda: FakeStarter(driver))
        return driver

    return _install


ALL_CLOSED = ["context.close", "browser.close", "driver.stop"]


@pytest.mark.asyncio()
async def test_session_yields_page_and_closes_everything(fast_config, install_driver, events):
    driver = install_driver()

    async with browser_session(fast_config) as page:
        assert page == "page"
        assert events == []

    assert events == ALL_CLOSED
    assert driver.chromium.launch_kwargs == {"headless": True, "args": LAUNCH_ARGS}
    assert driver.chromium.browser.context.options == {
        "user_agent": fast_config.user_agent,
        "viewport": VIEWPORT,
    }


@pytest.mark.asyncio()
async def test_launch_failure_maps_to_browser_launch_error(fast_config, install_driver, events):
    install_driver(launch_error=PlaywrightError("Executable doesn't exist"))

    with pytest.raises(BrowserLaunchError):
        async with browser_session(fast_config):
            pytest.fail("session must not open")

    assert events == ["driver.stop"]


@pytest.mark.asyncio()
async def test_error_inside_session_closes_everything(fast_config, install_driver, events):
    install_driver()

    with pytest.raises(ValueError):
        async with browser_session(fast_config):
            raise ValueError("boom")

    assert events == ALL_CLOSED


@pytest.mark.asyncio()
async def test_cancellation_closes_everything(fast_config, install_driver, events):
    install_driver()
    opened = asyncio.Event()

    async def hold_session():
        async with browser_session(fast_config):
            opened.set()
            await asyncio.sleep(10)

    task = asyncio.create_task(hold_session())
    await opened.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert events == ALL_CLOSED


@pytest.mark.asyncio()
async def test_crashed_browser_still_stops_driver(fast_config, install_driver, events):
    install_driver(close_error=PlaywrightError("Target closed"))

    async with browser_session(fast_config):
        pass

    assert events == ALL_CLOSED
