"""Tests for the browser lifecycle manager with a fake Playwright driver."""

import asyncio

import pytest

from solescan.scrapers.utils import browser_manager as browser_manager_module
from solescan.scrapers.utils.browser_manager import STEALTH_JS, BrowserManager


class FakeBrowserPage:
    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, options):
        self.options = options
        self.init_scripts = []
        self.pages = []
        self.closed = False

    async def add_init_script(self, script):
        self.init_scripts.append(script)

    async def new_page(self):
        page = FakeBrowserPage()
        self.pages.append(page)
        return page

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, options):
        self.options = options
        self.connected = True
        self.contexts = []

    def is_connected(self):
        return self.connected

    async def new_context(self, **options):
        await asyncio.sleep(0)
        context = FakeContext(options)
        self.contexts.append(context)
        return context

    async def close(self):
        self.connected = False


class FakePlaywright:
    """Records every launch; ``chromium`` is the playwright object itself."""

    def __init__(self, driver):
        self.driver = driver
        self.chromium = self
        self.stopped = False

    async def launch(self, **options):
        browser = FakeBrowser(options)
        self.driver.browsers.append(browser)
        return browser

    async def stop(self):
        self.stopped = True


class FakeDriver:
    def __init__(self):
        self.instances = []
        self.browsers = []

    def __call__(self):
        return self

    async def start(self):
        playwright = FakePlaywright(self)
        self.instances.append(playwright)
        return playwright


@pytest.fixture
def driver(monkeypatch):
    fake = FakeDriver()
    monkeypatch.setattr(browser_manager_module, "async_playwright", fake)
    return fake


# ============================================================================
# TESTS: LIFECYCLE
# ============================================================================

class TestBrowserLifecycle:
    """Lazy launch, reuse, relaunch and idle close."""

    async def test_launch_is_lazy(self, driver):
        manager = BrowserManager(idle_timeout=0)

        assert manager.is_running is False
        assert driver.browsers == []

        async with manager.page("stockx"):
            assert manager.is_running is True
            assert manager.open_pages == 1

        assert len(driver.browsers) == 1
        assert driver.browsers[0].options["headless"] is True
        await manager.stop()

    async def test_context_per_source_is_reused(self, driver):
        manager = BrowserManager(idle_timeout=0)

        async with manager.page("stockx"):
            pass
        async with manager.page("stockx"):
            pass
        async with manager.page("goat"):
            pass

        browser = driver.browsers[0]
        assert len(browser.contexts) == 2
        stockx_context = browser.contexts[0]
        assert len(stockx_context.pages) == 2
        assert stockx_context.init_scripts == [STEALTH_JS]
        assert stockx_context.options["locale"] == "en-CA"
        assert stockx_context.options["viewport"] == {"width": 1920, "height": 1080}
        await manager.stop()

    async def test_concurrent_callers_share_one_context(self, driver):
        manager = BrowserManager(idle_timeout=0)

        first, second = await asyncio.gather(
            manager.get_context("stockx"),
            manager.get_context("stockx"),
        )

        assert first is second
        assert len(driver.browsers) == 1
        assert len(driver.browsers[0].contexts) == 1
        await manager.stop()

    async def test_relaunch_after_disconnect(self, driver):
        manager = BrowserManager(idle_timeout=0)
        async with manager.page("goat"):
            pass

        driver.browsers[0].connected = False
        async with manager.page("goat"):
            pass

        assert len(driver.browsers) == 2
        assert driver.instances[0].stopped is True
        assert driver.browsers[0].contexts[0].closed is True
        assert len(driver.browsers[1].contexts) == 1
        await manager.stop()

    async def test_page_closed_when_caller_fails(self, driver):
        manager = BrowserManager(idle_timeout=0)

        with pytest.raises(RuntimeError):
            async with manager.page("kickscrew") as page:
                raise RuntimeError("parse failed")

        assert page.closed is True
        assert manager.open_pages == 0
        await manager.stop()

    async def test_idle_close(self, driver):
        manager = BrowserManager(idle_timeout=0.01)

        async with manager.page("stockx"):
            pass
        await asyncio.sleep(0.05)

        assert manager.is_running is False
        assert driver.instances[0].stopped is True

    async def test_open_page_cancels_idle_close(self, driver):
        manager = BrowserManager(idle_timeout=0.02)

        async with manager.page("stockx"):
            pass
        async with manager.page("stockx"):
            await asyncio.sleep(0.06)
            assert manager.is_running is True

        await manager.stop()
        assert manager.is_running is False

    async def test_stop_closes_everything(self, driver):
        manager = BrowserManager(idle_timeout=0)
        async with manager.page("stockx"):
            pass

        await manager.stop()

        assert driver.browsers[0].connected is False
        assert driver.browsers[0].contexts[0].closed is True
        assert driver.instances[0].stopped is True
