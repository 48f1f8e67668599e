"""Playwright browser lifecycle manager with anti-detection.

One BrowserManager is owned by the application (created in the lifespan
and passed to the adapter factory). The browser is launched lazily on
first use, reused while connected, relaunched after a disconnect, and
closed after a period with no open pages.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import structlog
from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError

from solescan.config import settings
from solescan.scrapers.utils.user_agents import ACCEPT_HTML, ACCEPT_LANGUAGE, get_chromium_user_agent

logger = structlog.get_logger(__name__)

VIEWPORT = {"width": 1920, "height": 1080}


class BrowserManager:
    """Manages Playwright browser lifecycle with anti-detection features.

    Creates one context per source with:
    - A desktop Chromium user agent and matching Accept/Accept-Language headers
    - A fixed 1920x1080 viewport and en-CA locale
    - Stealth JS injected before any page script runs

    Fingerprint settings are applied once per context, so every page a
    source opens shares the same identity for the life of the session.
    """

    def __init__(
        self,
        headless: Optional[bool] = None,
        executable_path: Optional[str] = None,
        idle_timeout: Optional[float] = None,
    ):
        self._headless = settings.BROWSER_HEADLESS if headless is None else headless
        self._executable_path = executable_path if executable_path is not None else settings.BROWSER_EXECUTABLE_PATH
        self._idle_timeout = settings.BROWSER_IDLE_TIMEOUT if idle_timeout is None else idle_timeout
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()
        self._context_lock = asyncio.Lock()
        self._contexts: Dict[str, BrowserContext] = {}
        self._open_pages = 0
        self._idle_task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    @property
    def open_pages(self) -> int:
        return self._open_pages

    async def start(self) -> None:
        """Launch the browser if it is not already connected."""
        async with self._lock:
            if self.is_running:
                return
            if self._browser is not None:
                logger.warning("browser_disconnected_relaunching")
                await self._shutdown()

            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless,
                executable_path=self._executable_path or None,
                args=[
                    "--disable-blink-features=AutomationControlled",
                    "--disable-dev-shm-usage",
                    "--disable-gpu",
                    "--no-sandbox",
                ],
            )
            logger.info("browser_started", headless=self._headless)

    async def stop(self) -> None:
        """Close all contexts and the browser."""
        self._cancel_idle_timer()
        async with self._lock:
            await self._shutdown()

    async def _shutdown(self) -> None:
        for name, ctx in self._contexts.items():
            try:
                await ctx.close()
            except PlaywrightError as e:
                logger.debug("browser_context_close_failed", name=name, error=str(e))
        self._contexts.clear()

        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.debug("browser_close_failed", error=str(e))
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
            logger.info("browser_stopped")

    async def get_context(self, name: str = "default") -> BrowserContext:
        """Get or create a named browser context.

        Each adapter uses its source slug as the context name so cookies
        earned by passing a challenge are reused within that source.
        """
        if not self.is_running:
            await self.start()

        context = self._contexts.get(name)
        if context is not None:
            return context

        async with self._context_lock:
            context = self._contexts.get(name)
            if context is not None:
                return context

            user_agent = get_chromium_user_agent()
            context = await self._browser.new_context(
                user_agent=user_agent,
                viewport=VIEWPORT,
                locale="en-CA",
                timezone_id="America/Toronto",
                extra_http_headers={
                    "Accept": ACCEPT_HTML,
                    "Accept-Language": ACCEPT_LANGUAGE,
                },
                java_script_enabled=True,
            )

            # Inject stealth script to avoid detection
            await context.add_init_script(STEALTH_JS)

            self._contexts[name] = context
            logger.info("browser_context_created", name=name)
            return context

    @asynccontextmanager
    async def page(self, name: str = "default") -> AsyncIterator[Page]:
        """Open a page in the named context; it is closed on every exit path."""
        self._cancel_idle_timer()
        self._open_pages += 1
        page: Optional[Page] = None
        try:
            context = await self.get_context(name)
            page = await context.new_page()
            yield page
        finally:
            if page is not None:
                try:
                    await page.close()
                except PlaywrightError as e:
                    logger.debug("page_close_failed", name=name, error=str(e))
            self._open_pages -= 1
            if self._open_pages == 0:
                self._schedule_idle_close()

    async def close_context(self, name: str) -> None:
        """Close a specific context by name."""
        ctx = self._contexts.pop(name, None)
        if ctx:
            await ctx.close()

    def _schedule_idle_close(self) -> None:
        if self._idle_timeout <= 0:
            return
        self._cancel_idle_timer()
        self._idle_task = asyncio.create_task(self._close_when_idle())

    def _cancel_idle_timer(self) -> None:
        if self._idle_task is not None and not self._idle_task.done():
            self._idle_task.cancel()
        self._idle_task = None

    async def _close_when_idle(self) -> None:
        await asyncio.sleep(self._idle_timeout)
        # Past this point the close must not be cancelled half-way
        self._idle_task = None
        async with self._lock:
            if self._open_pages == 0 and self._browser is not None:
                logger.info("browser_idle_close", idle_s=self._idle_timeout)
                await self._shutdown()


# Minimal stealth JS to mask automation signals
STEALTH_JS = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['en-CA', 'en-US', 'en'] });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'hardwareConcurrency', { get: () => 8 });
window.chrome = { runtime: {} };
const originalQuery = window.navigator.permissions.query;
window.navigator.permissions.query = (parameters) =>
  parameters.name === 'notifications'
    ? Promise.resolve({ state: Notification.permission })
    : originalQuery(parameters);
"""
