"""
Shared headless browser for analysis runs.

One Chromium instance is launched lazily, shared by concurrent analyses and
closed after a period without new pages. The next request relaunches it.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright

from .config import USER_AGENT, ScanSettings
from .models import AnalyzeOptions

logger = logging.getLogger(__name__)


class SessionLaunchError(RuntimeError):
    """The browser could not be started."""


class BrowserSessionManager:
    def __init__(self, settings: Optional[ScanSettings] = None, launcher=None):
        self.settings = settings or ScanSettings()
        self._launcher = launcher or async_playwright
        self._lock = asyncio.Lock()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._idle_task: Optional[asyncio.Task] = None
        self._active_pages = 0
        self.launches = 0

    @property
    def is_connected(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def get_browser(self) -> Browser:
        """Return the shared browser, launching it at most once for concurrent callers."""
        async with self._lock:
            if self.is_connected:
                return self._browser
            await self._shutdown()
            try:
                self._playwright = await self._launcher().start()
                self._browser = await self._playwright.chromium.launch(headless=self.settings.headless)
            except Exception as exc:
                await self._shutdown()
                raise SessionLaunchError(f"browser launch failed: {exc}") from exc
            self.launches += 1
            logger.info("Browser launched (headless=%s)", self.settings.headless)
            return self._browser

    @asynccontextmanager
    async def new_page(self, options: Optional[AnalyzeOptions] = None) -> AsyncIterator[Page]:
        """Fresh context and page for one analysis; the context is always closed afterwards."""
        options = options or AnalyzeOptions()
        browser = await self.get_browser()
        self._cancel_idle()
        self._active_pages += 1
        context = None
        try:
            context = await browser.new_context(
                viewport=self.settings.viewport,
                device_scale_factor=1,
                user_agent=USER_AGENT,
            )
            page = await context.new_page()
            if options.prefers_color_scheme and options.prefers_color_scheme != "none":
                await page.emulate_media(color_scheme=options.prefers_color_scheme)
            yield page
        finally:
            if context is not None:
                try:
                    await context.close()
                except Exception as exc:
                    logger.debug("context close failed: %s", exc)
            self._active_pages -= 1
            if self._active_pages == 0:
                self._schedule_idle()

    def _schedule_idle(self) -> None:
        self._cancel_idle()
        self._idle_task = asyncio.ensure_future(self._close_when_idle())

    def _cancel_idle(self) -> None:
        if self._idle_task is not None and not self._idle_task.done():
            self._idle_task.cancel()
        self._idle_task = None

    async def _close_when_idle(self) -> None:
        await asyncio.sleep(self.settings.idle_seconds)
        async with self._lock:
            if self._active_pages == 0:
                logger.info("Browser idle for %ss, closing", self.settings.idle_seconds)
                await self._shutdown()

    async def _shutdown(self) -> None:
        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._playwright = None
        if browser is not None:
            try:
                await browser.close()
            except Exception as exc:
                logger.debug("browser close failed: %s", exc)
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as exc:
                logger.debug("playwright stop failed: %s", exc)

    async def close(self) -> None:
        self._cancel_idle()
        async with self._lock:
            await self._shutdown()

    async def __aenter__(self) -> "BrowserSessionManager":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
