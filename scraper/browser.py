"""Lifecycle-managed browser handle shared by scrape sessions.

One Chromium instance is launched lazily per pool and reused; every scrape
gets its own isolated context (cookies, storage, viewport) which is always
closed when the scrape ends, however it ends.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from scraper.config import HEADLESS, LOCALE, TIMEZONE_ID, USER_AGENT, VIEWPORT
from scraper.logging_config import get_logger

__all__ = ["BrowserPool"]

logger = get_logger("browser")


class BrowserPool:
    """Owns the Playwright driver and browser for one process.

    Usage:
        pool = BrowserPool()
        async with pool.page() as page:
            await page.goto(url)
        await pool.close()
    """

    def __init__(
        self,
        headless: bool = HEADLESS,
        context_options: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.headless = headless
        self.context_options: Dict[str, Any] = context_options or {
            "viewport": dict(VIEWPORT),
            "user_agent": USER_AGENT,
            "locale": LOCALE,
            "timezone_id": TIMEZONE_ID,
        }
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    async def get_browser(self) -> Browser:
        """Launch the browser on first use, then reuse it."""
        async with self._lock:
            if self._browser is None:
                logger.info(f"Launching Chromium (headless={self.headless})")
                driver = await async_playwright().start()
                try:
                    self._browser = await driver.chromium.launch(headless=self.headless)
                except BaseException:
                    await driver.stop()
                    raise
                self._playwright = driver
            return self._browser

    async def new_context(self) -> BrowserContext:
        """A fresh isolated context; the caller must close it."""
        browser = await self.get_browser()
        return await browser.new_context(**self.context_options)

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Open a page in its own context, closing both on exit."""
        context = await self.new_context()
        page: Optional[Page] = None
        try:
            page = await context.new_page()
            yield page
        finally:
            if page is not None:
                try:
                    await page.close()
                except PlaywrightError as e:
                    logger.debug(f"Page already closed: {e}")
            try:
                await context.close()
            except PlaywrightError as e:
                logger.debug(f"Context already closed: {e}")

    async def close(self) -> None:
        """Shut the browser and driver down. Safe to call repeatedly."""
        async with self._lock:
            browser, self._browser = self._browser, None
            driver, self._playwright = self._playwright, None

            if browser is not None:
                try:
                    await browser.close()
                except PlaywrightError as e:
                    logger.warning(f"Error closing browser: {e}")
            if driver is not None:
                await driver.stop()
                logger.info("Browser pool closed")

    async def __aenter__(self) -> "BrowserPool":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
