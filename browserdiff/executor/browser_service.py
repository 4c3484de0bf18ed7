"""Playwright browser lifecycle: launch, contexts, pages and navigation."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from browserdiff.errors import CaptureTimeoutError, ConfigurationError, NavigationError
from browserdiff.models.config import SUPPORTED_BROWSERS, BrowserDiffConfig, ViewportConfig
from browserdiff.utils.performance import with_timeout

logger = logging.getLogger(__name__)


class BrowserService:
    """Launches and caches one browser (and one context) per engine name for a run."""

    def __init__(
        self,
        config: BrowserDiffConfig,
        ignore_https_errors: bool = False,
        headless: bool = True,
        playwright: Optional[Playwright] = None,
    ):
        self.config = config
        self.ignore_https_errors = ignore_https_errors
        self.headless = headless
        self._playwright = playwright
        self._owns_playwright = playwright is None
        self._browsers: dict[str, Browser] = {}
        self._contexts: dict[str, BrowserContext] = {}

    async def _get_playwright(self) -> Playwright:
        if self._playwright is None:
            logger.debug("Starting Playwright")
            self._playwright = await async_playwright().start()
        return self._playwright

    async def launch_browser(self, browser_name: str) -> Browser:
        """Launch ``browser_name`` headless, reusing it if already running."""
        existing = self._browsers.get(browser_name)
        if existing is not None:
            return existing

        name = browser_name.lower()
        if name not in SUPPORTED_BROWSERS:
            raise ConfigurationError(f"Unsupported browser: {browser_name}")

        p = await self._get_playwright()
        logger.debug("Launching %s (headless=%s)", name, self.headless)
        browser = await getattr(p, name).launch(headless=self.headless, args=[])
        self._browsers[browser_name] = browser
        return browser

    async def create_context(
        self,
        browser_name: str,
        viewport: ViewportConfig | None = None,
    ) -> BrowserContext:
        viewport = viewport or self.config.viewport
        browser = await self.launch_browser(browser_name)
        context = await browser.new_context(
            viewport={"width": viewport.width, "height": viewport.height},
            device_scale_factor=viewport.device_scale_factor or 1,
            ignore_https_errors=self.ignore_https_errors,
        )
        self._contexts[browser_name] = context
        return context

    async def create_page(self, browser_name: str) -> Page:
        context = self._contexts.get(browser_name)
        if context is None:
            context = await self.create_context(browser_name)
        return await context.new_page()

    async def navigate_with_retry(
        self, page: Page, url: str, retries: int | None = None
    ) -> None:
        """Load ``url``, retrying ``retries`` extra times with the configured delay.

        Each attempt waits for network idle and is raced against the page-load
        timeout. Raises CaptureTimeoutError when the last attempt timed out,
        NavigationError otherwise.
        """
        retries = self.config.retry.attempts if retries is None else retries
        page_load = self.config.timeout.page_load
        last_error: Exception | None = None

        for attempt in range(retries + 1):
            try:
                await with_timeout(
                    page.goto(url, timeout=page_load, wait_until="networkidle"),
                    page_load,
                    "navigation",
                )
                return
            except (PlaywrightError, CaptureTimeoutError) as e:
                last_error = e
                logger.warning(
                    "Navigation to %s failed (attempt %d/%d): %s",
                    url, attempt + 1, retries + 1, e,
                )
                if attempt < retries:
                    await asyncio.sleep(self.config.retry.delay / 1000)

        message = f"Failed to navigate to {url} after {retries + 1} attempts: {last_error}"
        if isinstance(last_error, (CaptureTimeoutError, PlaywrightTimeoutError)):
            raise CaptureTimeoutError(message, "navigation") from last_error
        raise NavigationError(message, url) from last_error

    async def close_browser(self, browser_name: str) -> None:
        context = self._contexts.pop(browser_name, None)
        if context is not None:
            await context.close()
        browser = self._browsers.pop(browser_name, None)
        if browser is not None:
            await browser.close()
            logger.debug("Closed %s", browser_name)

    async def close_all_browsers(self) -> None:
        """Close every browser, then stop Playwright if this service started it."""
        names = list(self._browsers)
        results = await asyncio.gather(
            *(self.close_browser(n) for n in names), return_exceptions=True
        )
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.warning("Error closing %s: %s", name, result)
        if self._owns_playwright and self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
