"""Capture loop: one screenshot per configured browser, sequential or bounded-parallel."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from browserdiff.errors import CaptureTimeoutError, ConfigurationError
from browserdiff.models.config import BrowserDiffConfig
from browserdiff.models.session import CaptureResult
from browserdiff.utils.performance import PerformanceCollector

from .browser_service import BrowserService
from .screenshot_service import ScreenshotService

logger = logging.getLogger(__name__)


class CaptureExecutor:
    """Captures ``url`` in every browser and returns one CaptureResult per browser.

    A browser that fails (launch, navigation, capture) yields a ``failed`` or
    ``timeout`` result; it never stops the other browsers.
    """

    def __init__(
        self,
        config: BrowserDiffConfig,
        browser_service: BrowserService,
        screenshot_service: ScreenshotService,
        performance: PerformanceCollector | None = None,
    ):
        self.config = config
        self.browser_service = browser_service
        self.screenshot_service = screenshot_service
        self.performance = performance or PerformanceCollector()

    async def capture_all(self, url: str, screenshot_dir: str | Path) -> list[CaptureResult]:
        browsers = list(self.config.browsers)
        if self.config.is_parallel:
            return await self.capture_parallel(url, browsers, screenshot_dir, self.config.parallel)
        return await self.capture_sequential(url, browsers, screenshot_dir)

    async def capture_sequential(
        self, url: str, browsers: list[str], screenshot_dir: str | Path
    ) -> list[CaptureResult]:
        results = []
        total = len(browsers)
        for i, browser_name in enumerate(browsers):
            logger.info("Capturing [%d/%d]: %s", i + 1, total, browser_name)
            results.append(await self.capture_browser(browser_name, url, screenshot_dir))
        return results

    async def capture_parallel(
        self,
        url: str,
        browsers: list[str],
        screenshot_dir: str | Path,
        max_parallel: int,
    ) -> list[CaptureResult]:
        """Run at most ``max_parallel`` captures at once.

        Pending browsers wait in a queue; whenever an in-flight capture
        finishes, the next one starts. Results are in completion order.
        """
        logger.info("Capturing screenshots in parallel (max %d concurrent)", max_parallel)
        queue = list(browsers)
        in_flight: dict[asyncio.Task, str] = {}
        results: list[CaptureResult] = []

        while queue or in_flight:
            while queue and len(in_flight) < max_parallel:
                browser_name = queue.pop(0)
                task = asyncio.create_task(self.capture_browser(browser_name, url, screenshot_dir))
                in_flight[task] = browser_name

            done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                in_flight.pop(task)
                results.append(task.result())

        return results

    async def capture_browser(
        self, browser_name: str, url: str, screenshot_dir: str | Path
    ) -> CaptureResult:
        """Launch, navigate and capture one browser, folding every failure into the result."""
        with self.performance.measure("capture", browser=browser_name):
            try:
                page = await self.browser_service.create_page(browser_name)

                logger.debug("Navigating %s to %s", browser_name, url)
                nav_start = time.time()
                with self.performance.measure("navigation", browser=browser_name):
                    await self.browser_service.navigate_with_retry(page, url)
                page_load_time = int((time.time() - nav_start) * 1000)

                result = await self.screenshot_service.capture_screenshot(
                    page, browser_name, screenshot_dir, page_load_time=page_load_time
                )
            except ConfigurationError:
                raise
            except CaptureTimeoutError as e:
                result = CaptureResult(browser_name=browser_name)
                result.set_timeout(str(e))
            except Exception as e:
                result = CaptureResult(browser_name=browser_name)
                result.set_error(str(e))

        if result.is_success:
            logger.info("✓ %s: %dms", browser_name, result.page_load_time)
        else:
            logger.error("✗ %s: %s", browser_name, result.error_message or result.status)
        return result
