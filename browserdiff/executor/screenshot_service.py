"""Screenshot capture for a loaded page, viewport-only or full-page."""

from __future__ import annotations

import logging
import platform
import re
import time
from pathlib import Path

from PIL import Image
from playwright.async_api import (
    Page,
    TimeoutError as PlaywrightTimeoutError,
)

from browserdiff.errors import CaptureTimeoutError
from browserdiff.models.config import BrowserDiffConfig
from browserdiff.models.session import BrowserMetadata, CaptureResult, ScreenshotResult
from browserdiff.utils.performance import with_timeout

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"(?:Chrome|Firefox|Safari)/(\d+\.\d+)")
DEFAULT_SCREENSHOT_MAX_AGE_SECONDS = 7 * 24 * 60 * 60


def extract_browser_version(user_agent: str) -> str:
    match = _VERSION_RE.search(user_agent or "")
    return match.group(1) if match else "unknown"


class ScreenshotService:
    """Captures one screenshot per browser into a CaptureResult.

    Full-page capture is the same code path with a taller clip: it is enabled
    by ``config.screenshot.full_page`` and capped at ``max_height``.
    """

    def __init__(self, config: BrowserDiffConfig):
        self.config = config

    async def capture_screenshot(
        self,
        page: Page,
        browser_name: str,
        output_dir: str | Path,
        page_load_time: int = 0,
    ) -> CaptureResult:
        """Capture ``page`` into ``output_dir`` as ``<browser>-<epoch ms>.png``.

        Never raises for capture problems: a timeout resolves the result as
        ``timeout`` and any other error as ``failed``.
        """
        result = CaptureResult(browser_name=browser_name)
        start = time.time()

        try:
            result.metadata = await self.get_page_metadata(page)
            result.browser_version = extract_browser_version(result.metadata.user_agent)

            out_dir = Path(output_dir)
            out_dir.mkdir(parents=True, exist_ok=True)
            path = out_dir / f"{browser_name}-{int(time.time() * 1000)}.png"

            screenshot = await self._take(page, browser_name, path)
            screenshot.capture_time = int((time.time() - start) * 1000)
            result.mark_success(screenshot, page_load_time)
            logger.info(
                "Captured %s screenshot (%dx%d%s)",
                browser_name, screenshot.width, screenshot.height,
                ", truncated" if screenshot.was_truncated else "",
            )
        except (CaptureTimeoutError, PlaywrightTimeoutError) as e:
            logger.error("Screenshot timed out for %s: %s", browser_name, e)
            result.set_timeout(str(e))
        except Exception as e:
            logger.error("Screenshot failed for %s: %s", browser_name, e)
            result.set_error(str(e))

        return result

    async def _take(self, page: Page, browser_name: str, path: Path) -> ScreenshotResult:
        settings = self.config.screenshot
        viewport = page.viewport_size or {
            "width": self.config.viewport.width,
            "height": self.config.viewport.height,
        }

        kwargs: dict = {"path": str(path), "type": "png"}
        page_height = viewport["height"]
        truncation_reason = None

        if settings.full_page:
            timeout = settings.timeout
            page_height = int(await page.evaluate("document.documentElement.scrollHeight"))
            kwargs["full_page"] = True
            if page_height > settings.max_height:
                kwargs["clip"] = {
                    "x": 0, "y": 0,
                    "width": viewport["width"], "height": settings.max_height,
                }
                truncation_reason = (
                    f"Page height {page_height}px exceeds maximum {settings.max_height}px"
                )
                logger.warning("%s: %s", browser_name, truncation_reason)
        else:
            timeout = self.config.timeout.screenshot
            kwargs["full_page"] = False

        await with_timeout(page.screenshot(timeout=timeout, **kwargs), timeout, "screenshot")

        # Recorded dimensions come from the written raster, not the viewport
        with Image.open(path) as img:
            width, height = img.size

        return ScreenshotResult(
            browser=browser_name,
            file_path=str(path),
            width=width,
            height=height,
            is_full_page=settings.full_page,
            actual_page_height=page_height,
            was_truncated=truncation_reason is not None,
            truncation_reason=truncation_reason,
        )

    async def get_page_metadata(self, page: Page) -> BrowserMetadata:
        user_agent = await page.evaluate("navigator.userAgent")
        browser_platform = await page.evaluate("navigator.platform")
        viewport = page.viewport_size or {"width": 0, "height": 0}
        return BrowserMetadata(
            user_agent=user_agent or "unknown",
            platform=browser_platform or "unknown",
            architecture=platform.machine() or "unknown",
            headless=True,
            viewport=dict(viewport),
        )

    def cleanup_old_screenshots(
        self,
        directory: str | Path,
        max_age_seconds: float = DEFAULT_SCREENSHOT_MAX_AGE_SECONDS,
    ) -> int:
        """Delete ``.png`` files older than ``max_age_seconds``. Returns the count removed."""
        dir_path = Path(directory)
        if not dir_path.is_dir():
            return 0
        now = time.time()
        deleted = 0
        for f in dir_path.glob("*.png"):
            if now - f.stat().st_mtime > max_age_seconds:
                f.unlink()
                deleted += 1
        return deleted
