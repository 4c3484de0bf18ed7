"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Callable
from unittest.mock import AsyncMock, Mock

import pytest
from PIL import Image

from browserdiff.models.config import BrowserDiffConfig, ViewportConfig
from browserdiff.models.session import CaptureResult, ScreenshotResult


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def viewport_config() -> ViewportConfig:
    """Create a small test viewport."""
    return ViewportConfig(width=320, height=240)


@pytest.fixture
def config(tmp_path: Path, viewport_config: ViewportConfig) -> BrowserDiffConfig:
    """Create a config that writes into tmp_path and never waits on retries."""
    return BrowserDiffConfig(
        browsers=["chromium", "firefox", "webkit"],
        viewport=viewport_config,
        output={"directory": str(tmp_path / "out")},
        retry={"attempts": 1, "delay": 0},
    )


# ============================================================================
# Image Fixtures
# ============================================================================


def make_image(
    width: int = 20,
    height: int = 10,
    color: tuple[int, int, int] = (255, 255, 255),
    changed: int = 0,
    changed_color: tuple[int, int, int] = (0, 0, 0),
) -> Image.Image:
    """Solid image with the first ``changed`` pixels (row-major) recoloured."""
    img = Image.new("RGBA", (width, height), color + (255,))
    for i in range(changed):
        img.putpixel((i % width, i // width), changed_color + (255,))
    return img


@pytest.fixture
def png_factory(tmp_path: Path) -> Callable[..., Path]:
    """Write a test PNG (see make_image) and return its path."""
    def _make(name: str = "shot.png", **kwargs) -> Path:
        path = tmp_path / name
        make_image(**kwargs).save(path)
        return path
    return _make


# ============================================================================
# Capture Result Fixtures
# ============================================================================


def make_capture(
    browser_name: str,
    path: Path | str = "",
    status: str = "success",
    width: int = 20,
    height: int = 10,
) -> CaptureResult:
    """Create a resolved CaptureResult."""
    result = CaptureResult(browser_name=browser_name, browser_version="120.0")
    if status == "success":
        result.mark_success(
            ScreenshotResult(browser=browser_name, file_path=str(path), width=width, height=height),
            page_load_time=100,
        )
    elif status == "timeout":
        result.set_timeout("Navigation timed out")
    else:
        result.set_error("Browser crashed")
    return result


# ============================================================================
# Playwright Mocks
# ============================================================================


def make_mock_page(user_agent: str = "Mozilla/5.0 Chrome/120.0.6099.109 Safari/537.36"):
    """AsyncMock page whose evaluate answers navigator and scrollHeight queries."""
    page = AsyncMock()
    page.viewport_size = {"width": 320, "height": 240}
    page.on = Mock()

    async def _evaluate(expression: str):
        if expression == "navigator.userAgent":
            return user_agent
        if expression == "navigator.platform":
            return "Linux x86_64"
        if "scrollHeight" in expression:
            return 240
        return None

    page.evaluate = AsyncMock(side_effect=_evaluate)
    return page


@pytest.fixture
def mock_page():
    return make_mock_page()
