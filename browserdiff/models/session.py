"""Capture results and the test session that owns them."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from browserdiff.models.config import BrowserDiffConfig, ViewportConfig

CaptureStatus = Literal["pending", "success", "failed", "timeout"]
SessionStatus = Literal["running", "completed", "failed"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _ResultModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BrowserMetadata(_ResultModel):
    user_agent: str = "unknown"
    platform: str = "unknown"
    architecture: str = "unknown"
    headless: bool = True
    viewport: dict[str, int] = Field(default_factory=lambda: {"width": 0, "height": 0})
    additional_flags: list[str] = Field(default_factory=list)


class ScreenshotResult(_ResultModel):
    """Raster and full-page details of a single written screenshot."""
    browser: str
    file_path: str
    width: int
    height: int
    is_full_page: bool = False
    actual_page_height: int = 0
    capture_time: int = 0  # ms
    was_truncated: bool = False
    truncation_reason: Optional[str] = None


class CaptureResult(_ResultModel):
    """Outcome of one capture attempt for one browser.

    Starts ``pending`` and moves to exactly one terminal status through
    :meth:`mark_success`, :meth:`set_error` or :meth:`set_timeout`.
    """
    browser_name: str
    browser_version: str = "unknown"
    screenshot_path: str = ""
    capture_timestamp: datetime = Field(default_factory=utc_now)
    page_load_time: int = 0  # ms
    error_message: Optional[str] = None
    status: CaptureStatus = "pending"
    metadata: BrowserMetadata = Field(default_factory=BrowserMetadata)
    screenshot: Optional[ScreenshotResult] = None

    def _finish(self, status: CaptureStatus) -> None:
        if self.status != "pending":
            raise ValueError(
                f"Capture result for {self.browser_name} already resolved as {self.status}"
            )
        self.status = status

    def mark_success(self, screenshot: ScreenshotResult, page_load_time: int) -> None:
        self.screenshot = screenshot
        self.screenshot_path = screenshot.file_path
        self.page_load_time = page_load_time
        self._finish("success")

    def set_error(self, message: str) -> None:
        self.error_message = message
        self._finish("failed")

    def set_timeout(self, message: str | None = None) -> None:
        self.error_message = message
        self._finish("timeout")

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    @property
    def dimensions(self) -> tuple[int, int]:
        if self.screenshot is None:
            return (0, 0)
        return (self.screenshot.width, self.screenshot.height)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class TestSession(_ResultModel):
    """All capture attempts of one run against one URL."""

    __test__ = False  # not a pytest test class

    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    target_url: str
    browsers: list[str]
    timestamp: datetime = Field(default_factory=utc_now)
    viewport: ViewportConfig
    config: BrowserDiffConfig
    status: SessionStatus = "running"
    results: list[CaptureResult] = Field(default_factory=list)

    @classmethod
    def start(cls, target_url: str, config: BrowserDiffConfig) -> "TestSession":
        return cls(
            target_url=target_url,
            browsers=list(config.browsers),
            viewport=config.viewport,
            config=config,
        )

    def add_result(self, result: CaptureResult) -> None:
        if self.get_result(result.browser_name) is not None:
            raise ValueError(f"Duplicate result for browser {result.browser_name}")
        if len(self.results) >= len(self.browsers):
            raise ValueError(
                f"Session already holds {len(self.results)} results for "
                f"{len(self.browsers)} browsers"
            )
        self.results.append(result)

    def get_result(self, browser_name: str) -> CaptureResult | None:
        for r in self.results:
            if r.browser_name == browser_name:
                return r
        return None

    def complete(self) -> None:
        self.status = "completed"

    def fail(self) -> None:
        self.status = "failed"

    @property
    def successful_results(self) -> list[CaptureResult]:
        return [r for r in self.results if r.is_success]

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
