"""Difference report data structures — per-browser comparisons against one baseline."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from browserdiff.models.session import CaptureResult, utc_now

DiffStatus = Literal["identical", "within-threshold", "different"]

_SEVERITY: dict[str, int] = {"identical": 0, "within-threshold": 1, "different": 2}


def classify_diff(diff_percentage: float, threshold: float) -> DiffStatus:
    """Map a diff percentage (0-100) and a fractional threshold (0-1) to a status."""
    if diff_percentage == 0:
        return "identical"
    if diff_percentage <= threshold * 100:
        return "within-threshold"
    return "different"


class DiffMetrics(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_pixels: int
    diff_pixels: int
    diff_percentage: float
    match_percentage: float

    @classmethod
    def from_counts(cls, diff_pixels: int, total_pixels: int) -> "DiffMetrics":
        diff_percentage = (diff_pixels / total_pixels) * 100 if total_pixels else 0.0
        return cls(
            total_pixels=total_pixels,
            diff_pixels=diff_pixels,
            diff_percentage=diff_percentage,
            match_percentage=100 - diff_percentage,
        )


class ComparisonResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    browser_name: str
    baseline_result: CaptureResult
    current_result: CaptureResult
    diff_image_bytes: bytes = Field(default=b"", exclude=True, repr=False)
    diff_image_path: str = ""
    metrics: DiffMetrics
    status: DiffStatus
    threshold: float
    timestamp: datetime = Field(default_factory=utc_now)


class DifferenceReport(BaseModel):
    """Comparisons of every non-baseline browser against the baseline browser.

    ``overall_status`` only ever moves up the identical < within-threshold <
    different ladder, so insertion order does not affect the final value.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    baseline_browser: str
    comparisons: dict[str, ComparisonResult] = Field(default_factory=dict)
    overall_status: DiffStatus = "identical"
    created_at: datetime = Field(default_factory=utc_now)

    def add_comparison(
        self,
        browser_name: str,
        baseline_result: CaptureResult,
        current_result: CaptureResult,
        diff_image_bytes: bytes,
        metrics: DiffMetrics,
        threshold: float,
        diff_image_path: str = "",
    ) -> ComparisonResult:
        status = classify_diff(metrics.diff_percentage, threshold)
        comparison = ComparisonResult(
            browser_name=browser_name,
            baseline_result=baseline_result,
            current_result=current_result,
            diff_image_bytes=diff_image_bytes,
            diff_image_path=diff_image_path,
            metrics=metrics,
            status=status,
            threshold=threshold,
        )
        # last write wins for a repeated browser
        self.comparisons[browser_name] = comparison

        if _SEVERITY[status] > _SEVERITY[self.overall_status]:
            self.overall_status = status
        return comparison

    def get_comparison(self, browser_name: str) -> ComparisonResult | None:
        return self.comparisons.get(browser_name)

    def get_all_comparisons(self) -> list[ComparisonResult]:
        return list(self.comparisons.values())

    def has_differences(self) -> bool:
        return self.overall_status != "identical"

    def to_json(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "baselineBrowser": self.baseline_browser,
            "comparisons": [
                {
                    "browserName": name,
                    "baselineResult": comp.baseline_result.to_json(),
                    "currentResult": comp.current_result.to_json(),
                    "metrics": comp.metrics.model_dump(by_alias=True),
                    "status": comp.status,
                    "threshold": comp.threshold,
                    "diffImagePath": comp.diff_image_path,
                    "timestamp": comp.timestamp.isoformat(),
                }
                for name, comp in self.comparisons.items()
            ],
            "overallStatus": self.overall_status,
            "createdAt": self.created_at.isoformat(),
        }
