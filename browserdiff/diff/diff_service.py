"""Builds the difference report for one session's capture results."""

from __future__ import annotations

import logging
from pathlib import Path

from browserdiff.errors import BaselineUnavailableError, DiffError
from browserdiff.models.config import BrowserDiffConfig
from browserdiff.models.difference_report import DifferenceReport
from browserdiff.models.session import CaptureResult
from browserdiff.utils.performance import PerformanceCollector

from .comparator import ImageComparator, ImageDiff, encode_png, read_png

logger = logging.getLogger(__name__)


def diff_filename(baseline_browser: str, browser_name: str) -> str:
    return f"diff-{baseline_browser}-vs-{browser_name}.png"


class DiffService:
    """Compares every successful capture against the baseline browser's capture."""

    def __init__(
        self,
        config: BrowserDiffConfig,
        comparator: ImageComparator | None = None,
        performance: PerformanceCollector | None = None,
    ):
        self.config = config
        self.comparator = comparator or ImageComparator()
        self.performance = performance or PerformanceCollector()

    @property
    def threshold(self) -> float:
        return self.config.comparison.threshold

    def compare_screenshots(
        self, baseline_result: CaptureResult, current_result: CaptureResult
    ) -> ImageDiff:
        """Diff the screenshot files behind two capture results."""
        if not baseline_result.screenshot_path or not current_result.screenshot_path:
            raise DiffError(
                f"Missing screenshot for {baseline_result.browser_name} "
                f"or {current_result.browser_name}"
            )
        baseline_image = read_png(baseline_result.screenshot_path)
        current_image = read_png(current_result.screenshot_path)
        with self.performance.measure("compare", browser=current_result.browser_name):
            return self.comparator.compare(
                baseline_image,
                current_image,
                threshold=self.threshold,
                include_aa=self.config.comparison.include_aa,
            )

    def generate_difference_report(
        self,
        session_id: str,
        baseline_browser: str,
        baseline_result: CaptureResult,
        results: list[CaptureResult],
        output_dir: str | Path,
    ) -> DifferenceReport:
        """Compare each non-baseline successful result against the baseline.

        Failed or timed-out browsers are skipped, and a comparison that fails
        (e.g. dimension mismatch) is logged and skipped; neither aborts the
        report. The baseline itself must have succeeded.
        """
        if not baseline_result.is_success:
            raise BaselineUnavailableError(
                f"Baseline browser {baseline_browser} failed: "
                f"{baseline_result.error_message or baseline_result.status}",
                baseline_browser,
            )

        out_dir = Path(output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        report = DifferenceReport(session_id=session_id, baseline_browser=baseline_browser)

        for result in results:
            if result.browser_name == baseline_browser:
                continue

            if not result.is_success:
                logger.warning(
                    "Skipping comparison with %s: %s",
                    result.browser_name, result.error_message or result.status,
                )
                continue

            try:
                image_diff = self.compare_screenshots(baseline_result, result)
                diff_bytes = encode_png(image_diff.diff_image)
                diff_path = out_dir / diff_filename(baseline_browser, result.browser_name)
                diff_path.write_bytes(diff_bytes)

                comparison = report.add_comparison(
                    result.browser_name,
                    baseline_result,
                    result,
                    diff_bytes,
                    image_diff.metrics,
                    self.threshold,
                    diff_image_path=str(diff_path),
                )
            except Exception as e:
                logger.error(
                    "Error comparing %s with %s: %s", baseline_browser, result.browser_name, e
                )
                continue

            logger.info(
                "%s vs %s: %s (%.2f%% different)",
                baseline_browser, result.browser_name,
                comparison.status, comparison.metrics.diff_percentage,
            )

        logger.info(
            "Difference report: %d comparisons, overall %s",
            len(report.comparisons), report.overall_status,
        )
        return report
