"""Run orchestrator — coordinates capture, comparison, and report stages."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional

from browserdiff.diff.diff_service import DiffService
from browserdiff.errors import BaselineUnavailableError
from browserdiff.executor.browser_service import BrowserService
from browserdiff.executor.executor import CaptureExecutor
from browserdiff.executor.screenshot_service import ScreenshotService
from browserdiff.models.config import BrowserDiffConfig
from browserdiff.models.difference_report import DifferenceReport
from browserdiff.models.report_structure import ReportStructure
from browserdiff.models.session import CaptureResult, TestSession
from browserdiff.reporter.directory_service import DirectoryService
from browserdiff.reporter.reporter import ReportService
from browserdiff.utils.performance import PerformanceCollector, format_duration

logger = logging.getLogger(__name__)

RunState = Literal["idle", "capturing", "comparing", "reporting", "completed", "failed"]


@dataclass
class ExecutionResult:
    session: TestSession
    report: DifferenceReport
    report_path: str
    json_path: str
    structure: Optional[ReportStructure] = None
    success: bool = True


def exit_code(result: ExecutionResult) -> int:
    """0 when no comparison is ``different``, 1 otherwise."""
    return 0 if result.success else 1


class Orchestrator:
    """Coordinates one visual diff run against a single URL.

    Moves through idle → capturing → comparing → reporting → completed, or to
    failed when the baseline is unavailable or a stage raises. Browsers are
    always closed at the end of :meth:`execute`.
    """

    def __init__(
        self,
        config: BrowserDiffConfig,
        performance: PerformanceCollector | None = None,
        browser_service: BrowserService | None = None,
        screenshot_service: ScreenshotService | None = None,
        diff_service: DiffService | None = None,
        report_service: ReportService | None = None,
        directory_service: DirectoryService | None = None,
        ignore_https_errors: bool = False,
    ):
        self.config = config
        self.performance = performance or PerformanceCollector()
        self.browser_service = browser_service or BrowserService(
            config, ignore_https_errors=ignore_https_errors
        )
        self.screenshot_service = screenshot_service or ScreenshotService(config)
        self.diff_service = diff_service or DiffService(config, performance=self.performance)
        self.report_service = report_service or ReportService(config)
        self.directory_service = directory_service or DirectoryService()
        self.capture_executor = CaptureExecutor(
            config, self.browser_service, self.screenshot_service, self.performance
        )
        self.state: RunState = "idle"

    def run(self, url: str, baseline_browser: str = "chromium") -> ExecutionResult:
        """Synchronous entry point for :meth:`execute`."""
        return asyncio.run(self.execute(url, baseline_browser))

    async def execute(self, url: str, baseline_browser: str = "chromium") -> ExecutionResult:
        start = time.time()
        session = TestSession.start(url, self.config)
        logger.info("=== Starting session %s ===", session.session_id)
        logger.info("Target URL: %s", url)
        logger.info("Baseline browser: %s", baseline_browser)
        logger.info("Browsers: %s", ", ".join(self.config.browsers))

        try:
            if baseline_browser not in self.config.browsers:
                raise BaselineUnavailableError(
                    f"Baseline browser {baseline_browser} is not among the configured "
                    f"browsers ({', '.join(self.config.browsers)})",
                    baseline_browser,
                )

            structure, screenshot_dir, diff_dir = self._prepare_output(url)

            # Stage 1: Capture
            self.state = "capturing"
            results = await self.capture_executor.capture_all(url, screenshot_dir)
            for result in results:
                session.add_result(result)

            baseline_result = session.get_result(baseline_browser)
            if baseline_result is None:
                raise BaselineUnavailableError(
                    f"Baseline browser {baseline_browser} not found", baseline_browser
                )

            # Stage 2: Compare
            self.state = "comparing"
            logger.info("Generating difference report...")
            report = self.diff_service.generate_difference_report(
                session.session_id, baseline_browser, baseline_result, session.results, diff_dir
            )
            session.complete()

            # Stage 3: Report
            self.state = "reporting"
            with self.performance.measure("report"):
                paths = self.report_service.generate_reports(session, report, structure)

            self.state = "completed"
            logger.info(
                "=== Session complete: %s in %s ===",
                report.overall_status, format_duration((time.time() - start) * 1000),
            )
            return ExecutionResult(
                session=session,
                report=report,
                report_path=paths["html"],
                json_path=paths["json"],
                structure=structure,
                success=report.overall_status != "different",
            )
        except Exception as e:
            session.fail()
            self.state = "failed"
            logger.error("Execution failed: %s", e)
            raise
        finally:
            logger.debug("Cleaning up browsers...")
            await self.browser_service.close_all_browsers()
            logger.debug(self.performance.get_report())

    async def capture_one(
        self, url: str, browser_name: str, screenshot_dir: str | Path
    ) -> CaptureResult:
        """Capture a single browser outside a full run (used for baselines)."""
        try:
            return await self.capture_executor.capture_browser(browser_name, url, screenshot_dir)
        finally:
            await self.browser_service.close_all_browsers()

    def _prepare_output(self, url: str) -> tuple[Optional[ReportStructure], Path, Path]:
        """Pick the screenshot and diff directories for the configured layout."""
        output_dir = Path(self.config.output.directory)
        reporting = self.config.reporting
        if not reporting.structured:
            return None, output_dir / "screenshots", output_dir

        structure = self.directory_service.create_test_directory(
            output_dir,
            datetime.now(),
            url,
            reporting.directory_pattern,
            reporting.url_sanitization,
        )
        paths = structure.absolute_paths
        return structure, paths.screenshots_dir, paths.diffs_dir
