"""Report generation orchestration."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from browserdiff.models.config import BrowserDiffConfig
from browserdiff.models.difference_report import DifferenceReport
from browserdiff.models.report_structure import ReportStructure
from browserdiff.models.session import TestSession

from .html_report import generate_html_report
from .json_report import generate_json_report

logger = logging.getLogger(__name__)


class ReportService:
    """Writes HTML and JSON reports, flat or into a structured run directory.

    Flat layout: ``report-<session id>.html`` and ``.json`` directly in the
    output directory. Structured layout: ``report.html`` and ``report.json``
    inside the run's ReportStructure.
    """

    def __init__(self, config: BrowserDiffConfig):
        self.config = config

    @property
    def output_dir(self) -> Path:
        return Path(self.config.output.directory)

    def _paths(
        self, session: TestSession, structure: ReportStructure | None
    ) -> tuple[Path, Path]:
        if structure is not None:
            paths = structure.absolute_paths
            return paths.html_report, paths.json_report
        return (
            self.output_dir / f"report-{session.session_id}.html",
            self.output_dir / f"report-{session.session_id}.json",
        )

    def generate_reports(
        self,
        session: TestSession,
        report: DifferenceReport,
        structure: ReportStructure | None = None,
    ) -> dict[str, str]:
        """Generate the HTML and JSON reports. Returns format -> file path."""
        html_path, json_path = self._paths(session, structure)
        return {
            "html": self.generate_html_report(session, report, html_path),
            "json": self.save_report_data(session, report, json_path),
        }

    def generate_html_report(
        self,
        session: TestSession,
        report: DifferenceReport,
        output_path: Path | None = None,
    ) -> str:
        path = output_path or self._paths(session, None)[0]
        logger.debug("Generating HTML report...")
        generate_html_report(session, report, path, embed_assets=self.config.output.embed_assets)
        logger.info("HTML report: %s", path)
        return str(path)

    def save_report_data(
        self,
        session: TestSession,
        report: DifferenceReport,
        output_path: Path | None = None,
    ) -> str:
        path = output_path or self._paths(session, None)[1]
        logger.debug("Generating JSON report...")
        generate_json_report(session, report, path)
        logger.info("JSON report: %s", path)
        return str(path)

    def list_reports(self) -> list[Path]:
        """Every HTML report under the output directory, newest first."""
        if not self.output_dir.is_dir():
            return []
        reports = list(self.output_dir.glob("report-*.html"))
        reports.extend(self.output_dir.glob("*/report.html"))
        return sorted(reports, key=lambda p: p.stat().st_mtime, reverse=True)

    def open_report(self, report_path: str | Path) -> None:
        """Open a report in the system's default viewer."""
        path = Path(report_path)
        if not path.exists():
            raise FileNotFoundError(f"Report not found: {path}")
        if click.launch(str(path)) != 0:
            logger.warning("Could not open a viewer. Report available at: %s", path)
