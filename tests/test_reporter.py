"""Tests for ReportService — report locations, listing and opening."""

import json
import os
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from browserdiff.models.difference_report import DiffMetrics, DifferenceReport
from browserdiff.models.session import TestSession
from browserdiff.reporter.directory_service import DirectoryService
from browserdiff.reporter.reporter import ReportService

from conftest import make_capture


def _session_and_report(config, png_factory):
    cfg = config.merged(browsers=["chromium", "firefox"])
    session = TestSession.start("https://example.com", cfg)
    base = make_capture("chromium", png_factory("chromium.png"))
    current = make_capture("firefox", png_factory("firefox.png", changed=2))
    session.add_result(base)
    session.add_result(current)
    report = DifferenceReport(session_id=session.session_id, baseline_browser="chromium")
    report.add_comparison("firefox", base, current, b"", DiffMetrics.from_counts(2, 200), 0.1)
    return session, report


class TestGenerateReports:
    """Flat and structured report locations."""

    def test_flat_layout(self, config, png_factory):
        session, report = _session_and_report(config, png_factory)
        paths = ReportService(config).generate_reports(session, report)

        out = Path(config.output.directory)
        assert paths["html"] == str(out / f"report-{session.session_id}.html")
        assert paths["json"] == str(out / f"report-{session.session_id}.json")
        assert Path(paths["html"]).exists()

        data = json.loads(Path(paths["json"]).read_text())
        assert data["session"]["sessionId"] == session.session_id
        assert data["report"]["comparisons"][0]["browserName"] == "firefox"
        assert "timestamp" in data

    def test_structured_layout(self, config, png_factory, tmp_path: Path):
        session, report = _session_and_report(config, png_factory)
        structure = DirectoryService().create_test_directory(
            tmp_path / "runs", session.timestamp, session.target_url, "{url}",
            config.reporting.url_sanitization,
        )
        paths = ReportService(config).generate_reports(session, report, structure)
        assert paths["html"] == str(structure.absolute_paths.html_report)
        assert paths["json"] == str(structure.absolute_paths.json_report)
        assert structure.absolute_paths.json_report.exists()


class TestListReports:
    """Tests for list_reports."""

    def test_lists_flat_and_structured_newest_first(self, config):
        out = Path(config.output.directory)
        (out / "run-a").mkdir(parents=True)
        flat = out / "report-abc.html"
        structured = out / "run-a" / "report.html"
        flat.write_text("<html>")
        structured.write_text("<html>")
        (out / "notes.html").write_text("<html>")
        past = time.time() - 100
        os.utime(flat, (past, past))

        assert ReportService(config).list_reports() == [structured, flat]

    def test_missing_output_dir(self, config):
        assert ReportService(config).list_reports() == []


class TestOpenReport:
    """Tests for open_report."""

    def test_missing_report_raises(self, config, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            ReportService(config).open_report(tmp_path / "missing.html")

    def test_launches_viewer(self, config, tmp_path: Path):
        report = tmp_path / "report.html"
        report.write_text("<html>")
        with patch("browserdiff.reporter.reporter.click.launch", return_value=0) as launch:
            ReportService(config).open_report(report)
        launch.assert_called_once_with(str(report))
