"""Tests for JSON report output."""

import json
from pathlib import Path

from browserdiff.models.difference_report import DiffMetrics, DifferenceReport
from browserdiff.models.session import TestSession
from browserdiff.reporter.json_report import generate_json_report

from conftest import make_capture


class TestGenerateJsonReport:
    """Tests for generate_json_report."""

    def _session_and_report(self, config):
        session = TestSession.start("https://example.com", config)
        base = make_capture("chromium", "/tmp/c.png")
        ff = make_capture("firefox", "/tmp/f.png")
        session.add_result(base)
        session.add_result(ff)
        report = DifferenceReport(session_id=session.session_id, baseline_browser="chromium")
        report.add_comparison("firefox", base, ff, b"bytes", DiffMetrics.from_counts(0, 100), 0.1)
        return session, report

    def test_top_level_shape(self, config, tmp_path: Path):
        session, report = self._session_and_report(config)
        out = tmp_path / "report.json"
        generate_json_report(session, report, out)

        data = json.loads(out.read_text())
        assert set(data) == {"session", "report", "timestamp"}
        assert data["session"]["targetUrl"] == "https://example.com"
        assert data["report"]["overallStatus"] == "identical"

    def test_diff_bytes_not_serialized(self, config, tmp_path: Path):
        session, report = self._session_and_report(config)
        out = tmp_path / "report.json"
        generate_json_report(session, report, out)
        assert "bytes" not in json.loads(out.read_text())["report"]["comparisons"][0]

    def test_creates_parent_directory(self, config, tmp_path: Path):
        session, report = self._session_and_report(config)
        out = tmp_path / "a" / "b" / "report.json"
        generate_json_report(session, report, out)
        assert out.exists()
