"""Tests for HTML report generation."""

from pathlib import Path

from browserdiff.models.difference_report import DiffMetrics, DifferenceReport
from browserdiff.models.session import ScreenshotResult, TestSession
from browserdiff.reporter.html_report import _build_comparison_card, _embed_image, generate_html_report

from conftest import make_capture


def _setup(config, png_factory):
    session = TestSession.start("https://example.com/<page>", config)
    base = make_capture("chromium", png_factory("chromium.png"))
    ff = make_capture("firefox", png_factory("firefox.png"))
    wk = make_capture("webkit", status="failed")
    for r in (base, ff, wk):
        session.add_result(r)
    report = DifferenceReport(session_id=session.session_id, baseline_browser="chromium")
    comp = report.add_comparison(
        "firefox", base, ff, b"\x89PNGfake", DiffMetrics.from_counts(150, 1000), 0.1,
        diff_image_path=str(png_factory("diff.png")),
    )
    return session, report, comp


class TestGenerateHtmlReport:
    """Tests for generate_html_report."""

    def test_self_contained_report(self, config, png_factory, tmp_path: Path):
        session, report, _ = _setup(config, png_factory)
        out = tmp_path / "report.html"
        generate_html_report(session, report, out)

        content = out.read_text()
        assert content.startswith("<!DOCTYPE html>")
        assert "data:image/png;base64," in content
        assert "chromium vs firefox" in content
        assert "15.00% different" in content
        assert "different" in content

    def test_escapes_url(self, config, png_factory, tmp_path: Path):
        session, report, _ = _setup(config, png_factory)
        out = tmp_path / "report.html"
        generate_html_report(session, report, out)
        content = out.read_text()
        assert "&lt;page&gt;" in content
        assert "<page>" not in content

    def test_lists_failed_captures(self, config, png_factory, tmp_path: Path):
        session, report, _ = _setup(config, png_factory)
        out = tmp_path / "report.html"
        generate_html_report(session, report, out)
        content = out.read_text()
        assert "Failed captures (1)" in content
        assert "Browser crashed" in content

    def test_linked_assets_when_not_embedding(self, config, png_factory, tmp_path: Path):
        session, report, _ = _setup(config, png_factory)
        out = tmp_path / "report.html"
        generate_html_report(session, report, out, embed_assets=False)
        content = out.read_text()
        assert "data:image" not in content
        assert 'src="chromium.png"' in content

    def test_empty_report(self, config, tmp_path: Path):
        session = TestSession.start("https://example.com", config)
        report = DifferenceReport(session_id=session.session_id, baseline_browser="chromium")
        out = tmp_path / "sub" / "report.html"
        generate_html_report(session, report, out)
        assert "No comparisons were produced" in out.read_text()


class TestComparisonCard:
    """Tests for _build_comparison_card."""

    def test_truncation_notice(self, config, png_factory, tmp_path: Path):
        _, _, comp = _setup(config, png_factory)
        comp.current_result.screenshot = ScreenshotResult(
            browser="firefox", file_path="x.png", width=20, height=10,
            is_full_page=True, was_truncated=True,
            truncation_reason="Page height 30000px exceeds maximum 20000px",
        )
        card = _build_comparison_card(comp, "chromium", tmp_path / "r.html", embed=True)
        assert "exceeds maximum 20000px" in card

    def test_status_badge(self, config, png_factory, tmp_path: Path):
        _, _, comp = _setup(config, png_factory)
        card = _build_comparison_card(comp, "chromium", tmp_path / "r.html", embed=True)
        assert 'class="badge different"' in card


class TestEmbedImage:
    """Tests for _embed_image."""

    def test_missing_file(self, tmp_path: Path):
        assert _embed_image(str(tmp_path / "none.png")) == ""
        assert _embed_image("") == ""

    def test_png_data_uri(self, png_factory):
        assert _embed_image(str(png_factory())).startswith("data:image/png;base64,")
