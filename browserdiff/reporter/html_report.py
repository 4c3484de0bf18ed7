"""HTML report generator — produces a self-contained visual diff report."""

from __future__ import annotations

import base64
import html
import logging
import os
from pathlib import Path

from browserdiff.models.difference_report import ComparisonResult, DifferenceReport
from browserdiff.models.session import CaptureResult, TestSession

logger = logging.getLogger(__name__)

_STATUS_COLORS = {
    "identical": "#22c55e",
    "within-threshold": "#eab308",
    "different": "#ef4444",
}


def _data_uri(data: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode()}"


def _embed_image(path: str) -> str:
    """Read an image file and return a base64 data URI, or empty string if unreadable."""
    if not path:
        return ""
    p = Path(path)
    try:
        if not p.exists() or p.stat().st_size == 0:
            return ""
        data = p.read_bytes()
    except OSError as e:
        logger.warning("Could not embed image %s: %s", path, e)
        return ""
    suffix = p.suffix.lower()
    mime = "image/png" if suffix == ".png" else "image/jpeg" if suffix in (".jpg", ".jpeg") else "image/webp"
    return _data_uri(data, mime)


def _image_src(path: str, output_path: Path, embed: bool) -> str:
    if embed:
        return _embed_image(path)
    if not path:
        return ""
    return os.path.relpath(path, output_path.parent)


def _image_cell(label: str, src: str) -> str:
    if not src:
        return f'<div class="shot"><div class="shot-missing">No image</div><div class="shot-label">{html.escape(label)}</div></div>'
    return (
        f'<div class="shot"><img src="{html.escape(src)}" alt="{html.escape(label)}" '
        f'onclick="this.classList.toggle(\'zoomed\')">'
        f'<div class="shot-label">{html.escape(label)}</div></div>'
    )


def _build_comparison_card(
    comp: ComparisonResult, baseline_browser: str, output_path: Path, embed: bool
) -> str:
    color = _STATUS_COLORS.get(comp.status, "#94a3b8")
    m = comp.metrics
    w, h = comp.current_result.dimensions

    if embed and comp.diff_image_bytes:
        diff_src = _data_uri(comp.diff_image_bytes)
    else:
        diff_src = _image_src(comp.diff_image_path, output_path, embed)

    truncated = ""
    shot = comp.current_result.screenshot
    if shot is not None and shot.was_truncated:
        truncated = f'<div class="notice">{html.escape(shot.truncation_reason or "Screenshot truncated")}</div>'

    return f'''
    <div class="comparison-card" style="border-left: 4px solid {color};">
      <div class="comparison-header">
        <strong>{html.escape(baseline_browser)} vs {html.escape(comp.browser_name)}</strong>
        <span class="badge {comp.status}">{comp.status}</span>
        <span class="meta-inline">{m.diff_pixels:,} / {m.total_pixels:,} pixels &middot; {m.diff_percentage:.2f}% different &middot; threshold {comp.threshold * 100:.1f}% &middot; {w}x{h}</span>
      </div>
      {truncated}
      <div class="shots">
        {_image_cell(f"Baseline ({baseline_browser} {comp.baseline_result.browser_version})", _image_src(comp.baseline_result.screenshot_path, output_path, embed))}
        {_image_cell(f"{comp.browser_name} {comp.current_result.browser_version}", _image_src(comp.current_result.screenshot_path, output_path, embed))}
        {_image_cell("Diff", diff_src)}
      </div>
    </div>'''


def _build_failure_row(result: CaptureResult) -> str:
    return (
        f'<li><strong>{html.escape(result.browser_name)}</strong> '
        f'<span class="badge failed">{result.status}</span> '
        f'{html.escape(result.error_message or "")}</li>'
    )


def generate_html_report(
    session: TestSession,
    report: DifferenceReport,
    output_path: Path,
    embed_assets: bool = True,
) -> None:
    """Generate an HTML report with one card per browser comparison.

    With ``embed_assets`` every screenshot and diff image is inlined as a
    base64 data URI so the file can be moved on its own; otherwise images are
    linked relative to the report location.
    """
    comparisons = report.get_all_comparisons()
    counts = {s: sum(1 for c in comparisons if c.status == s) for s in _STATUS_COLORS}
    failures = [r for r in session.results if not r.is_success]

    cards = [
        _build_comparison_card(c, report.baseline_browser, output_path, embed_assets)
        for c in comparisons
    ]
    if not cards:
        cards.append('<p class="meta">No comparisons were produced.</p>')

    failure_section = ""
    if failures:
        rows = "".join(_build_failure_row(r) for r in failures)
        failure_section = f'<div class="failures"><h2>&#9888; Failed captures ({len(failures)})</h2><ul>{rows}</ul></div>'

    overall_color = _STATUS_COLORS.get(report.overall_status, "#94a3b8")
    vp = session.viewport

    report_html = f'''<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>BrowserDiff Report &mdash; {html.escape(session.target_url)}</title>
<style>
  :root {{ --ok: #22c55e; --warn: #eab308; --bad: #ef4444; --bg: #f8fafc; --card: white; --border: #e2e8f0; --text: #1e293b; --muted: #64748b; }}
  * {{ margin: 0; padding: 0; box-sizing: border-box; }}
  body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background: var(--bg); color: var(--text); line-height: 1.6; padding: 1.5rem; }}
  .container {{ max-width: 1600px; margin: 0 auto; }}
  h1 {{ font-size: 1.8rem; margin-bottom: 0.3rem; }}
  .meta {{ color: var(--muted); margin-bottom: 1.5rem; font-size: 0.9rem; }}
  .meta-inline {{ color: var(--muted); font-size: 0.8rem; }}
  .summary {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(130px, 1fr)); gap: 0.8rem; margin-bottom: 1.5rem; }}
  .stat {{ background: var(--card); border-radius: 8px; padding: 1rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); text-align: center; }}
  .stat .value {{ font-size: 1.8rem; font-weight: 700; }}
  .stat .label {{ font-size: 0.8rem; color: var(--muted); }}
  .stat.identical .value {{ color: var(--ok); }}
  .stat.within-threshold .value {{ color: var(--warn); }}
  .stat.different .value, .stat.failed .value {{ color: var(--bad); }}
  .overall {{ display: inline-block; padding: 0.2rem 0.8rem; border-radius: 9999px; color: white; font-weight: 600; background: {overall_color}; }}
  .badge {{ display: inline-block; padding: 0.15rem 0.55rem; border-radius: 9999px; font-size: 0.7rem; font-weight: 600; text-transform: uppercase; white-space: nowrap; }}
  .badge.identical {{ background: #dcfce7; color: #166534; }}
  .badge.within-threshold {{ background: #fef9c3; color: #854d0e; }}
  .badge.different, .badge.failed {{ background: #fecaca; color: #991b1b; }}
  .failures {{ background: #fef2f2; border-radius: 8px; padding: 1.2rem; margin-bottom: 1.5rem; border-left: 4px solid var(--bad); }}
  .failures h2 {{ color: var(--bad); font-size: 1rem; margin-bottom: 0.4rem; }}
  .failures ul {{ margin-left: 1.2rem; font-size: 0.9rem; }}
  .comparison-card {{ background: var(--card); border-radius: 8px; margin-bottom: 1rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); padding: 1rem; }}
  .comparison-header {{ display: flex; align-items: center; gap: 0.6rem; flex-wrap: wrap; margin-bottom: 0.8rem; }}
  .notice {{ background: #fefce8; border: 1px solid #fde68a; color: #92400e; border-radius: 6px; padding: 0.4rem 0.8rem; margin-bottom: 0.8rem; font-size: 0.85rem; }}
  .shots {{ display: grid; grid-template-columns: repeat(3, 1fr); gap: 0.8rem; }}
  .shot {{ text-align: center; }}
  .shot img {{ width: 100%; border-radius: 6px; border: 1px solid var(--border); cursor: pointer; }}
  .shot img.zoomed {{ position: fixed; top: 5%; left: 5%; width: 90%; height: 90%; object-fit: contain; z-index: 1000; background: rgba(0,0,0,0.85); border: none; border-radius: 8px; padding: 1rem; }}
  .shot-missing {{ padding: 3rem 0; border: 1px dashed var(--border); border-radius: 6px; color: var(--muted); }}
  .shot-label {{ font-size: 0.75rem; color: var(--muted); margin-top: 0.2rem; }}
</style>
</head>
<body>
<div class="container">
  <h1>BrowserDiff Report</h1>
  <p class="meta">Session: {html.escape(session.session_id)} &middot; Target: {html.escape(session.target_url)} &middot; {session.timestamp.isoformat()} &middot; Viewport: {vp.width}x{vp.height}@{vp.device_scale_factor:g}x &middot; Baseline: {html.escape(report.baseline_browser)}</p>
  <p class="meta">Overall: <span class="overall">{report.overall_status}</span></p>

  <div class="summary">
    <div class="stat"><div class="value">{len(session.browsers)}</div><div class="label">Browsers</div></div>
    <div class="stat identical"><div class="value">{counts["identical"]}</div><div class="label">Identical</div></div>
    <div class="stat within-threshold"><div class="value">{counts["within-threshold"]}</div><div class="label">Within threshold</div></div>
    <div class="stat different"><div class="value">{counts["different"]}</div><div class="label">Different</div></div>
    <div class="stat failed"><div class="value">{len(failures)}</div><div class="label">Failed captures</div></div>
  </div>

  {failure_section}

  <div id="comparison-list">
    {"".join(cards)}
  </div>
</div>
</body>
</html>'''

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(report_html)
