"""CLI entry point for browserdiff."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from browserdiff.baseline.registry import BaselineService
from browserdiff.errors import BrowserDiffError, ConfigurationError, user_friendly_message
from browserdiff.models.config import DEFAULT_CONFIG_PATH, BrowserDiffConfig
from browserdiff.orchestrator import ExecutionResult, Orchestrator, exit_code
from browserdiff.reporter.reporter import ReportService

console = Console()

DEFAULT_BASELINE_DIR = "./baselines"

_STATUS_STYLES = {
    "identical": "green",
    "within-threshold": "yellow",
    "different": "red",
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _fail(error: BaseException) -> NoReturn:
    console.print(f"[red]✗ {user_friendly_message(error)}[/red]")
    sys.exit(1)


def _load_config(path: str | None) -> BrowserDiffConfig:
    """Load an explicitly given config file, or .browserdiff.json if present."""
    if path is None:
        return BrowserDiffConfig.load_or_default()
    return BrowserDiffConfig.load(path)


def _split_browsers(values: tuple[str, ...]) -> list[str]:
    browsers = []
    for v in values:
        browsers.extend(b.strip().lower() for b in v.split(",") if b.strip())
    return browsers


def _print_summary(result: ExecutionResult) -> None:
    report = result.report
    table = Table(title=f"Comparison against {report.baseline_browser}")
    table.add_column("Browser", style="bold")
    table.add_column("Version")
    table.add_column("Status")
    table.add_column("Diff %", justify="right")
    table.add_column("Diff pixels", justify="right")

    for capture in result.session.results:
        if capture.browser_name == report.baseline_browser:
            continue
        comp = report.get_comparison(capture.browser_name)
        if comp is None:
            status = capture.status if not capture.is_success else "skipped"
            table.add_row(capture.browser_name, capture.browser_version, f"[red]{status}[/red]", "-", "-")
            continue
        style = _STATUS_STYLES.get(comp.status, "white")
        table.add_row(
            comp.browser_name,
            capture.browser_version,
            f"[{style}]{comp.status}[/{style}]",
            f"{comp.metrics.diff_percentage:.2f}%",
            f"{comp.metrics.diff_pixels:,}",
        )
    console.print(table)

    style = _STATUS_STYLES.get(report.overall_status, "white")
    console.print(f"Overall: [{style}]{report.overall_status}[/{style}]")
    console.print(f"  HTML report: [blue]{result.report_path}[/blue]")
    console.print(f"  JSON report: [blue]{result.json_path}[/blue]")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Cross-browser visual regression testing"""
    setup_logging(verbose)


@cli.command()
@click.argument("url")
@click.option("--browsers", "-b", multiple=True, help="Browsers to test (chromium, firefox, webkit); repeat or comma-separate")
@click.option("--width", "-w", type=int, help="Viewport width")
@click.option("--height", "-h", type=int, help="Viewport height")
@click.option("--threshold", "-t", type=float, help="Diff threshold (0.0-1.0)")
@click.option("--output", "-o", help="Output directory")
@click.option("--config", "-c", "config_path", help="Config file path")
@click.option("--baseline", default="chromium", show_default=True, help="Baseline browser for comparison")
@click.option("--ignore-https-errors", is_flag=True, help="Ignore HTTPS certificate errors")
@click.option("--parallel", "-p", type=int, help="Capture up to N browsers concurrently")
@click.option("--full-page", is_flag=True, help="Capture the full scrollable page")
@click.option("--structured", is_flag=True, help="Write each run into its own timestamped directory")
@click.option("--open", "open_report", is_flag=True, help="Open the report after generation")
@click.option("--verbose", is_flag=True, help="Enable debug logging")
def diff(
    url: str,
    browsers: tuple[str, ...],
    width: int | None,
    height: int | None,
    threshold: float | None,
    output: str | None,
    config_path: str | None,
    baseline: str,
    ignore_https_errors: bool,
    parallel: int | None,
    full_page: bool,
    structured: bool,
    open_report: bool,
    verbose: bool,
) -> None:
    """Capture URL in several browsers and compare them against a baseline browser."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        cfg = _load_config(config_path)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {config_path}[/red]")
        console.print("Run 'browserdiff config init' to create a default config.")
        sys.exit(1)
    except ConfigurationError as e:
        _fail(e)

    overrides: dict = {}
    if browsers:
        overrides["browsers"] = _split_browsers(browsers)
    viewport = {k: v for k, v in (("width", width), ("height", height)) if v is not None}
    if viewport:
        overrides["viewport"] = viewport
    if threshold is not None:
        overrides["comparison"] = {"threshold": threshold}
    if output:
        overrides["output"] = {"directory": output}
    if parallel is not None:
        overrides["parallel"] = parallel
    if full_page:
        overrides["screenshot"] = {"full_page": True}
    if structured:
        overrides["reporting"] = {"structured": True}

    try:
        cfg = cfg.merged(**overrides)
        orchestrator = Orchestrator(cfg, ignore_https_errors=ignore_https_errors)
        result = orchestrator.run(url, baseline)
    except BrowserDiffError as e:
        _fail(e)

    _print_summary(result)

    if open_report:
        ReportService(cfg).open_report(result.report_path)

    sys.exit(exit_code(result))


# ---------------------------------------------------------------------------
# baseline
# ---------------------------------------------------------------------------

@cli.group()
def baseline() -> None:
    """Manage baseline images."""
    pass


def _capture_for_baseline(cfg: BrowserDiffConfig, url: str, browser_name: str, baseline_dir: str) -> str:
    orchestrator = Orchestrator(cfg)
    result = asyncio.run(
        orchestrator.capture_one(url, browser_name, Path(baseline_dir) / "screenshots")
    )
    if not result.is_success:
        console.print(f"[red]✗ Failed to capture screenshot: {result.error_message or result.status}[/red]")
        sys.exit(1)
    return result.screenshot_path


@baseline.command("create")
@click.argument("url")
@click.option("--browser", "-b", default="chromium", show_default=True, help="Browser to use")
@click.option("--width", "-w", type=int, help="Viewport width")
@click.option("--height", "-h", type=int, help="Viewport height")
@click.option("--config", "-c", "config_path", help="Config file path")
@click.option("--dir", "-d", "baseline_dir", default=DEFAULT_BASELINE_DIR, show_default=True, help="Baseline directory")
def baseline_create(
    url: str,
    browser: str,
    width: int | None,
    height: int | None,
    config_path: str | None,
    baseline_dir: str,
) -> None:
    """Capture URL and store it as a baseline."""
    try:
        cfg = _load_config(config_path)
        viewport = {k: v for k, v in (("width", width), ("height", height)) if v is not None}
        cfg = cfg.merged(browsers=[browser], viewport=viewport)

        service = BaselineService(baseline_dir)
        service.initialize()
        screenshot_path = _capture_for_baseline(cfg, url, browser, baseline_dir)
        ref = service.create_baseline(screenshot_path, url, cfg.viewport, browser)
    except (BrowserDiffError, FileNotFoundError) as e:
        _fail(e)

    console.print(f"[green]✓ Baseline created:[/green] {ref.baseline_id}")
    console.print(f"  Path: {ref.image_path}")
    console.print(f"  Hash: {ref.image_hash}")


@baseline.command("update")
@click.argument("baseline_id")
@click.option("--config", "-c", "config_path", help="Config file path")
@click.option("--dir", "-d", "baseline_dir", default=DEFAULT_BASELINE_DIR, show_default=True, help="Baseline directory")
def baseline_update(baseline_id: str, config_path: str | None, baseline_dir: str) -> None:
    """Recapture an existing baseline with its original URL, browser and viewport."""
    try:
        service = BaselineService(baseline_dir)
        service.initialize()
        existing = next((b for b in service.list_baselines() if b.baseline_id == baseline_id), None)
        if existing is None:
            console.print(f"[red]✗ Baseline not found: {baseline_id}[/red]")
            sys.exit(1)

        cfg = _load_config(config_path).merged(
            browsers=[existing.browser_name], viewport=existing.viewport
        )
        screenshot_path = _capture_for_baseline(cfg, existing.target_url, existing.browser_name, baseline_dir)
        updated = service.update_baseline(baseline_id, screenshot_path)
    except (BrowserDiffError, FileNotFoundError) as e:
        _fail(e)

    console.print(f"[green]✓ Baseline updated:[/green] {updated.baseline_id}")
    console.print(f"  New hash: {updated.image_hash}")
    console.print(f"  Version: {updated.version}")


@baseline.command("list")
@click.option("--dir", "-d", "baseline_dir", default=DEFAULT_BASELINE_DIR, show_default=True, help="Baseline directory")
def baseline_list(baseline_dir: str) -> None:
    """List all baselines."""
    service = BaselineService(baseline_dir)
    service.initialize()
    baselines = service.list_baselines()
    if not baselines:
        console.print("[yellow]No baselines found[/yellow]")
        return

    table = Table(title=f"{len(baselines)} baseline(s)")
    table.add_column("ID", style="bold")
    table.add_column("URL")
    table.add_column("Browser")
    table.add_column("Viewport")
    table.add_column("Version")
    table.add_column("Updated")
    for b in baselines:
        table.add_row(
            b.baseline_id, b.target_url, b.browser_name,
            f"{b.viewport.width}x{b.viewport.height}", b.version, b.updated_at,
        )
    console.print(table)


@baseline.command("delete")
@click.argument("baseline_id")
@click.option("--dir", "-d", "baseline_dir", default=DEFAULT_BASELINE_DIR, show_default=True, help="Baseline directory")
def baseline_delete(baseline_id: str, baseline_dir: str) -> None:
    """Delete a baseline and its image."""
    service = BaselineService(baseline_dir)
    service.initialize()
    if not service.delete_baseline(baseline_id):
        console.print(f"[red]✗ Baseline not found: {baseline_id}[/red]")
        sys.exit(1)
    console.print(f"[green]✓ Baseline deleted:[/green] {baseline_id}")


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------

@cli.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("init")
@click.option("--path", "-p", default=DEFAULT_CONFIG_PATH, show_default=True, help="Config file path")
def config_init(path: str) -> None:
    """Create a default configuration file."""
    try:
        created = BrowserDiffConfig.init(path)
    except ConfigurationError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)
    console.print(f"[green]✓ Configuration file created:[/green] {created}")


@config.command("show")
@click.option("--path", "-p", default=DEFAULT_CONFIG_PATH, show_default=True, help="Config file path")
def config_show(path: str) -> None:
    """Display the effective configuration."""
    try:
        cfg = BrowserDiffConfig.load_or_default(path)
    except ConfigurationError as e:
        _fail(e)
    click.echo(json.dumps(cfg.model_dump(by_alias=True), indent=2))


@config.command("validate")
@click.option("--path", "-p", default=DEFAULT_CONFIG_PATH, show_default=True, help="Config file path")
def config_validate(path: str) -> None:
    """Validate a configuration file."""
    try:
        BrowserDiffConfig.load(path)
    except FileNotFoundError:
        console.print(f"[red]✗ Config file not found: {path}[/red]")
        sys.exit(1)
    except ConfigurationError as e:
        console.print(f"[red]✗ Configuration is invalid:[/red] {e}")
        sys.exit(1)
    console.print("[green]✓ Configuration is valid[/green]")


# ---------------------------------------------------------------------------
# report
# ---------------------------------------------------------------------------

@cli.group()
def report() -> None:
    """Manage and view reports."""
    pass


@report.command("list")
@click.option("--output", "-o", help="Output directory")
@click.option("--config", "-c", "config_path", help="Config file path")
def report_list(output: str | None, config_path: str | None) -> None:
    """List generated HTML reports, newest first."""
    try:
        cfg = _load_config(config_path)
        if output:
            cfg = cfg.merged(output={"directory": output})
    except (ConfigurationError, FileNotFoundError) as e:
        _fail(e)

    reports = ReportService(cfg).list_reports()
    if not reports:
        console.print(f"[yellow]No reports found in {cfg.output.directory}[/yellow]")
        return
    console.print(f"Found {len(reports)} report(s):")
    for p in reports:
        console.print(f"  [blue]{p}[/blue]")


@report.command("view")
@click.argument("report_path")
def report_view(report_path: str) -> None:
    """Open a report in the default browser."""
    try:
        ReportService(BrowserDiffConfig()).open_report(report_path)
    except FileNotFoundError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)
    console.print(f"Opening report: {report_path}")


if __name__ == "__main__":
    cli()
