"""Error taxonomy for browserdiff.

Per-browser errors (navigation, screenshot, timeout) are folded into the
browser's CaptureResult by the executor. Per-comparison errors are logged and
skipped by the diff service. Only configuration errors and an unavailable
baseline escape the orchestrator.
"""

from __future__ import annotations


class BrowserDiffError(Exception):
    """Base class for all browserdiff errors."""


class ConfigurationError(BrowserDiffError):
    """Bad or missing configuration. Fatal, raised before any browser work."""


class NavigationError(BrowserDiffError):
    """The page failed to load after all retries."""

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class ScreenshotError(BrowserDiffError):
    """Screenshot capture failed for one browser."""

    def __init__(self, message: str, browser_name: str):
        super().__init__(message)
        self.browser_name = browser_name


class CaptureTimeoutError(BrowserDiffError):
    """A navigation or capture exceeded its timeout."""

    def __init__(self, message: str, operation: str):
        super().__init__(message)
        self.operation = operation


class DiffError(BrowserDiffError):
    """Comparison of two screenshots failed."""


class DimensionMismatchError(DiffError):
    """The two rasters being compared have different dimensions."""

    def __init__(self, baseline_size: tuple[int, int], current_size: tuple[int, int]):
        self.baseline_size = baseline_size
        self.current_size = current_size
        super().__init__(
            "Image dimensions mismatch: baseline (%dx%d) vs current (%dx%d)"
            % (baseline_size[0], baseline_size[1], current_size[0], current_size[1])
        )


class BaselineError(BrowserDiffError):
    """Problem with a stored or captured baseline."""


class BaselineUnavailableError(BaselineError):
    """The designated baseline browser did not produce a successful capture."""

    def __init__(self, message: str, browser_name: str):
        super().__init__(message)
        self.browser_name = browser_name


def user_friendly_message(error: BaseException) -> str:
    """Turn an exception into a one-line hint for the terminal."""
    if isinstance(error, NavigationError):
        return (
            f"Failed to navigate to {error.url}. "
            "Please check if the URL is valid and accessible."
        )
    if isinstance(error, ScreenshotError):
        return (
            f"Failed to capture screenshot for {error.browser_name}. "
            "Please ensure the browser is properly installed "
            "(run 'playwright install')."
        )
    if isinstance(error, CaptureTimeoutError):
        return (
            f'Operation "{error.operation}" timed out. '
            "Consider increasing timeout values in your configuration."
        )
    if isinstance(error, ConfigurationError):
        return f"Configuration error: {error}. Please check your .browserdiff.json file."
    if isinstance(error, BaselineUnavailableError):
        return f"Baseline unavailable: {error}"
    if isinstance(error, BaselineError):
        return f"Baseline error: {error}. Try recreating the baseline images."
    if isinstance(error, DiffError):
        return f"Diff comparison error: {error}. Check if screenshots are valid PNG files."
    return str(error) or error.__class__.__name__
