"""Structured per-run output directories (report files, screenshots/, diffs/)."""

from __future__ import annotations

import logging
import random
import shutil
import string
import time
from datetime import datetime
from pathlib import Path

from browserdiff.models.config import UrlSanitizationConfig
from browserdiff.models.report_structure import (
    AbsolutePaths,
    ReportPaths,
    ReportStructure,
    ReportStructureMetadata,
)
from browserdiff.url_utils import sanitize_url_for_filesystem

logger = logging.getLogger(__name__)

SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
SUFFIX_LENGTH = 4
DEFAULT_MAX_AGE_SECONDS = 30 * 24 * 60 * 60


def format_directory_name(pattern: str, timestamp: datetime, sanitized_url: str) -> str:
    """Expand the timestamp and ``{url}`` tokens of a directory pattern.

    Each token is replaced once, in the order YYYY, MM, DD, HH, mm, ss, SSS,
    {url}, {timestamp}. Tokens absent from the pattern are simply skipped.
    """
    replacements = [
        ("YYYY", f"{timestamp.year:04d}"),
        ("MM", f"{timestamp.month:02d}"),
        ("DD", f"{timestamp.day:02d}"),
        ("HH", f"{timestamp.hour:02d}"),
        ("mm", f"{timestamp.minute:02d}"),
        ("ss", f"{timestamp.second:02d}"),
        ("SSS", f"{timestamp.microsecond // 1000:03d}"),
        ("{url}", sanitized_url),
        ("{timestamp}", str(int(timestamp.timestamp() * 1000))),
    ]
    formatted = pattern
    for token, value in replacements:
        formatted = formatted.replace(token, value, 1)
    return formatted


def random_suffix(length: int = SUFFIX_LENGTH) -> str:
    return "".join(random.choice(SUFFIX_ALPHABET) for _ in range(length))


class DirectoryService:
    """Creates collision-free structured report directories.

    Collisions are resolved with a random ``-xxxx`` suffix. The numeric
    ``_1, _2`` strategy in :mod:`browserdiff.utils.directory_utils` is a
    separate entry point and stays separate.
    """

    def create_test_directory(
        self,
        base_dir: str | Path,
        timestamp: datetime,
        url: str,
        directory_pattern: str,
        url_sanitization: UrlSanitizationConfig,
    ) -> ReportStructure:
        sanitized_url = sanitize_url_for_filesystem(url, url_sanitization)
        directory_name = format_directory_name(directory_pattern, timestamp, sanitized_url)

        proposed = Path(base_dir) / directory_name
        final, suffix = self.resolve_collisions(proposed)

        structure = ReportStructure(
            base_directory=str(final.resolve()),
            timestamp=timestamp,
            sanitized_url=sanitized_url,
            paths=ReportPaths(),
            metadata=ReportStructureMetadata(
                original_url=url,
                created_at=datetime.now(),
                was_collision_resolved=suffix is not None,
                collision_suffix=suffix,
            ),
        )
        self.ensure_subdirectories(structure)
        logger.info("Created report directory %s", structure.base_directory)
        return structure

    def resolve_collisions(self, proposed: Path) -> tuple[Path, str | None]:
        """Return a path that does not exist yet, plus the suffix used (if any)."""
        if not proposed.exists():
            return proposed, None
        while True:
            suffix = random_suffix()
            candidate = proposed.with_name(f"{proposed.name}-{suffix}")
            if not candidate.exists():
                logger.debug("Directory %s exists, using suffix -%s", proposed, suffix)
                return candidate, suffix

    def ensure_subdirectories(self, structure: ReportStructure) -> None:
        paths = structure.absolute_paths
        paths.screenshots_dir.mkdir(parents=True, exist_ok=True)
        paths.diffs_dir.mkdir(parents=True, exist_ok=True)

    def get_absolute_paths(self, structure: ReportStructure) -> AbsolutePaths:
        return structure.absolute_paths

    def validate_directory_structure(self, structure: ReportStructure) -> bool:
        paths = structure.absolute_paths
        return all(
            p.is_dir()
            for p in (Path(structure.base_directory), paths.screenshots_dir, paths.diffs_dir)
        )

    def cleanup_old_directories(
        self, base_dir: str | Path, max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS
    ) -> int:
        """Delete report directories older than ``max_age_seconds``. Returns the count removed."""
        base = Path(base_dir)
        if not base.is_dir():
            return 0
        now = time.time()
        cleaned = 0
        for entry in base.iterdir():
            if not entry.is_dir():
                continue
            if now - entry.stat().st_mtime > max_age_seconds:
                shutil.rmtree(entry, ignore_errors=True)
                cleaned += 1
        logger.debug("Cleaned up %d old report directories in %s", cleaned, base)
        return cleaned
