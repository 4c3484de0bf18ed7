"""Filesystem helpers for report directories using numeric collision suffixes."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from browserdiff.models.config import UrlSanitizationConfig
from browserdiff.url_utils import generate_collision_safe_name, sanitize_url_for_filesystem

logger = logging.getLogger(__name__)


def _directory_name(url: str, timestamp: datetime, config: UrlSanitizationConfig) -> str:
    sanitized = sanitize_url_for_filesystem(url, config)
    if config.preserve_structure:
        stamp = timestamp.strftime("%Y-%m-%d_%H-%M-%S_") + f"{timestamp.microsecond // 1000:03d}"
        return f"{stamp}_{sanitized}"
    iso = timestamp.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    iso = iso.replace("+00:00", "Z").replace(":", "-").replace(".", "-")
    return f"{iso}_{sanitized}"


def resolve_directory_collision(base_dir: str | Path, name: str) -> str:
    """Return ``name`` or ``name_1``, ``name_2``, ... whichever is free under ``base_dir``."""
    base = Path(base_dir)
    existing = set(os.listdir(base)) if base.is_dir() else set()
    return generate_collision_safe_name(name, existing)


def create_report_directory(
    base_dir: str | Path,
    url: str,
    timestamp: datetime | None = None,
    config: UrlSanitizationConfig | None = None,
) -> Path:
    """Create and return a collision-free report directory for ``url``."""
    config = config or UrlSanitizationConfig()
    timestamp = timestamp or datetime.now()
    base = ensure_directory_exists(base_dir)
    name = resolve_directory_collision(base, _directory_name(url, timestamp, config))
    path = base / name
    path.mkdir()
    logger.debug("Created report directory %s", path)
    return path


def directory_exists(path: str | Path) -> bool:
    return Path(path).is_dir()


def ensure_directory_exists(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def cleanup_empty_directories(base_dir: str | Path) -> int:
    """Remove empty directories below ``base_dir`` (deepest first). Returns the count removed."""
    base = Path(base_dir)
    if not base.is_dir():
        return 0
    removed = 0
    for root, dirs, _files in os.walk(base, topdown=False):
        for d in dirs:
            path = Path(root) / d
            if path.is_dir() and not any(path.iterdir()):
                path.rmdir()
                removed += 1
    return removed


def get_directory_stats(path: str | Path) -> dict[str, Any]:
    """Count files and total bytes below ``path``."""
    p = Path(path)
    if not p.is_dir():
        return {"exists": False, "file_count": 0, "total_size": 0}
    files = [f for f in p.rglob("*") if f.is_file()]
    return {
        "exists": True,
        "file_count": len(files),
        "total_size": sum(f.stat().st_size for f in files),
    }
