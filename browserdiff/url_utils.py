"""Shared URL utilities — turn URLs into filesystem-safe directory names."""

from __future__ import annotations

import re
import time
from typing import Iterable

from browserdiff.models.config import UrlSanitizationConfig

_PROTOCOL_RE = re.compile(r"^https?://", re.IGNORECASE)
_EDGE_RE = re.compile(r"^[-.]+|[-.]+$")
_INVALID_CHARS_RE = re.compile(r'[<>:"|?*\\]')
_RESERVED_NAMES_RE = re.compile(r"^(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])$", re.IGNORECASE)

FALLBACK_NAME = "unnamed"


def sanitize_url_for_filesystem(
    url: str, config: UrlSanitizationConfig | None = None
) -> str:
    """Sanitize a URL for use as a directory name.

    The order of the steps matters: truncation runs after character mapping,
    and edge trimming runs after truncation, so the result can end up
    shorter than ``max_length``.
    """
    config = config or UrlSanitizationConfig()
    sanitized = url

    if config.remove_protocol:
        sanitized = _PROTOCOL_RE.sub("", sanitized)

    char_map = dict(config.character_map)
    if config.preserve_structure:
        char_map.pop("/", None)

    for invalid_char, replacement in char_map.items():
        sanitized = sanitized.replace(invalid_char, replacement)

    if not config.preserve_structure:
        sanitized = sanitized.replace("/", "-")

    if len(sanitized) > config.max_length:
        sanitized = sanitized[: config.max_length]

    sanitized = _EDGE_RE.sub("", sanitized)

    return sanitized or FALLBACK_NAME


def is_filesystem_safe(name: str) -> bool:
    """Check that a sanitized name is safe to use as a path segment."""
    if _INVALID_CHARS_RE.search(name):
        return False
    if _RESERVED_NAMES_RE.match(name):
        return False
    if name[:1].isspace() or name[-1:].isspace():
        return False
    if name.startswith(".") or name.endswith("."):
        return False
    return True


def generate_collision_safe_name(
    base_name: str, existing_names: Iterable[str], max_attempts: int = 100
) -> str:
    """Return ``base_name``, or ``base_name_N`` for the first free N.

    Falls back to an epoch-millis suffix once ``max_attempts`` are taken.
    """
    existing = set(existing_names)
    if base_name not in existing:
        return base_name

    for i in range(1, max_attempts + 1):
        candidate = f"{base_name}_{i}"
        if candidate not in existing:
            return candidate

    return f"{base_name}_{int(time.time() * 1000)}"
