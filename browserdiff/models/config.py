"""Configuration models for browserdiff."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from browserdiff.errors import ConfigurationError

SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")
DEFAULT_CONFIG_PATH = ".browserdiff.json"


class _ConfigModel(BaseModel):
    # Config files use camelCase keys; snake_case is accepted too.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ViewportConfig(_ConfigModel):
    width: int = 1920
    height: int = 1080
    device_scale_factor: float = 1.0

    @field_validator("width")
    @classmethod
    def check_width(cls, v: int) -> int:
        if v < 320 or v > 7680:
            raise ValueError("Viewport width must be between 320 and 7680")
        return v

    @field_validator("height")
    @classmethod
    def check_height(cls, v: int) -> int:
        if v < 240 or v > 4320:
            raise ValueError("Viewport height must be between 240 and 4320")
        return v


class ComparisonConfig(_ConfigModel):
    threshold: float = 0.1
    include_aa: bool = Field(default=True, alias="includeAA")

    @field_validator("threshold")
    @classmethod
    def check_threshold(cls, v: float) -> float:
        if v < 0 or v > 1:
            raise ValueError("Comparison threshold must be between 0.0 and 1.0")
        return v


class OutputConfig(_ConfigModel):
    directory: str = "./browserdiff-output"
    format: str = "html"
    embed_assets: bool = True


class TimeoutConfig(_ConfigModel):
    page_load: int = 30000  # ms
    screenshot: int = 5000  # ms


class RetryConfig(_ConfigModel):
    attempts: int = 3
    delay: int = 1000  # ms between attempts


class ScreenshotConfig(_ConfigModel):
    """Full-page capture settings."""

    full_page: bool = False
    max_height: int = 20000
    timeout: int = 60000
    quality: int = 90

    @field_validator("max_height")
    @classmethod
    def check_max_height(cls, v: int) -> int:
        if v < 1000 or v > 50000:
            raise ValueError("Screenshot maxHeight must be between 1000 and 50000")
        return v

    @field_validator("timeout")
    @classmethod
    def check_timeout(cls, v: int) -> int:
        if v < 10000 or v > 300000:
            raise ValueError("Screenshot timeout must be between 10000 and 300000")
        return v

    @field_validator("quality")
    @classmethod
    def check_quality(cls, v: int) -> int:
        if v < 0 or v > 100:
            raise ValueError("Screenshot quality must be between 0 and 100")
        return v


def _default_character_map() -> dict[str, str]:
    return {c: "-" for c in ("/", "\\", ":", "*", "?", '"', "<", ">", "|")}


class UrlSanitizationConfig(_ConfigModel):
    max_length: int = 100
    remove_protocol: bool = True
    character_map: dict[str, str] = Field(default_factory=_default_character_map)
    preserve_structure: bool = True

    @field_validator("max_length")
    @classmethod
    def check_max_length(cls, v: int) -> int:
        if v < 1:
            raise ValueError("URL sanitization maxLength must be positive")
        return v


class ReportingConfig(_ConfigModel):
    """Structured output settings. Disabled means the flat legacy layout."""

    structured: bool = False
    directory_pattern: str = "YYYY-MM-DD_HH-mm-ss_SSS_{url}"
    url_sanitization: UrlSanitizationConfig = Field(default_factory=UrlSanitizationConfig)


class BrowserDiffConfig(_ConfigModel):
    browsers: list[str] = Field(default_factory=lambda: list(SUPPORTED_BROWSERS))
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    comparison: ComparisonConfig = Field(default_factory=ComparisonConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    timeout: TimeoutConfig = Field(default_factory=TimeoutConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    # None or 1 captures browsers one at a time
    parallel: Optional[int] = None

    screenshot: ScreenshotConfig = Field(default_factory=ScreenshotConfig)
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)

    @field_validator("browsers")
    @classmethod
    def check_browsers(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one browser must be specified")
        invalid = [b for b in v if b not in SUPPORTED_BROWSERS]
        if invalid:
            raise ValueError(f"Invalid browsers: {', '.join(invalid)}")
        return v

    @field_validator("parallel")
    @classmethod
    def check_parallel(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("parallel must be at least 1")
        return v

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BrowserDiffConfig":
        """Build a config, converting validation failures to ConfigurationError."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

    @classmethod
    def load(cls, path: str | Path) -> "BrowserDiffConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Failed to load config from {path}: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def load_or_default(cls, path: str | Path | None = None) -> "BrowserDiffConfig":
        """Load config from ``path`` (default .browserdiff.json), or use defaults when absent."""
        path = Path(path or DEFAULT_CONFIG_PATH)
        if not path.exists():
            return cls()
        return cls.load(path)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(by_alias=True), f, indent=2)

    @classmethod
    def init(cls, path: str | Path = DEFAULT_CONFIG_PATH) -> Path:
        """Write a default config file, refusing to overwrite an existing one."""
        path = Path(path)
        if path.exists():
            raise ConfigurationError(f"Config file already exists at {path}")
        cls().save(path)
        return path

    def merged(self, **overrides: Any) -> "BrowserDiffConfig":
        """Return a copy with ``overrides`` deep-merged into nested sections."""
        data = _deep_merge(self.model_dump(), overrides)
        return self.from_dict(data)

    @property
    def is_parallel(self) -> bool:
        return self.parallel is not None and self.parallel > 1


# dict-valued settings that an override replaces wholesale
_REPLACED_FIELDS = frozenset({"character_map"})


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, BaseModel):
            value = value.model_dump()
        if (
            key not in _REPLACED_FIELDS
            and isinstance(value, dict)
            and isinstance(merged.get(key), dict)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged
