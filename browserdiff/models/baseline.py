"""Stored baseline image data structures."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from browserdiff.models.config import ViewportConfig


class BaselineReference(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    baseline_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    image_path: str
    image_hash: str = ""  # SHA-256 hex digest
    created_at: str  # ISO timestamp
    updated_at: str
    target_url: str
    viewport: ViewportConfig
    browser_name: str
    version: str = "1.0.0"

    def bump_version(self, updated_at: str) -> None:
        """Record an image update: bump the patch version and touch updated_at."""
        major, minor, patch = (int(p) for p in self.version.split("."))
        self.version = f"{major}.{minor}.{patch + 1}"
        self.updated_at = updated_at
