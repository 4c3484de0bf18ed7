"""Layout of one structured report directory."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _StructureModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ReportPaths(_StructureModel):
    """File and directory paths relative to the structure's base directory."""
    html_report: str = "report.html"
    json_report: str = "report.json"
    screenshots_dir: str = "screenshots"
    diffs_dir: str = "diffs"


class ReportStructureMetadata(_StructureModel):
    original_url: str
    created_at: datetime
    was_collision_resolved: bool = False
    collision_suffix: Optional[str] = None


class AbsolutePaths(_StructureModel):
    html_report: Path
    json_report: Path
    screenshots_dir: Path
    diffs_dir: Path


class ReportStructure(_StructureModel):
    base_directory: str
    timestamp: datetime
    sanitized_url: str
    paths: ReportPaths = Field(default_factory=ReportPaths)
    metadata: ReportStructureMetadata

    @property
    def absolute_paths(self) -> AbsolutePaths:
        """Resolve every artifact path by joining onto the base directory."""
        base = Path(self.base_directory)
        return AbsolutePaths(
            html_report=base / self.paths.html_report,
            json_report=base / self.paths.json_report,
            screenshots_dir=base / self.paths.screenshots_dir,
            diffs_dir=base / self.paths.diffs_dir,
        )
