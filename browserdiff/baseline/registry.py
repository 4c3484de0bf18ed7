"""Baseline registry — stores reference screenshots and their metadata files."""

from __future__ import annotations

import hashlib
import json
import logging
import shutil
import time
from pathlib import Path

from pydantic import ValidationError

from browserdiff.errors import BaselineError
from browserdiff.models.baseline import BaselineReference
from browserdiff.models.config import ViewportConfig

logger = logging.getLogger(__name__)


def _now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def image_hash(path: str | Path) -> str:
    return hashlib.sha256(Path(path).read_bytes()).hexdigest()


class BaselineService:
    """Keeps one ``<id>.json`` metadata file per baseline in ``baseline_dir``.

    Baseline images are copied to ``baseline_dir/images/<id>.png`` so they
    outlive the run that produced them. Baselines are keyed by target URL,
    viewport size and browser; creating one for an existing key replaces it.
    """

    def __init__(self, baseline_dir: str | Path):
        self.baseline_dir = Path(baseline_dir)
        self._baselines: dict[str, BaselineReference] = {}

    @staticmethod
    def _key(target_url: str, viewport: ViewportConfig, browser_name: str) -> str:
        return f"{target_url}-{viewport.width}x{viewport.height}-{browser_name}"

    def _metadata_path(self, baseline_id: str) -> Path:
        return self.baseline_dir / f"{baseline_id}.json"

    def _image_path(self, baseline_id: str) -> Path:
        return self.baseline_dir / "images" / f"{baseline_id}.png"

    def initialize(self) -> None:
        """Create the baseline directory and load every metadata file in it."""
        self.baseline_dir.mkdir(parents=True, exist_ok=True)
        self._baselines.clear()
        for meta in sorted(self.baseline_dir.glob("*.json")):
            try:
                with open(meta) as f:
                    baseline = BaselineReference.model_validate(json.load(f))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning("Skipping unreadable baseline metadata %s: %s", meta, e)
                continue
            self._baselines[self._key(baseline.target_url, baseline.viewport, baseline.browser_name)] = baseline
        logger.debug("Loaded %d baselines from %s", len(self._baselines), self.baseline_dir)

    def _save(self, baseline: BaselineReference) -> None:
        with open(self._metadata_path(baseline.baseline_id), "w") as f:
            json.dump(baseline.model_dump(by_alias=True), f, indent=2)

    def create_baseline(
        self,
        image_path: str | Path,
        target_url: str,
        viewport: ViewportConfig,
        browser_name: str,
    ) -> BaselineReference:
        source = Path(image_path)
        if not source.is_file():
            raise BaselineError(f"Baseline image not found: {source}")

        key = self._key(target_url, viewport, browser_name)
        existing = self._baselines.get(key)
        if existing is not None:
            logger.info("Replacing existing baseline %s for %s", existing.baseline_id, key)
            self.delete_baseline(existing.baseline_id)

        now = _now()
        baseline = BaselineReference(
            image_path="",
            created_at=now,
            updated_at=now,
            target_url=target_url,
            viewport=viewport,
            browser_name=browser_name,
        )
        dest = self._image_path(baseline.baseline_id)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, dest)
        baseline.image_path = str(dest)
        baseline.image_hash = image_hash(dest)

        self.baseline_dir.mkdir(parents=True, exist_ok=True)
        self._save(baseline)
        self._baselines[key] = baseline
        logger.info("Stored baseline %s for %s", baseline.baseline_id, key)
        return baseline

    def update_baseline(self, baseline_id: str, new_image_path: str | Path) -> BaselineReference | None:
        """Replace a baseline's image. Returns None for an unknown id."""
        baseline = self._find(baseline_id)
        if baseline is None:
            return None
        dest = Path(baseline.image_path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(new_image_path, dest)
        baseline.image_hash = image_hash(dest)
        baseline.bump_version(_now())
        self._save(baseline)
        logger.info("Updated baseline %s to version %s", baseline_id, baseline.version)
        return baseline

    def get_baseline(
        self, target_url: str, viewport: ViewportConfig, browser_name: str
    ) -> BaselineReference | None:
        return self._baselines.get(self._key(target_url, viewport, browser_name))

    def list_baselines(self) -> list[BaselineReference]:
        return list(self._baselines.values())

    def delete_baseline(self, baseline_id: str) -> bool:
        baseline = self._find(baseline_id)
        if baseline is None:
            return False
        Path(baseline.image_path).unlink(missing_ok=True)
        self._metadata_path(baseline.baseline_id).unlink(missing_ok=True)
        del self._baselines[self._key(baseline.target_url, baseline.viewport, baseline.browser_name)]
        logger.info("Deleted baseline %s", baseline_id)
        return True

    def _find(self, baseline_id: str) -> BaselineReference | None:
        for b in self._baselines.values():
            if b.baseline_id == baseline_id:
                return b
        return None
