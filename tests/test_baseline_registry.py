"""Tests for the baseline registry."""

import json
from pathlib import Path

import pytest

from browserdiff.baseline.registry import BaselineService, image_hash
from browserdiff.errors import BaselineError
from browserdiff.models.config import ViewportConfig

URL = "https://example.com"


@pytest.fixture
def service(tmp_path: Path) -> BaselineService:
    svc = BaselineService(tmp_path / "baselines")
    svc.initialize()
    return svc


class TestCreateBaseline:
    """Tests for create_baseline."""

    def test_copies_image_and_writes_metadata(self, service, png_factory, viewport_config):
        source = png_factory("capture.png")
        ref = service.create_baseline(source, URL, viewport_config, "chromium")

        stored = Path(ref.image_path)
        assert stored.exists()
        assert stored.parent == service.baseline_dir / "images"
        assert ref.image_hash == image_hash(source)
        assert ref.version == "1.0.0"

        meta = json.loads((service.baseline_dir / f"{ref.baseline_id}.json").read_text())
        assert meta["targetUrl"] == URL
        assert meta["browserName"] == "chromium"

    def test_missing_image(self, service, tmp_path, viewport_config):
        with pytest.raises(BaselineError, match="not found"):
            service.create_baseline(tmp_path / "none.png", URL, viewport_config, "chromium")

    def test_same_key_replaces(self, service, png_factory, viewport_config):
        first = service.create_baseline(png_factory("a.png"), URL, viewport_config, "chromium")
        second = service.create_baseline(png_factory("b.png", changed=3), URL, viewport_config, "chromium")

        assert [b.baseline_id for b in service.list_baselines()] == [second.baseline_id]
        assert not Path(first.image_path).exists()
        assert service.get_baseline(URL, viewport_config, "chromium").baseline_id == second.baseline_id

    def test_different_browser_is_separate(self, service, png_factory, viewport_config):
        service.create_baseline(png_factory("a.png"), URL, viewport_config, "chromium")
        service.create_baseline(png_factory("b.png"), URL, viewport_config, "firefox")
        assert len(service.list_baselines()) == 2


class TestUpdateBaseline:
    """Tests for update_baseline."""

    def test_bumps_version_and_hash(self, service, png_factory, viewport_config):
        ref = service.create_baseline(png_factory("a.png"), URL, viewport_config, "chromium")
        old_hash = ref.image_hash

        updated = service.update_baseline(ref.baseline_id, png_factory("b.png", changed=5))
        assert updated.version == "1.0.1"
        assert updated.image_hash != old_hash
        assert updated.image_hash == image_hash(updated.image_path)

    def test_unknown_id(self, service, png_factory):
        assert service.update_baseline("missing", png_factory()) is None


class TestLookupAndDelete:
    """Tests for get_baseline, delete_baseline and reloading."""

    def test_get_unknown(self, service):
        assert service.get_baseline(URL, ViewportConfig(), "webkit") is None

    def test_delete(self, service, png_factory, viewport_config):
        ref = service.create_baseline(png_factory(), URL, viewport_config, "webkit")
        assert service.delete_baseline(ref.baseline_id)
        assert service.list_baselines() == []
        assert not Path(ref.image_path).exists()
        assert not (service.baseline_dir / f"{ref.baseline_id}.json").exists()
        assert not service.delete_baseline(ref.baseline_id)

    def test_reload_preserves_ids(self, service, png_factory, viewport_config):
        ref = service.create_baseline(png_factory(), URL, viewport_config, "chromium")

        reloaded = BaselineService(service.baseline_dir)
        reloaded.initialize()
        found = reloaded.get_baseline(URL, viewport_config, "chromium")
        assert found.baseline_id == ref.baseline_id
        assert found.image_hash == ref.image_hash

    def test_bad_metadata_is_skipped(self, service, png_factory, viewport_config):
        service.create_baseline(png_factory(), URL, viewport_config, "chromium")
        (service.baseline_dir / "broken.json").write_text("{not json")
        (service.baseline_dir / "partial.json").write_text('{"targetUrl": "x"}')

        service.initialize()
        assert len(service.list_baselines()) == 1
