"""Tests for report directory helpers using numeric collision suffixes."""

from datetime import datetime, timezone
from pathlib import Path

from browserdiff.models.config import UrlSanitizationConfig
from browserdiff.utils.directory_utils import (
    cleanup_empty_directories,
    create_report_directory,
    directory_exists,
    ensure_directory_exists,
    get_directory_stats,
    resolve_directory_collision,
)

TS = datetime(2024, 3, 7, 9, 5, 4, 321000)


class TestCreateReportDirectory:
    """Tests for create_report_directory."""

    def test_name_uses_timestamp_and_url(self, tmp_path: Path):
        path = create_report_directory(tmp_path, "https://example.com", TS)
        assert path.name == "2024-03-07_09-05-04_321_example.com"
        assert path.is_dir()

    def test_numeric_suffix_on_collision(self, tmp_path: Path):
        first = create_report_directory(tmp_path, "https://example.com", TS)
        second = create_report_directory(tmp_path, "https://example.com", TS)
        third = create_report_directory(tmp_path, "https://example.com", TS)
        assert second.name == f"{first.name}_1"
        assert third.name == f"{first.name}_2"

    def test_iso_stamp_without_structure(self, tmp_path: Path):
        ts = datetime(2024, 3, 7, 9, 5, 4, 321000, tzinfo=timezone.utc)
        cfg = UrlSanitizationConfig(preserve_structure=False)
        path = create_report_directory(tmp_path, "https://example.com/a", ts, cfg)
        assert path.name == "2024-03-07T09-05-04-321Z_example.com-a"
        assert ":" not in path.name

    def test_creates_missing_base(self, tmp_path: Path):
        path = create_report_directory(tmp_path / "nested" / "out", "https://example.com", TS)
        assert path.parent == tmp_path / "nested" / "out"


class TestResolveDirectoryCollision:
    """Tests for resolve_directory_collision."""

    def test_free_name(self, tmp_path: Path):
        assert resolve_directory_collision(tmp_path, "run") == "run"

    def test_taken_names(self, tmp_path: Path):
        (tmp_path / "run").mkdir()
        (tmp_path / "run_1").mkdir()
        assert resolve_directory_collision(tmp_path, "run") == "run_2"

    def test_missing_base_dir(self, tmp_path: Path):
        assert resolve_directory_collision(tmp_path / "missing", "run") == "run"


class TestDirectoryHelpers:
    """Small filesystem helpers."""

    def test_exists_and_ensure(self, tmp_path: Path):
        target = tmp_path / "a" / "b"
        assert not directory_exists(target)
        ensure_directory_exists(target)
        assert directory_exists(target)

    def test_cleanup_empty_directories(self, tmp_path: Path):
        (tmp_path / "empty" / "deeper").mkdir(parents=True)
        (tmp_path / "full").mkdir()
        (tmp_path / "full" / "f.txt").write_text("x")
        removed = cleanup_empty_directories(tmp_path)
        assert removed == 2
        assert not (tmp_path / "empty").exists()
        assert (tmp_path / "full").exists()

    def test_directory_stats(self, tmp_path: Path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "a.txt").write_bytes(b"123")
        (tmp_path / "sub" / "b.txt").write_bytes(b"45")
        stats = get_directory_stats(tmp_path)
        assert stats == {"exists": True, "file_count": 2, "total_size": 5}

    def test_stats_missing(self, tmp_path: Path):
        assert get_directory_stats(tmp_path / "nope")["exists"] is False
