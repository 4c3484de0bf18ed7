"""Tests for structured report directory allocation."""

import os
import time
from datetime import datetime
from pathlib import Path

import pytest

from browserdiff.models.config import UrlSanitizationConfig
from browserdiff.reporter.directory_service import (
    DirectoryService,
    format_directory_name,
    random_suffix,
)

TS = datetime(2024, 3, 7, 9, 5, 4, 321000)


@pytest.fixture
def service() -> DirectoryService:
    return DirectoryService()


class TestFormatDirectoryName:
    """Token expansion in directory patterns."""

    def test_default_pattern(self):
        name = format_directory_name("YYYY-MM-DD_HH-mm-ss_SSS_{url}", TS, "example.com")
        assert name == "2024-03-07_09-05-04_321_example.com"

    def test_each_token_replaced_once(self):
        assert format_directory_name("YYYY-YYYY", TS, "x") == "2024-YYYY"

    def test_epoch_timestamp_token(self):
        name = format_directory_name("{timestamp}", TS, "x")
        assert name == str(int(TS.timestamp() * 1000))

    def test_pattern_without_tokens(self):
        assert format_directory_name("static", TS, "x") == "static"


class TestCreateTestDirectory:
    """Tests for DirectoryService.create_test_directory."""

    def test_creates_base_and_subdirectories(self, service, tmp_path: Path):
        structure = service.create_test_directory(
            tmp_path, TS, "https://example.com", "YYYY-MM-DD_{url}", UrlSanitizationConfig()
        )
        base = Path(structure.base_directory)
        assert base.name == "2024-03-07_example.com"
        assert (base / "screenshots").is_dir()
        assert (base / "diffs").is_dir()
        assert service.validate_directory_structure(structure)
        assert structure.metadata.original_url == "https://example.com"
        assert not structure.metadata.was_collision_resolved
        assert structure.metadata.collision_suffix is None

    def test_url_pattern_with_query_is_sanitized(self, service, tmp_path: Path):
        cfg = UrlSanitizationConfig(preserve_structure=False)
        structure = service.create_test_directory(
            tmp_path, TS, "https://example.com/test?param=value", "{url}", cfg
        )
        name = Path(structure.base_directory).name
        for bad in ("://", "?", "<", ">"):
            assert bad not in name
        assert structure.sanitized_url == name

    def test_second_run_same_timestamp_gets_random_suffix(self, service, tmp_path: Path):
        args = (tmp_path, TS, "https://example.com", "YYYY-MM-DD_HH-mm-ss_SSS_{url}", UrlSanitizationConfig())
        first = service.create_test_directory(*args)
        second = service.create_test_directory(*args)

        assert first.base_directory != second.base_directory
        assert second.metadata.was_collision_resolved
        suffix = second.metadata.collision_suffix
        assert len(suffix) == 4
        assert suffix.isalnum() and suffix == suffix.lower()
        assert second.base_directory.endswith(f"-{suffix}")

    def test_absolute_paths_join_base(self, service, tmp_path: Path):
        structure = service.create_test_directory(
            tmp_path, TS, "https://example.com", "{url}", UrlSanitizationConfig()
        )
        paths = service.get_absolute_paths(structure)
        base = Path(structure.base_directory)
        assert paths.html_report == base / "report.html"
        assert paths.json_report == base / "report.json"
        assert paths.screenshots_dir == base / "screenshots"
        assert paths.diffs_dir == base / "diffs"


class TestCleanup:
    """Tests for cleanup_old_directories."""

    def test_removes_only_old_directories(self, service, tmp_path: Path):
        old = tmp_path / "old"
        new = tmp_path / "new"
        old.mkdir()
        new.mkdir()
        past = time.time() - 3600
        os.utime(old, (past, past))

        assert service.cleanup_old_directories(tmp_path, max_age_seconds=60) == 1
        assert not old.exists()
        assert new.exists()

    def test_missing_base_dir(self, service, tmp_path: Path):
        assert service.cleanup_old_directories(tmp_path / "nope") == 0


def test_random_suffix_alphabet():
    for _ in range(20):
        s = random_suffix()
        assert len(s) == 4
        assert all(c.islower() or c.isdigit() for c in s)
