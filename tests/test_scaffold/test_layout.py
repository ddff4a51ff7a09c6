"""Unit tests for on-disk layout inspection (goforge.scaffold.layout)."""

from __future__ import annotations

from pathlib import Path

import pytest

from goforge.scaffold.archetypes import ARCHETYPES
from goforge.scaffold.layout import inspect_layout


def _materialise(root: Path, archetype: str) -> None:
    for directory in ARCHETYPES[archetype].directories:
        (root / directory).mkdir(parents=True, exist_ok=True)
    for name in ("go.mod", "README.md", "Makefile", ".gitignore", "Dockerfile"):
        (root / name).write_text("", encoding="utf-8")


class TestInspectLayout:
    @pytest.mark.unit
    def test_missing_root(self, tmp_path: Path):
        report = inspect_layout(tmp_path / "absent")
        assert report.detected_archetype is None
        assert "does not exist" in report.recommendations[0]

    @pytest.mark.unit
    def test_detects_archetype(self, tmp_path: Path):
        _materialise(tmp_path, "api")
        report = inspect_layout(tmp_path)
        assert report.detected_archetype == "api"
        assert report.score == 1.0
        assert report.is_complete

    @pytest.mark.unit
    def test_reports_missing_pieces(self, tmp_path: Path):
        _materialise(tmp_path, "microservice")
        (tmp_path / "docs").rmdir()
        (tmp_path / "go.mod").unlink()
        report = inspect_layout(tmp_path, "microservice")
        assert report.missing_directories == ["docs"]
        assert report.missing_files == ["go.mod"]
        assert not report.is_complete
        assert any("go mod init" in r for r in report.recommendations)

    @pytest.mark.unit
    def test_empty_directory_is_not_guessed(self, tmp_path: Path):
        report = inspect_layout(tmp_path)
        assert report.detected_archetype is None
        assert len(report.missing_files) == 4

    @pytest.mark.unit
    def test_recommends_tests(self, tmp_path: Path):
        _materialise(tmp_path, "library")
        report = inspect_layout(tmp_path, "library")
        assert any("_test.go" in r for r in report.recommendations)
