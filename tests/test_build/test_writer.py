"""Unit tests for the filesystem writer (goforge.build.writer)."""

from __future__ import annotations

from pathlib import Path

import pytest

from goforge.build.writer import FilesystemWriter, normalize_path, resolve_collisions
from goforge.generator.accumulator import ContentKind, GeneratedFile
from goforge.scaffold.synthesizer import synthesize


def _file(path: str, content: str = "x") -> GeneratedFile:
    return GeneratedFile(path, content, ContentKind.SOURCE)


class TestCollisions:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw, normalized",
        [("a/./b.go", "a/b.go"), ("a/x/../b.go", "a/b.go"), ("a\\b.go", "a/b.go"), ("../b.go", "../b.go")],
    )
    def test_normalize_path(self, raw, normalized):
        assert normalize_path(raw) == normalized

    @pytest.mark.unit
    def test_last_write_wins_in_first_appearance_order(self):
        files, overridden = resolve_collisions(
            [_file("a.go", "1"), _file("b.go", "2"), _file("./a.go", "3")]
        )
        assert [(f.path, f.content) for f in files] == [("./a.go", "3"), ("b.go", "2")]
        assert overridden == 1


class TestFilesystemWriter:
    @pytest.mark.unit
    def test_target_for_rejects_escapes(self, tmp_path: Path):
        writer = FilesystemWriter(tmp_path)
        assert writer.target_for("internal/domain/order.go") == tmp_path / "internal/domain/order.go"
        assert writer.target_for("../outside.go") is None
        assert writer.target_for("/etc/passwd") is None
        assert writer.target_for("a/../../outside.go") is None

    @pytest.mark.unit
    def test_write_skeleton_is_idempotent(self, tmp_path: Path):
        skeleton = synthesize("api", "github.com/acme/notes")
        writer = FilesystemWriter(tmp_path / "out")

        first = writer.write_skeleton(skeleton)
        second = writer.write_skeleton(skeleton)

        assert first and set(first) <= set(skeleton.directories)
        assert second == []
        assert all((tmp_path / "out" / d).is_dir() for d in skeleton.directories)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_merge_writes_last_entry(self, tmp_path: Path):
        writer = FilesystemWriter(tmp_path, max_parallel_writes=2)
        outcome = await writer.merge(
            [_file("internal/domain/order.go", "old"), _file("go.mod", "m"), _file("internal/domain/order.go", "new")]
        )

        assert outcome.paths == ["internal/domain/order.go", "go.mod"]
        assert outcome.overridden == 1
        assert outcome.issues == []
        assert (tmp_path / "internal/domain/order.go").read_text(encoding="utf-8") == "new"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_escaping_file_is_refused(self, tmp_path: Path):
        root = tmp_path / "project"
        writer = FilesystemWriter(root)
        outcome = await writer.merge([_file("../evil.go"), _file("ok.go")])

        assert outcome.paths == ["ok.go"]
        assert len(outcome.issues) == 1
        assert outcome.issues[0].rule == "filesystem"
        assert outcome.issues[0].file == "../evil.go"
        assert not (tmp_path / "evil.go").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_write_error_becomes_issue(self, tmp_path: Path):
        (tmp_path / "blocker").write_text("", encoding="utf-8")
        writer = FilesystemWriter(tmp_path)
        outcome = await writer.merge([_file("blocker/child.go"), _file("fine.go")])

        assert outcome.paths == ["fine.go"]
        assert outcome.issues[0].message.startswith("could not write file")
