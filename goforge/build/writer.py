"""Filesystem writer for skeletons and generated files.

Writes stay inside the output root.  Colliding paths are resolved before
any write starts (the last entry in accumulator order wins), so the
concurrent writes that follow never target the same file twice.
"""

from __future__ import annotations

import asyncio
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from goforge.build.results import Severity, ValidationIssue
from goforge.generator.accumulator import GeneratedFile
from goforge.utils import console, is_within, write_text_file

if TYPE_CHECKING:
    from goforge.scaffold.synthesizer import ProjectSkeleton


@dataclass
class MergeOutcome:
    """Which files reached disk and which were refused."""

    written: list[GeneratedFile] = field(default_factory=list)
    issues: list[ValidationIssue] = field(default_factory=list)
    overridden: int = 0

    @property
    def paths(self) -> list[str]:
        return [f.path for f in self.written]


def normalize_path(path: str) -> str:
    """Collapse ``./`` and ``a/../`` segments; keep leading ``..`` and ``/``."""
    return posixpath.normpath(path.replace("\\", "/"))


def resolve_collisions(files: Iterable[GeneratedFile]) -> tuple[list[GeneratedFile], int]:
    """Keep the last file per path, in order of first appearance.

    Returns the surviving files and how many entries were overridden.
    """
    latest: dict[str, GeneratedFile] = {}
    overridden = 0
    for f in files:
        key = normalize_path(f.path)
        if key in latest:
            overridden += 1
        latest[key] = f
    return list(latest.values()), overridden


class FilesystemWriter:
    """Writes one project tree under *root*.

    Args:
        root: Output root; nothing is written outside it.
        max_parallel_writes: Upper bound on concurrent file writes.
    """

    def __init__(self, root: str | Path, max_parallel_writes: int = 8) -> None:
        self.root = Path(root)
        self.max_parallel_writes = max(1, max_parallel_writes)

    def target_for(self, path: str) -> Path | None:
        """Absolute target for a project-relative *path*, or ``None`` if it escapes."""
        relative = normalize_path(path)
        if relative.startswith("/") or relative == ".." or relative.startswith("../"):
            return None
        target = self.root / relative
        return target if is_within(self.root, target) else None

    def write_skeleton(self, skeleton: ProjectSkeleton) -> list[str]:
        """Create the root and every skeleton directory.

        Idempotent: existing directories are left alone.  Returns the
        directories that did not exist before.
        """
        created: list[str] = []
        self.root.mkdir(parents=True, exist_ok=True)
        for directory in skeleton.directories:
            target = self.target_for(directory)
            if target is None:
                console.print(f"  [yellow]skipped directory outside the output root: {directory}[/yellow]")
                continue
            if not target.is_dir():
                created.append(directory)
            target.mkdir(parents=True, exist_ok=True)
        return created

    async def merge(self, files: Iterable[GeneratedFile]) -> MergeOutcome:
        """Write *files* under the root; the last entry per path wins."""
        survivors, overridden = resolve_collisions(files)
        outcome = MergeOutcome(overridden=overridden)

        pending: list[tuple[GeneratedFile, Path]] = []
        for f in survivors:
            target = self.target_for(f.path)
            if target is None:
                outcome.issues.append(
                    ValidationIssue(
                        file=f.path,
                        severity=Severity.ERROR,
                        message="path escapes the output root; file not written",
                        rule="filesystem",
                    )
                )
                continue
            pending.append((f, target))

        semaphore = asyncio.Semaphore(self.max_parallel_writes)

        async def _write(f: GeneratedFile, target: Path) -> ValidationIssue | None:
            async with semaphore:
                try:
                    await asyncio.to_thread(write_text_file, target, f.content)
                except OSError as exc:
                    return ValidationIssue(
                        file=f.path,
                        severity=Severity.ERROR,
                        message=f"could not write file: {exc}",
                        rule="filesystem",
                    )
            return None

        results = await asyncio.gather(*(_write(f, target) for f, target in pending))
        for (f, _), issue in zip(pending, results):
            if issue is None:
                outcome.written.append(f)
            else:
                outcome.issues.append(issue)
        return outcome
