"""Inspect an on-disk project against the archetype table.

Detects which archetype a directory tree most resembles and reports what
is missing from it.  Used after the files are merged to flag skeletons
that were only partially written.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from goforge.scaffold.archetypes import ARCHETYPES

_REQUIRED_FILES = ("go.mod", "README.md", "Makefile", ".gitignore")


class LayoutReport(BaseModel):
    """What an on-disk project has and lacks relative to its archetype."""

    detected_archetype: str | None = Field(default=None)
    score: float = Field(default=0.0, ge=0.0, le=1.0, description="Share of archetype directories present")
    missing_directories: list[str] = Field(default_factory=list)
    missing_files: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.missing_directories and not self.missing_files


def _directory_score(root: Path, directories: tuple[str, ...]) -> tuple[float, list[str]]:
    concrete = [d for d in directories if "{{" not in d]
    if not concrete:
        return 0.0, []
    missing = [d for d in concrete if not (root / d).is_dir()]
    return (len(concrete) - len(missing)) / len(concrete), missing


def inspect_layout(root: str | Path, archetype: str | None = None) -> LayoutReport:
    """Compare the tree at *root* with *archetype* (detected when omitted)."""
    root_path = Path(root)
    report = LayoutReport()
    if not root_path.is_dir():
        report.recommendations.append(f"{root_path} does not exist")
        return report

    candidates = [archetype] if archetype in ARCHETYPES else list(ARCHETYPES)
    best: tuple[float, str, list[str]] | None = None
    for name in candidates:
        score, missing = _directory_score(root_path, ARCHETYPES[name].directories)
        if best is None or score > best[0]:
            best = (score, name, missing)

    if best is not None and (archetype in ARCHETYPES or best[0] >= 0.5):
        report.score, report.detected_archetype, report.missing_directories = best

    report.missing_files = [f for f in _REQUIRED_FILES if not (root_path / f).is_file()]

    detected = ARCHETYPES.get(report.detected_archetype or "")
    if detected is not None and detected.entrypoint and not (root_path / "Dockerfile").is_file():
        if detected.name != "cli":
            report.recommendations.append("add a Dockerfile for container builds")
    if not any(root_path.rglob("*_test.go")):
        report.recommendations.append("add _test.go files alongside generated packages")
    if "go.mod" in report.missing_files:
        report.recommendations.append("run `go mod init` so the toolchain can resolve packages")
    return report
