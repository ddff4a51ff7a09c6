"""Build and validation result models.

Pydantic v2 models for everything the build pipeline reports: per-file
validation issues, the outcome of one toolchain invocation, and the final
generation report returned to the caller.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from goforge.utils import format_duration, write_text_file


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class BuildStatus(str, Enum):
    """How a compile attempt ended.

    ``timed_out`` and ``cancelled`` are distinct from ``failed`` so callers
    can tell a slow or aborted build from a broken one.
    """

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    UNAVAILABLE = "unavailable"
    SKIPPED = "skipped"


class Stage(str, Enum):
    """Build pipeline stages, in the order they are reached."""

    SKELETON_WRITTEN = "skeleton_written"
    FILES_MERGED = "files_merged"
    SYNTAX_CHECKED = "syntax_checked"
    COMPILED = "compiled"
    REPORTED = "reported"


# ---------------------------------------------------------------------------
# Validation issue
# ---------------------------------------------------------------------------


class ValidationIssue(BaseModel):
    """One problem found in one file, by the syntax checker or the compiler."""

    file: str = Field(..., description="Project-relative path")
    line: Optional[int] = Field(default=None, ge=1)
    column: Optional[int] = Field(default=None, ge=1)
    severity: Severity = Field(default=Severity.ERROR)
    message: str = Field(...)
    rule: str = Field(default="", description="Checker that raised the issue, e.g. 'go-syntax'")

    def __str__(self) -> str:
        where = self.file
        if self.line is not None:
            where += f":{self.line}"
            if self.column is not None:
                where += f":{self.column}"
        return f"{where}: {self.severity.value}: {self.message}"


# ---------------------------------------------------------------------------
# Build result
# ---------------------------------------------------------------------------


class BuildResult(BaseModel):
    """Outcome of one toolchain invocation.  Immutable once produced."""

    model_config = {"frozen": True}

    status: BuildStatus
    command: list[str] = Field(default_factory=list)
    exit_code: Optional[int] = Field(default=None)
    stdout: str = Field(default="")
    stderr: str = Field(default="")
    duration_seconds: float = Field(default=0.0, ge=0.0)
    issues: list[ValidationIssue] = Field(default_factory=list)
    artifact: Optional[str] = Field(default=None, description="Binary path for build-with-output")
    message: str = Field(default="")

    @computed_field  # type: ignore[misc]
    @property
    def success(self) -> bool:
        return self.status is BuildStatus.SUCCEEDED

    def summary(self) -> str:
        """Return a human-readable summary of the result."""
        colour = "green" if self.success else ("yellow" if self.status is BuildStatus.SKIPPED else "red")
        lines = [
            f"Status: [{colour}]{self.status.value.upper()}[/{colour}]",
            f"Duration: {format_duration(self.duration_seconds)}",
        ]
        if self.exit_code is not None:
            lines.append(f"Exit code: {self.exit_code}")
        if self.message:
            lines.append(self.message)
        for issue in self.issues[:10]:
            lines.append(f"  - {issue}")
        if len(self.issues) > 10:
            lines.append(f"  ... and {len(self.issues) - 10} more")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


class StageRecord(BaseModel):
    stage: Stage
    duration_seconds: float = Field(default=0.0, ge=0.0)
    detail: str = Field(default="")


class GenerationReport(BaseModel):
    """Result payload of one generation request."""

    project: str = Field(default="")
    archetype: str = Field(default="")
    output_dir: str = Field(default="")
    generated_file_count: int = Field(default=0, ge=0)
    file_paths: list[str] = Field(default_factory=list)
    validation_issues: list[ValidationIssue] = Field(default_factory=list)
    mapping_warnings: list[str] = Field(default_factory=list)
    build_result: Optional[BuildResult] = Field(default=None)
    stages: list[StageRecord] = Field(default_factory=list)
    layout: dict = Field(default_factory=dict, description="LayoutReport of the written tree")
    duration_seconds: float = Field(default=0.0, ge=0.0)
    finished_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @computed_field  # type: ignore[misc]
    @property
    def success(self) -> bool:
        """True when nothing failed: no error issues and a passing or skipped build."""
        if any(i.severity is Severity.ERROR for i in self.validation_issues):
            return False
        if self.build_result is None:
            return True
        return self.build_result.status in (BuildStatus.SUCCEEDED, BuildStatus.SKIPPED)

    def reached(self, stage: Stage) -> bool:
        return any(record.stage is stage for record in self.stages)

    def save(self, path: str | Path) -> Path:
        """Write the report as JSON and return the path."""
        target = Path(path)
        write_text_file(target, self.model_dump_json(indent=2))
        return target

    def summary_text(self) -> str:
        status = "SUCCEEDED" if self.success else "FAILED"
        build = self.build_result.status.value if self.build_result else "not run"
        return (
            f"{status}: {self.generated_file_count} files, "
            f"{len(self.validation_issues)} issue(s), "
            f"{len(self.mapping_warnings)} warning(s), build {build}, "
            f"{format_duration(self.duration_seconds)}"
        )
