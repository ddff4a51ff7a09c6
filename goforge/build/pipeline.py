"""Build & validation state machine.

One :class:`BuildPipeline` run moves a single request through

    skeleton_written -> files_merged -> syntax_checked -> compiled -> reported

Stages only move forward.  Validation issues and build failures are
collected into the report rather than raised, so a request can partially
succeed.  The cancel event is checked between stages; once it is set the
remaining stages are recorded as cancelled and the run still reaches
``reported``.  The pipeline never retries; that is the caller's decision.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from goforge.build.compiler import Compiler, Formatter, ModuleTidier, ToolchainError
from goforge.build.results import (
    BuildResult,
    BuildStatus,
    GenerationReport,
    Severity,
    Stage,
    StageRecord,
    ValidationIssue,
)
from goforge.build.syntax import SyntaxChecker
from goforge.build.writer import FilesystemWriter
from goforge.generator.accumulator import CodeAccumulator, GeneratedFile
from goforge.scaffold.layout import inspect_layout
from goforge.utils import console, format_duration, print_error, print_stage_header, print_warning

if TYPE_CHECKING:
    from goforge.scaffold.synthesizer import ProjectSkeleton

_ORDER = list(Stage)

_STAGE_TITLES = {
    Stage.SKELETON_WRITTEN: "Writing skeleton",
    Stage.FILES_MERGED: "Merging generated files",
    Stage.SYNTAX_CHECKED: "Checking syntax",
    Stage.COMPILED: "Compiling",
    Stage.REPORTED: "Reporting",
}


class PipelineError(Exception):
    """Raised when a stage fails in a way the report cannot absorb."""

    def __init__(self, stage: Stage | str, message: str) -> None:
        self.stage = stage
        name = stage.value if isinstance(stage, Stage) else stage
        super().__init__(f"{name}: {message}")


class BuildPipeline:
    """Writes, checks and compiles one generated project.

    Args:
        root: Output root the project is written under.
        compiler: Toolchain used in the compile stage; ``None`` skips it.
            When it also implements :class:`Formatter` or
            :class:`ModuleTidier` those steps run too.
        checker: Syntax checker registry; a default one when omitted.
        syntax_check: Run the syntax stage.
        format_code: Run the formatter over the merged Go files.
        tidy_modules: Tidy ``go.mod`` before compiling.
        compile: Run the compile stage.
        produce_binary: Use build-with-output instead of build/check.
        binary_path: Where build-with-output writes the binary.
        build_target: Package pattern for build-with-output.
        max_parallel_writes: Bound on concurrent file writes.
        cancel: Set to stop the run; checked between stages and watched
            while the toolchain runs.
    """

    def __init__(
        self,
        root: str | Path,
        compiler: Optional[Compiler] = None,
        checker: Optional[SyntaxChecker] = None,
        *,
        syntax_check: bool = True,
        format_code: bool = True,
        tidy_modules: bool = False,
        compile: bool = True,
        produce_binary: bool = False,
        binary_path: Optional[Path] = None,
        build_target: str = "./...",
        max_parallel_writes: int = 8,
        cancel: Optional[asyncio.Event] = None,
    ) -> None:
        self.root = Path(root)
        self.compiler = compiler
        self.checker = checker if checker is not None else SyntaxChecker()
        self.syntax_check = syntax_check
        self.format_code = format_code
        self.tidy_modules = tidy_modules
        self.compile = compile
        self.produce_binary = produce_binary
        self.binary_path = binary_path or self.root / "bin" / "app"
        self.build_target = build_target
        self.writer = FilesystemWriter(self.root, max_parallel_writes)
        self.cancel = cancel if cancel is not None else asyncio.Event()
        self.stage: Stage | None = None
        self.cancelled_after: Stage | None = None

    # -- State machine -------------------------------------------------------

    def _enter(self, stage: Stage) -> float:
        position = 0 if self.stage is None else _ORDER.index(self.stage) + 1
        if position == len(_ORDER):
            raise PipelineError(stage, "run already reported")
        expected = _ORDER[position]
        if stage is not expected:
            raise PipelineError(stage, f"cannot enter before {expected.value}")
        print_stage_header(stage.value, _STAGE_TITLES[stage])
        return time.monotonic()

    def _leave(self, report: GenerationReport, stage: Stage, started: float, detail: str) -> None:
        self.stage = stage
        elapsed = time.monotonic() - started
        report.stages.append(StageRecord(stage=stage, duration_seconds=elapsed, detail=detail))
        console.print(f"  [green]+[/green] {detail} [dim]({format_duration(elapsed)})[/dim]")
        if self.cancelled_after is None and stage is not Stage.REPORTED and self.cancel.is_set():
            self.cancelled_after = stage
            print_warning(f"  Cancelled after {stage.value}; remaining stages are skipped")

    @property
    def cancelled(self) -> bool:
        return self.cancelled_after is not None

    # -- Run -----------------------------------------------------------------

    async def run(self, skeleton: ProjectSkeleton, accumulator: CodeAccumulator) -> GenerationReport:
        """Drive *accumulator*'s files through every stage."""
        started_run = time.monotonic()
        report = GenerationReport(archetype=skeleton.archetype, output_dir=str(self.root))

        # skeleton_written
        started = self._enter(Stage.SKELETON_WRITTEN)
        try:
            created = self.writer.write_skeleton(skeleton)
        except OSError as exc:
            raise PipelineError(Stage.SKELETON_WRITTEN, f"cannot create {self.root}: {exc}") from exc
        self._leave(report, Stage.SKELETON_WRITTEN, started, f"{len(created)} new of {len(skeleton.directories)} directories")

        # files_merged
        started = self._enter(Stage.FILES_MERGED)
        written: list[GeneratedFile] = []
        if self.cancelled:
            detail = "cancelled"
        else:
            outcome = await self.writer.merge(accumulator.files())
            written = outcome.written
            report.generated_file_count = len(outcome.written)
            report.file_paths = outcome.paths
            report.validation_issues.extend(outcome.issues)
            for issue in outcome.issues:
                print_warning(f"  {issue}")
            report.layout = inspect_layout(self.root, skeleton.archetype).model_dump()
            detail = f"{len(outcome.written)} files written"
            if outcome.overridden:
                detail += f", {outcome.overridden} overridden by later entries"
        self._leave(report, Stage.FILES_MERGED, started, detail)

        # syntax_checked
        started = self._enter(Stage.SYNTAX_CHECKED)
        if self.cancelled:
            detail = "cancelled"
        else:
            if self.syntax_check:
                checked, issues = self.checker.check_files(written)
                report.validation_issues.extend(issues)
                for issue in issues:
                    print_error(f"  {issue}")
                detail = f"{checked} files checked, {len(issues)} issue(s)"
            else:
                detail = "skipped"
            formatted = await self._format(written, report)
            if formatted:
                detail += f"; {formatted}"
        self._leave(report, Stage.SYNTAX_CHECKED, started, detail)

        # compiled
        started = self._enter(Stage.COMPILED)
        report.build_result = await self._compile()
        self._leave(report, Stage.COMPILED, started, f"build {report.build_result.status.value}")

        # reported
        started = self._enter(Stage.REPORTED)
        report.duration_seconds = time.monotonic() - started_run
        errors = sum(1 for i in report.validation_issues if i.severity is Severity.ERROR)
        self._leave(report, Stage.REPORTED, started, f"{errors} error issue(s)")
        return report

    async def _format(self, written: list[GeneratedFile], report: GenerationReport) -> str:
        """Format the written Go files that passed the syntax check.

        Returns a short note for the stage detail, empty when nothing ran.
        """
        if not self.format_code or not isinstance(self.compiler, Formatter):
            return ""
        broken = {i.file for i in report.validation_issues if i.severity is Severity.ERROR}
        paths = [f.path for f in written if f.path.endswith(".go") and f.path not in broken]
        if not paths:
            return ""

        try:
            result = await self.compiler.format(self.root, paths, cancel=self.cancel)
        except ToolchainError as exc:
            issue = ValidationIssue(file=".", severity=Severity.WARNING, message=f"gofmt not run: {exc}", rule="gofmt")
            report.validation_issues.append(issue)
            print_warning(f"  {issue}")
            return "format unavailable"

        if result.status is BuildStatus.CANCELLED:
            return "format cancelled"
        if not result.success:
            issues = result.issues or [
                ValidationIssue(
                    file=".",
                    message=result.message or result.stderr.strip() or f"gofmt exited with {result.exit_code}",
                    rule="gofmt",
                )
            ]
            report.validation_issues.extend(issues)
            for issue in issues:
                print_error(f"  {issue}")
            return f"format failed with {len(issues)} issue(s)"

        reformatted = [line for line in result.stdout.splitlines() if line.strip()]
        return f"{len(reformatted)} reformatted"

    async def _compile(self) -> BuildResult:
        if self.cancelled or self.cancel.is_set():
            after = self.cancelled_after or Stage.SYNTAX_CHECKED
            return BuildResult(status=BuildStatus.CANCELLED, message=f"cancelled after {after.value}")
        if not self.compile:
            return BuildResult(status=BuildStatus.SKIPPED, message="compilation disabled")
        if self.compiler is None:
            return BuildResult(status=BuildStatus.SKIPPED, message="no compiler configured")

        try:
            if self.tidy_modules and isinstance(self.compiler, ModuleTidier):
                tidied = await self.compiler.tidy(self.root, cancel=self.cancel)
                if not tidied.success:
                    console.print(tidied.summary())
                    return tidied.model_copy(update={"message": tidied.message or "go mod tidy failed"})
            if self.produce_binary:
                result = await self.compiler.build(
                    self.root, self.binary_path, target=self.build_target, cancel=self.cancel
                )
            else:
                result = await self.compiler.compile(self.root, cancel=self.cancel)
        except ToolchainError as exc:
            print_warning(f"  {exc}")
            return BuildResult(status=BuildStatus.UNAVAILABLE, message=str(exc))

        console.print(result.summary())
        return result
