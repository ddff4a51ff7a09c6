"""goforge build & validation pipeline.

Writes a generated project to disk, checks every file it recognises and
invokes the Go toolchain, collecting everything into a
:class:`GenerationReport`.

Quick usage::

    from goforge.build import BuildPipeline, GoToolchain

    pipeline = BuildPipeline("./out", compiler=GoToolchain(timeout=120))
    report = await pipeline.run(skeleton, accumulator)
    report.build_result.success
"""

from goforge.build.results import (
    BuildResult,
    BuildStatus,
    GenerationReport,
    Severity,
    Stage,
    StageRecord,
    ValidationIssue,
)
from goforge.build.compiler import Compiler, GoToolchain, ToolchainError, parse_diagnostics
from goforge.build.syntax import GoSyntaxError, SyntaxChecker, parse_go, parse_structs, struct_fields
from goforge.build.writer import FilesystemWriter, MergeOutcome, resolve_collisions
from goforge.build.pipeline import BuildPipeline, PipelineError

__all__ = [
    "BuildPipeline",
    "BuildResult",
    "BuildStatus",
    "Compiler",
    "FilesystemWriter",
    "GenerationReport",
    "GoSyntaxError",
    "GoToolchain",
    "MergeOutcome",
    "PipelineError",
    "Severity",
    "Stage",
    "StageRecord",
    "SyntaxChecker",
    "ToolchainError",
    "ValidationIssue",
    "parse_diagnostics",
    "parse_go",
    "parse_structs",
    "resolve_collisions",
    "struct_fields",
]
