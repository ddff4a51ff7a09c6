"""goforge configuration.

Centralised, typed configuration for the generation pipeline. All settings
use Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class ToolchainConfig(BaseModel):
    """How the host Go toolchain is located and invoked."""

    go_binary: str = Field(default="go")
    gofmt_binary: str = Field(default="gofmt")
    go_version: str = Field(default="1.22", description="Version written to the go directive of go.mod")
    build_timeout: float = Field(default=300.0, ge=1, description="Per-invocation timeout in seconds")
    env: dict[str, str] = Field(
        default_factory=lambda: {"GOTOOLCHAIN": "local", "GOFLAGS": "-mod=mod"},
        description="Extra environment merged over os.environ for toolchain processes",
    )


class TemplateStoreConfig(BaseModel):
    """Where rendering templates come from."""

    url: str = Field(default="", description="Base URL of a remote template store; empty uses built-ins")
    timeout: float = Field(default=10.0, ge=1, description="Per-request timeout in seconds")


class PipelineConfig(BaseModel):
    """Tuning knobs for the build & validation pipeline."""

    syntax_check: bool = Field(default=True)
    format_code: bool = Field(default=True, description="Run gofmt over the merged Go files")
    tidy_modules: bool = Field(default=False, description="Run go mod tidy before compiling")
    compile: bool = Field(default=True)
    produce_binary: bool = Field(default=False, description="Run build-with-output instead of build/check")
    binary_name: str = Field(default="app")
    max_parallel_writes: int = Field(default=8, ge=1, description="Maximum concurrent file writes")


class Config(BaseModel):
    """Global goforge configuration.

    Instances are typically created once by the CLI entry point (or by
    ``Config.from_env``) and then passed to ``GenerationPipeline``.
    """

    output_dir: Path = Field(default=Path("./output"))
    report_name: str = Field(default="goforge-report.json")
    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    templates: TemplateStoreConfig = Field(default_factory=TemplateStoreConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    def report_path(self, root: Path | None = None) -> Path:
        """Path of the JSON generation report for a project written to *root*.

        *root* defaults to ``output_dir``; pass the specification's own
        output path when it overrides the configured one.
        """
        return (root if root is not None else self.output_dir) / self.report_name

    def binary_path(self, root: Path | None = None) -> Path:
        """Path of the binary build-with-output writes under *root*."""
        return (root if root is not None else self.output_dir) / "bin" / self.pipeline.binary_name

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to ``<output_dir>/goforge.json``.

        Returns:
            The resolved path where the file was written.
        """
        target = path or (self.output_dir / "goforge.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            GOFORGE_OUTPUT_DIR, GOFORGE_GO_BINARY, GOFORGE_GO_VERSION,
            GOFORGE_BUILD_TIMEOUT, GOFORGE_TEMPLATE_STORE_URL,
            GOFORGE_TEMPLATE_STORE_TIMEOUT, GOFORGE_SKIP_COMPILE,
            GOFORGE_MAX_PARALLEL_WRITES, GOFORGE_GOFMT_BINARY,
            GOFORGE_SKIP_FORMAT, GOFORGE_TIDY.
        """
        toolchain_kwargs: dict[str, Any] = {}
        if os.environ.get("GOFORGE_GO_BINARY"):
            toolchain_kwargs["go_binary"] = os.environ["GOFORGE_GO_BINARY"]
        if os.environ.get("GOFORGE_GOFMT_BINARY"):
            toolchain_kwargs["gofmt_binary"] = os.environ["GOFORGE_GOFMT_BINARY"]
        if os.environ.get("GOFORGE_GO_VERSION"):
            toolchain_kwargs["go_version"] = os.environ["GOFORGE_GO_VERSION"]
        if os.environ.get("GOFORGE_BUILD_TIMEOUT"):
            toolchain_kwargs["build_timeout"] = float(os.environ["GOFORGE_BUILD_TIMEOUT"])

        template_kwargs: dict[str, Any] = {}
        if os.environ.get("GOFORGE_TEMPLATE_STORE_URL"):
            template_kwargs["url"] = os.environ["GOFORGE_TEMPLATE_STORE_URL"]
        if os.environ.get("GOFORGE_TEMPLATE_STORE_TIMEOUT"):
            template_kwargs["timeout"] = float(os.environ["GOFORGE_TEMPLATE_STORE_TIMEOUT"])

        pipeline_kwargs: dict[str, Any] = {}
        if os.environ.get("GOFORGE_SKIP_COMPILE", "").lower() in ("1", "true", "yes"):
            pipeline_kwargs["compile"] = False
        if os.environ.get("GOFORGE_SKIP_FORMAT", "").lower() in ("1", "true", "yes"):
            pipeline_kwargs["format_code"] = False
        if os.environ.get("GOFORGE_TIDY", "").lower() in ("1", "true", "yes"):
            pipeline_kwargs["tidy_modules"] = True
        if os.environ.get("GOFORGE_MAX_PARALLEL_WRITES"):
            pipeline_kwargs["max_parallel_writes"] = int(os.environ["GOFORGE_MAX_PARALLEL_WRITES"])

        return cls(
            output_dir=Path(os.environ.get("GOFORGE_OUTPUT_DIR", "./output")),
            toolchain=ToolchainConfig(**toolchain_kwargs),
            templates=TemplateStoreConfig(**template_kwargs),
            pipeline=PipelineConfig(**pipeline_kwargs),
        )
