"""goforge generation pipeline orchestrator.

Turns one specification into a compiled Go project:

1. GENERATE  -- validate the specification, synthesize the archetype
   skeleton, dispatch entities into code elements and render them into a
   per-request accumulator.
2. BUILD     -- write the skeleton and the accumulated files, check their
   syntax, compile with the Go toolchain and report.

Specification problems (including a missing required template parameter)
abort the request before anything is written.  Everything after that is
reported, not raised.

Usage::

    python -m goforge.pipeline shop.yaml --output ./shop
    python -m goforge.pipeline shop.yaml -o ./shop --archetype api --skip-compile
"""

from __future__ import annotations

import asyncio
import sys
import time
from pathlib import Path
from typing import Optional

from rich.panel import Panel

from goforge.build.compiler import Compiler, GoToolchain
from goforge.build.pipeline import BuildPipeline
from goforge.build.results import BuildStatus, GenerationReport
from goforge.config import Config
from goforge.generator.accumulator import CodeAccumulator
from goforge.generator.dispatch import ElementDispatcher
from goforge.generator.renderer import ElementRenderer
from goforge.scaffold.synthesizer import synthesize
from goforge.spec.errors import SpecificationError
from goforge.spec.loader import load_specification
from goforge.spec.models import ProjectSpec
from goforge.spec.validation import validate_specification
from goforge.templating.cache import TemplateCache
from goforge.templating.engine import TemplateEngine
from goforge.templating.store import BuiltinTemplateStore, HttpTemplateStore, TemplateStore
from goforge.utils import (
    console,
    format_bytes,
    format_duration,
    print_error,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
)


def create_template_store(config: Config) -> TemplateStore:
    """The HTTP store when a URL is configured, else the built-in templates."""
    if config.templates.url:
        return HttpTemplateStore(config.templates.url, timeout=config.templates.timeout)
    return BuiltinTemplateStore()


class GenerationPipeline:
    """Runs generation requests.

    One instance may serve many requests; each request gets its own
    accumulator, skeleton and build pipeline.  The template cache is shared
    between requests.

    Attributes:
        config: Global configuration.
        compiler: Toolchain for the compile stage.
        cache: Template cache shared by every request of this instance.
    """

    def __init__(
        self,
        config: Config | None = None,
        compiler: Optional[Compiler] = None,
        cache: Optional[TemplateCache] = None,
    ) -> None:
        self.config = config if config is not None else Config()
        self.compiler = compiler if compiler is not None else GoToolchain(
            go_binary=self.config.toolchain.go_binary,
            timeout=self.config.toolchain.build_timeout,
            env=self.config.toolchain.env,
            gofmt_binary=self.config.toolchain.gofmt_binary,
        )
        self.cache = cache if cache is not None else TemplateCache(create_template_store(self.config))
        self.engine = TemplateEngine()

    def output_root(self, spec: ProjectSpec) -> Path:
        return Path(spec.output_path) if spec.output_path else self.config.output_dir

    async def run(
        self,
        specification: ProjectSpec | str | Path,
        cancel: Optional[asyncio.Event] = None,
    ) -> GenerationReport:
        """Generate, write, check and compile one project.

        Raises:
            SpecificationError: Before any file is written, for an invalid
                specification, an unknown archetype or a template whose
                parameters do not bind.
        """
        start = time.monotonic()
        spec = specification if isinstance(specification, ProjectSpec) else load_specification(specification)
        root = self.output_root(spec)

        console.print(
            Panel(
                f"[bold bright_cyan]goforge[/bold bright_cyan]\n"
                f"Project   : {spec.name}\n"
                f"Module    : {spec.module_name}\n"
                f"Archetype : {spec.archetype}\n"
                f"Entities  : {len(spec.entities)}\n"
                f"Output    : {root.resolve()}",
                title="[bold]Generation Start[/bold]",
                border_style="bright_cyan",
            )
        )

        # -- generate ------------------------------------------------------
        print_stage_header("generate", "Generating code")
        validate_specification(spec)
        skeleton = synthesize(
            spec.archetype,
            spec.module_name,
            root=root,
            project_name=spec.name,
            description=spec.description,
            go_version=self.config.toolchain.go_version,
            engine=self.engine,
        )
        dispatched = ElementDispatcher(spec, skeleton).dispatch_all()
        for warning in dispatched.warnings:
            print_warning(f"  {warning}")

        accumulator = CodeAccumulator(
            {"project": spec.name, "module": spec.module_name, "archetype": skeleton.archetype}
        )
        accumulator.extend(list(skeleton.files))
        renderer = ElementRenderer(self.engine, self.cache, spec.module_name)
        await renderer.render_all(dispatched.elements, accumulator)
        console.print(
            f"  [green]+[/green] {len(dispatched.elements)} elements rendered; "
            f"accumulator holds {accumulator.summary()}"
        )

        # -- build ---------------------------------------------------------
        build = BuildPipeline(
            root,
            compiler=self.compiler,
            syntax_check=self.config.pipeline.syntax_check,
            format_code=self.config.pipeline.format_code,
            tidy_modules=self.config.pipeline.tidy_modules,
            compile=self.config.pipeline.compile,
            produce_binary=self.config.pipeline.produce_binary,
            binary_path=self.config.binary_path(root),
            build_target=f"./{skeleton.entrypoint}" if skeleton.entrypoint else "./...",
            max_parallel_writes=self.config.pipeline.max_parallel_writes,
            cancel=cancel,
        )
        report = await build.run(skeleton, accumulator)
        report.project = spec.name
        report.mapping_warnings = [str(w) for w in dispatched.warnings]
        report.duration_seconds = time.monotonic() - start

        report_path = report.save(self.config.report_path(root))
        self._print_report(report, accumulator, report_path)
        return report

    def _print_report(self, report: GenerationReport, accumulator: CodeAccumulator, report_path: Path) -> None:
        build = report.build_result
        print_summary_table(
            {
                "Files written": str(report.generated_file_count),
                "Total size": format_bytes(accumulator.total_size),
                "Validation issues": str(len(report.validation_issues)),
                "Mapping warnings": str(len(report.mapping_warnings)),
                "Build": build.status.value if build else "not run",
                "Duration": format_duration(report.duration_seconds),
                "Report": str(report_path),
            },
            title="Generation Report",
        )
        if report.success:
            print_success(report.summary_text())
        else:
            print_error(report.summary_text())


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """CLI entry point for ``python -m goforge.pipeline``."""
    import argparse

    parser = argparse.ArgumentParser(
        description="goforge -- generate and build a Go project from an entity specification",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m goforge.pipeline shop.yaml\n"
            "  python -m goforge.pipeline shop.yaml -o ./shop --archetype api\n"
            "  python -m goforge.pipeline shop.json --module github.com/acme/shop --binary\n"
        ),
    )
    parser.add_argument("specification", help="Path to the .json / .yaml specification")
    parser.add_argument("--output", "-o", default=None, help="Output directory (default: ./output)")
    parser.add_argument("--archetype", default=None, help="Override the specification's archetype")
    parser.add_argument("--module", default=None, help="Override the Go module path")
    parser.add_argument("--config", default=None, help="Path to a saved goforge JSON configuration")
    parser.add_argument("--skip-compile", action="store_true", help="Write and check files but do not run go build")
    parser.add_argument("--binary", action="store_true", help="Produce a binary (go build -o) instead of only checking")
    parser.add_argument("--skip-format", action="store_true", help="Do not run gofmt over the generated files")
    parser.add_argument("--tidy", action="store_true", help="Run go mod tidy before compiling")

    args = parser.parse_args()

    spec_path = Path(args.specification)
    if not spec_path.exists():
        console.print(f"[bold red]Error:[/bold red] Specification file not found: {spec_path}")
        sys.exit(1)

    config = Config.load(Path(args.config)) if args.config else Config.from_env()
    if args.output:
        config.output_dir = Path(args.output)
    if args.skip_compile:
        config.pipeline.compile = False
    if args.binary:
        config.pipeline.produce_binary = True
    if args.skip_format:
        config.pipeline.format_code = False
    if args.tidy:
        config.pipeline.tidy_modules = True

    try:
        spec = load_specification(spec_path)
        overrides = {}
        if args.archetype:
            overrides["archetype"] = args.archetype
        if args.module:
            overrides["module"] = args.module
        if args.output:
            overrides["output_path"] = args.output
        if overrides:
            spec = spec.model_copy(update=overrides)
        report = asyncio.run(GenerationPipeline(config).run(spec))
    except SpecificationError as exc:
        print_error(f"Specification error: {exc}")
        for problem in exc.errors:
            console.print(f"  [red]-[/red] {problem}")
        sys.exit(2)

    if report.success:
        console.print("[bold green]Generation completed successfully![/bold green]")
    elif report.build_result is not None and report.build_result.status is BuildStatus.UNAVAILABLE:
        console.print("[bold yellow]Files generated; the Go toolchain was unavailable.[/bold yellow]")
        sys.exit(1)
    else:
        console.print("[bold red]Generation finished with errors.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
