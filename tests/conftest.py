"""Shared pytest fixtures for the goforge test suite.

Provides reusable fixtures for:
- Sample specifications (as mappings, models and files on disk)
- A template cache backed by the built-in templates
- A fake compiler that records its calls instead of running ``go``
- Mock subprocess helpers for toolchain tests
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from goforge.build.results import BuildResult, BuildStatus, Severity, ValidationIssue
from goforge.config import Config, PipelineConfig
from goforge.spec.models import ProjectSpec
from goforge.templating.cache import TemplateCache
from goforge.templating.store import BuiltinTemplateStore


# ---------------------------------------------------------------------------
# Specifications
# ---------------------------------------------------------------------------

@pytest.fixture
def shop_spec_data() -> dict[str, Any]:
    """A two-entity shop: customers own orders, orders carry a decimal total."""
    return {
        "name": "Shop",
        "module": "github.com/acme/shop",
        "archetype": "microservice",
        "description": "Order management service",
        "entities": [
            {
                "name": "Customer",
                "description": "A person who places orders.",
                "fields": [
                    {"name": "email", "type": "email", "required": True, "unique": True},
                    {"name": "name", "type": "string", "required": True, "min": 1, "max": 120},
                    {"name": "phone", "type": "phone"},
                ],
                "relationships": [
                    {
                        "name": "orders",
                        "cardinality": "one_to_many",
                        "target": "Order",
                        "foreign_key": "customer_id",
                        "on_delete": "cascade",
                    }
                ],
            },
            {
                "name": "Order",
                "fields": [
                    {"name": "customer_id", "type": "id", "required": True, "reference": "Customer"},
                    {"name": "total_amount", "type": "decimal", "required": True, "validation": ["min:0"]},
                    {"name": "status", "type": "string", "enum": ["pending", "paid", "shipped"], "default": "pending"},
                    {"name": "placed_at", "type": "timestamp"},
                ],
                "indexes": [{"name": "idx_orders_status", "kind": "hash", "fields": ["status"]}],
            },
        ],
    }


@pytest.fixture
def shop_spec(shop_spec_data: dict[str, Any]) -> ProjectSpec:
    return ProjectSpec.model_validate(shop_spec_data)


@pytest.fixture
def shop_spec_file(tmp_path: Path, shop_spec_data: dict[str, Any]) -> Path:
    """The shop specification written as JSON."""
    path = tmp_path / "shop.json"
    path.write_text(json.dumps(shop_spec_data, indent=2), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

@pytest.fixture
def builtin_cache() -> TemplateCache:
    """A fresh template cache over the bundled templates."""
    return TemplateCache(BuiltinTemplateStore())


# ---------------------------------------------------------------------------
# Fake compiler
# ---------------------------------------------------------------------------

class FakeCompiler:
    """Records compile/build calls and answers with a canned result.

    Args:
        status: Status every call reports.
        issues: Diagnostics attached to the result.
        raises: Exception raised instead of returning a result.
    """

    def __init__(
        self,
        status: BuildStatus = BuildStatus.SUCCEEDED,
        issues: Optional[list[ValidationIssue]] = None,
        raises: Optional[Exception] = None,
    ) -> None:
        self.status = status
        self.issues = issues or []
        self.raises = raises
        self.calls: list[tuple[str, Path, dict[str, Any]]] = []

    def _result(self, command: list[str]) -> BuildResult:
        if self.raises is not None:
            raise self.raises
        return BuildResult(
            status=self.status,
            command=command,
            exit_code=0 if self.status is BuildStatus.SUCCEEDED else 1,
            issues=self.issues,
        )

    async def compile(self, root: Path, *, cancel: Optional[asyncio.Event] = None) -> BuildResult:
        self.calls.append(("compile", Path(root), {"cancel": cancel}))
        return self._result(["go", "build", "./..."])

    async def build(
        self,
        root: Path,
        output: Path,
        *,
        target: str = "./...",
        cancel: Optional[asyncio.Event] = None,
    ) -> BuildResult:
        self.calls.append(("build", Path(root), {"output": Path(output), "target": target, "cancel": cancel}))
        result = self._result(["go", "build", "-o", str(output), target])
        if result.success:
            return result.model_copy(update={"artifact": str(output)})
        return result


class ToolingCompiler(FakeCompiler):
    """FakeCompiler that also formats and tidies.

    Args:
        reformatted: Paths the formatter reports as rewritten.
        format_result: Result returned by ``format`` instead of a success.
        format_raises: Exception ``format`` raises instead.
        tidy_status: Status ``tidy`` reports.
    """

    def __init__(
        self,
        *,
        reformatted: Optional[list[str]] = None,
        format_result: Optional[BuildResult] = None,
        format_raises: Optional[Exception] = None,
        tidy_status: BuildStatus = BuildStatus.SUCCEEDED,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.reformatted = reformatted or []
        self.format_result = format_result
        self.format_raises = format_raises
        self.tidy_status = tidy_status

    async def format(
        self, root: Path, files: list[str], *, cancel: Optional[asyncio.Event] = None
    ) -> BuildResult:
        self.calls.append(("format", Path(root), {"files": list(files), "cancel": cancel}))
        if self.format_raises is not None:
            raise self.format_raises
        if self.format_result is not None:
            return self.format_result
        return BuildResult(
            status=BuildStatus.SUCCEEDED,
            command=["gofmt", "-l", "-w", *files],
            exit_code=0,
            stdout="".join(f"{path}\n" for path in self.reformatted),
        )

    async def tidy(self, root: Path, *, cancel: Optional[asyncio.Event] = None) -> BuildResult:
        self.calls.append(("tidy", Path(root), {"cancel": cancel}))
        failed = self.tidy_status is not BuildStatus.SUCCEEDED
        return BuildResult(
            status=self.tidy_status,
            command=["go", "mod", "tidy"],
            exit_code=1 if failed else 0,
            stderr="go: updates to go.mod needed\n" if failed else "",
        )


@pytest.fixture
def make_compiler() -> type[FakeCompiler]:
    """The FakeCompiler class, for tests that need a custom one."""
    return FakeCompiler


@pytest.fixture
def fake_compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def make_tooling_compiler() -> type[ToolingCompiler]:
    """The ToolingCompiler class: a fake that also formats and tidies."""
    return ToolingCompiler


@pytest.fixture
def failing_compiler() -> FakeCompiler:
    return FakeCompiler(
        status=BuildStatus.FAILED,
        issues=[
            ValidationIssue(
                file="internal/domain/order.go",
                line=3,
                column=2,
                severity=Severity.ERROR,
                message="undefined: big",
                rule="go-build",
            )
        ],
    )


@pytest.fixture
def offline_config(tmp_path: Path) -> Config:
    """Configuration that writes under tmp_path and checks syntax."""
    return Config(output_dir=tmp_path / "out", pipeline=PipelineConfig(max_parallel_writes=4))


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for toolchain tests.

    Returns a factory that creates mock processes with configurable output
    and return code.  ``hang=True`` produces a process whose
    ``communicate()`` only returns after ``kill()`` or ``terminate()``.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stderr="x.go:1:1: boom", returncode=1)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
        hang: bool = False,
    ) -> AsyncMock:
        released = asyncio.Event()
        if not hang:
            released.set()

        async def communicate() -> tuple[bytes, bytes]:
            await released.wait()
            return stdout.encode("utf-8"), stderr.encode("utf-8")

        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(side_effect=communicate)
        mock_proc.returncode = None if hang else returncode
        mock_proc.pid = 99999

        def stopper(code: int):
            def stop() -> None:
                mock_proc.returncode = code
                released.set()
            return stop

        mock_proc.kill = MagicMock(side_effect=stopper(-9))
        mock_proc.terminate = MagicMock(side_effect=stopper(-15))
        return mock_proc

    return factory
