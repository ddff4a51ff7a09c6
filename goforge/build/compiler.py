"""Host toolchain invocation.

:class:`Compiler` is the narrow seam the build pipeline talks to; tests
substitute a fake.  :class:`GoToolchain` runs ``go build``, ``gofmt`` and
``go mod tidy`` as subprocesses with a timeout and an optional cancellation
event, captures stdout/stderr verbatim and parses
``file:line:col: message`` diagnostics.  A non-zero exit is a failed
:class:`BuildResult`, never an exception.  Formatting and tidying are
separate protocols; the build pipeline uses them only when the compiler
implements them.
"""

from __future__ import annotations

import asyncio
import os
import re
import time
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from goforge.build.results import BuildResult, BuildStatus, Severity, ValidationIssue
from goforge.utils import console


class ToolchainError(Exception):
    """Raised when the toolchain binary cannot be started at all."""

    def __init__(self, message: str, result: BuildResult | None = None) -> None:
        self.result = result
        super().__init__(message)


@runtime_checkable
class Compiler(Protocol):
    """Anything that can check and build a project tree."""

    async def compile(self, root: Path, *, cancel: Optional[asyncio.Event] = None) -> BuildResult:
        """Build/check *root* without producing an artifact."""
        ...

    async def build(
        self,
        root: Path,
        output: Path,
        *,
        target: str = "./...",
        cancel: Optional[asyncio.Event] = None,
    ) -> BuildResult:
        """Build *target* under *root* and write the binary to *output*."""
        ...


@runtime_checkable
class Formatter(Protocol):
    """A compiler that can also rewrite sources into canonical form."""

    async def format(
        self, root: Path, files: list[str], *, cancel: Optional[asyncio.Event] = None
    ) -> BuildResult:
        """Format *files* (relative to *root*) in place."""
        ...


@runtime_checkable
class ModuleTidier(Protocol):
    """A compiler that can reconcile ``go.mod`` with the imports in use."""

    async def tidy(self, root: Path, *, cancel: Optional[asyncio.Event] = None) -> BuildResult:
        ...


_DIAGNOSTIC_RE = re.compile(
    r"^(?:\./)?(?P<file>[^\s:#][^:]*\.go):(?P<line>\d+)(?::(?P<col>\d+))?: (?P<msg>.+)$"
)


def parse_diagnostics(output: str, rule: str = "go-build") -> list[ValidationIssue]:
    """Extract ``file:line[:col]: message`` diagnostics from toolchain output."""
    issues: list[ValidationIssue] = []
    seen: set[tuple[str, int, Optional[int], str]] = set()
    for raw in output.splitlines():
        match = _DIAGNOSTIC_RE.match(raw.strip())
        if not match:
            continue
        col = int(match["col"]) if match["col"] else None
        key = (match["file"], int(match["line"]), col, match["msg"])
        if key in seen:
            continue
        seen.add(key)
        issues.append(
            ValidationIssue(
                file=match["file"],
                line=int(match["line"]),
                column=col,
                severity=Severity.ERROR,
                message=match["msg"].strip(),
                rule=rule,
            )
        )
    return issues


class GoToolchain:
    """Runs the Go toolchain against a project root.

    Args:
        go_binary: Name or path of the ``go`` executable.
        gofmt_binary: Name or path of the ``gofmt`` executable.
        timeout: Seconds one invocation may run before it is killed.
        env: Variables merged over ``os.environ`` for the child process.
    """

    kill_grace: float = 5.0

    def __init__(
        self,
        go_binary: str = "go",
        timeout: float = 300.0,
        env: dict[str, str] | None = None,
        gofmt_binary: str = "gofmt",
    ) -> None:
        self.go_binary = go_binary
        self.gofmt_binary = gofmt_binary
        self.timeout = timeout
        self.env = dict(env or {})

    async def compile(self, root: Path, *, cancel: Optional[asyncio.Event] = None) -> BuildResult:
        return await self._run([self.go_binary, "build", "./..."], Path(root), cancel)

    async def build(
        self,
        root: Path,
        output: Path,
        *,
        target: str = "./...",
        cancel: Optional[asyncio.Event] = None,
    ) -> BuildResult:
        output = Path(output).resolve()
        output.parent.mkdir(parents=True, exist_ok=True)
        result = await self._run([self.go_binary, "build", "-o", str(output), target], Path(root), cancel)
        if result.success:
            return result.model_copy(update={"artifact": str(output)})
        return result

    async def format(
        self, root: Path, files: list[str], *, cancel: Optional[asyncio.Event] = None
    ) -> BuildResult:
        """Run ``gofmt -l -w`` over *files*; stdout lists the files it rewrote."""
        if not files:
            return BuildResult(status=BuildStatus.SUCCEEDED, message="no Go files to format")
        return await self._run([self.gofmt_binary, "-l", "-w", *files], Path(root), cancel, rule="gofmt")

    async def tidy(self, root: Path, *, cancel: Optional[asyncio.Event] = None) -> BuildResult:
        """Run ``go mod tidy`` so ``go.mod`` matches the imports in use."""
        return await self._run([self.go_binary, "mod", "tidy"], Path(root), cancel, rule="go-mod")

    async def version(self) -> str:
        """Return ``go version`` output, or an empty string when unavailable."""
        try:
            result = await self._run([self.go_binary, "version"], Path.cwd(), None)
        except ToolchainError:
            return ""
        return result.stdout.strip() if result.success else ""

    async def _run(
        self,
        cmd: list[str],
        root: Path,
        cancel: Optional[asyncio.Event],
        rule: str = "go-build",
    ) -> BuildResult:
        if cancel is not None and cancel.is_set():
            return BuildResult(status=BuildStatus.CANCELLED, command=cmd, message="cancelled before start")

        start = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(root),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, **self.env},
            )
        except FileNotFoundError as exc:
            variable = "GOFORGE_GOFMT_BINARY" if cmd[0] == self.gofmt_binary else "GOFORGE_GO_BINARY"
            raise ToolchainError(
                f"Go binary not found: '{cmd[0]}'. Install Go or set {variable}."
            ) from exc
        except PermissionError as exc:
            raise ToolchainError(f"Permission denied executing: '{cmd[0]}'.") from exc

        communicate = asyncio.ensure_future(process.communicate())
        waiters: set[asyncio.Future] = {communicate}
        cancel_waiter: asyncio.Future | None = None
        if cancel is not None:
            cancel_waiter = asyncio.ensure_future(cancel.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(waiters, timeout=self.timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()

        if communicate in done:
            stdout_bytes, stderr_bytes = communicate.result()
            stdout = stdout_bytes.decode("utf-8", errors="replace")
            stderr = stderr_bytes.decode("utf-8", errors="replace")
            exit_code = process.returncode if process.returncode is not None else -1
            return BuildResult(
                status=BuildStatus.SUCCEEDED if exit_code == 0 else BuildStatus.FAILED,
                command=cmd,
                exit_code=exit_code,
                stdout=stdout,
                stderr=stderr,
                duration_seconds=time.monotonic() - start,
                issues=parse_diagnostics(stderr + "\n" + stdout, rule),
            )

        if cancel_waiter is not None and cancel_waiter in done:
            console.print("[yellow]Build cancelled; terminating toolchain process...[/yellow]")
            process.terminate()
            status, message = BuildStatus.CANCELLED, "cancelled while the toolchain was running"
        else:
            console.print(f"[red]Toolchain timed out after {self.timeout}s. Killing...[/red]")
            process.kill()
            status, message = BuildStatus.TIMED_OUT, f"timed out after {self.timeout}s"

        stdout, stderr = await self._drain(communicate)
        return BuildResult(
            status=status,
            command=cmd,
            exit_code=process.returncode,
            stdout=stdout,
            stderr=stderr,
            duration_seconds=time.monotonic() - start,
            issues=parse_diagnostics(stderr, rule),
            message=message,
        )

    async def _drain(self, communicate: asyncio.Future) -> tuple[str, str]:
        """Collect whatever output a stopped process left, within ``kill_grace``."""
        done, _ = await asyncio.wait({communicate}, timeout=self.kill_grace)
        if communicate not in done:
            communicate.cancel()
            return "", ""
        try:
            stdout_bytes, stderr_bytes = communicate.result()
        except (OSError, asyncio.CancelledError):
            return "", ""
        return (
            stdout_bytes.decode("utf-8", errors="replace"),
            stderr_bytes.decode("utf-8", errors="replace"),
        )
