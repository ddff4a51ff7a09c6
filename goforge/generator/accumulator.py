"""The code accumulator: an append-only log of generated files.

One accumulator belongs to exactly one generation request.  It keeps files
in the order they were produced and never deduplicates; when two files
share a path, the filesystem writer resolves the collision (last one in
accumulator order wins).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ContentKind(str, Enum):
    """What a generated file holds."""

    STRUCT = "struct"
    FUNCTION = "function"
    INTERFACE = "interface"
    REPOSITORY = "repository"
    SERVICE = "service"
    HANDLER = "handler"
    MANIFEST = "manifest"
    BUILD = "build"
    IGNORE = "ignore"
    README = "readme"
    CONTAINER = "container"
    SOURCE = "source"
    ASSET = "asset"


@dataclass(frozen=True)
class GeneratedFile:
    """One rendered file, addressed by its project-relative POSIX path."""

    path: str
    content: str
    kind: ContentKind
    package: str = ""
    size: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "size", len(self.content.encode("utf-8")))

    @property
    def extension(self) -> str:
        name = self.path.rsplit("/", 1)[-1]
        return f".{name.rsplit('.', 1)[-1]}" if "." in name.lstrip(".") else ""


class CodeAccumulator:
    """Ordered, append-only collection of :class:`GeneratedFile` entries.

    Attributes:
        metadata: Free-form run metadata (project, archetype, counts ...).
        created_at: UTC timestamp of when the request started accumulating.
    """

    def __init__(self, metadata: dict[str, Any] | None = None) -> None:
        self._files: list[GeneratedFile] = []
        self.metadata: dict[str, Any] = dict(metadata or {})
        self.created_at = datetime.now(timezone.utc)

    def append(self, file: GeneratedFile) -> None:
        self._files.append(file)

    def extend(self, files: list[GeneratedFile]) -> None:
        self._files.extend(files)

    def files(self) -> list[GeneratedFile]:
        """Return a copy of the files in insertion order."""
        return list(self._files)

    def files_by_kind(self, kind: ContentKind) -> list[GeneratedFile]:
        return [f for f in self._files if f.kind == kind]

    def paths(self) -> list[str]:
        """Return file paths in insertion order, duplicates included."""
        return [f.path for f in self._files]

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self):
        return iter(list(self._files))

    def summary(self) -> str:
        """Return a one-line description, e.g. ``"12 files, 3 kinds, 18.2 KB"``."""
        kinds = {f.kind for f in self._files}
        return f"{len(self._files)} files, {len(kinds)} kinds, {self.total_size / 1024:.1f} KB"
