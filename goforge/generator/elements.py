"""The closed set of code elements dispatch can produce.

``CodeElement`` is a tagged union of six frozen dataclasses.  Each variant
carries only what its rendering routine needs; elements are built by
:mod:`goforge.generator.dispatch` and are immutable afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union


class ElementKind(str, Enum):
    STRUCT = "struct"
    INTERFACE = "interface"
    FUNCTION = "function"
    REPOSITORY = "repository"
    SERVICE = "service"
    HANDLER = "handler"


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PackageRef:
    """A Go package: its name and its project-relative directory."""

    name: str
    path: str

    def import_path(self, module: str) -> str:
        return f"{module}/{self.path}"


@dataclass(frozen=True)
class FieldDecl:
    name: str
    type: str
    tag: str = ""
    comment: str = ""


@dataclass(frozen=True)
class ParamDecl:
    name: str
    type: str


def _results_clause(results: tuple[str, ...]) -> str:
    if not results:
        return ""
    if len(results) == 1:
        return f" {results[0]}"
    return f" ({', '.join(results)})"


@dataclass(frozen=True)
class MethodDecl:
    """A method signature inside an interface."""

    name: str
    params: tuple[ParamDecl, ...] = ()
    results: tuple[str, ...] = ()
    doc: str = ""

    @property
    def signature(self) -> str:
        params = ", ".join(f"{p.name} {p.type}" for p in self.params)
        return f"{self.name}({params}){_results_clause(self.results)}"


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StructDecl:
    kind: ClassVar[ElementKind] = ElementKind.STRUCT

    name: str
    package: PackageRef
    fields: tuple[FieldDecl, ...]
    imports: tuple[str, ...] = ()
    table_name: str = ""
    doc: str = ""
    entity: str = ""


@dataclass(frozen=True)
class InterfaceDecl:
    kind: ClassVar[ElementKind] = ElementKind.INTERFACE

    name: str
    package: PackageRef
    methods: tuple[MethodDecl, ...]
    imports: tuple[str, ...] = ()
    doc: str = ""
    entity: str = ""


@dataclass(frozen=True)
class FunctionDecl:
    kind: ClassVar[ElementKind] = ElementKind.FUNCTION

    name: str
    package: PackageRef
    params: tuple[ParamDecl, ...]
    results: tuple[str, ...]
    body: tuple[str, ...]
    imports: tuple[str, ...] = ()
    doc: str = ""
    entity: str = ""

    @property
    def signature(self) -> str:
        params = ", ".join(f"{p.name} {p.type}" for p in self.params)
        return f"{self.name}({params}){_results_clause(self.results)}"


@dataclass(frozen=True)
class RepositoryDecl:
    kind: ClassVar[ElementKind] = ElementKind.REPOSITORY

    name: str
    package: PackageRef
    entity: str
    interface_name: str
    domain: PackageRef
    doc: str = ""


@dataclass(frozen=True)
class ServiceDecl:
    kind: ClassVar[ElementKind] = ElementKind.SERVICE

    name: str
    package: PackageRef
    entity: str
    repository_interface: str
    domain: PackageRef
    validator: str = ""
    doc: str = ""


@dataclass(frozen=True)
class HandlerDecl:
    kind: ClassVar[ElementKind] = ElementKind.HANDLER

    name: str
    package: PackageRef
    entity: str
    service_name: str
    service: PackageRef
    domain: PackageRef
    route: str
    doc: str = ""


CodeElement = Union[StructDecl, InterfaceDecl, FunctionDecl, RepositoryDecl, ServiceDecl, HandlerDecl]

ELEMENT_TYPES: tuple[type, ...] = (
    StructDecl,
    InterfaceDecl,
    FunctionDecl,
    RepositoryDecl,
    ServiceDecl,
    HandlerDecl,
)
