"""goforge code element model, dispatch and accumulator.

Entities are dispatched into a closed set of immutable code elements,
which the renderer turns into :class:`GeneratedFile` entries collected by a
per-request :class:`CodeAccumulator`.

Quick usage::

    from goforge.generator import CodeAccumulator, ElementDispatcher, ElementRenderer

    dispatched = ElementDispatcher(spec).dispatch_all()
    accumulator = CodeAccumulator({"project": spec.name})
    await ElementRenderer(engine, cache, spec.module_name).render_all(dispatched.elements, accumulator)
"""

from goforge.generator.accumulator import CodeAccumulator, ContentKind, GeneratedFile
from goforge.generator.elements import (
    ELEMENT_TYPES,
    CodeElement,
    ElementKind,
    FieldDecl,
    FunctionDecl,
    HandlerDecl,
    InterfaceDecl,
    MethodDecl,
    PackageRef,
    ParamDecl,
    RepositoryDecl,
    ServiceDecl,
    StructDecl,
)
from goforge.generator.functions import MappedField, build_constructor, build_validator
from goforge.generator.dispatch import (
    FEATURE_ROLES,
    NON_ENTITY_FEATURES,
    DispatchResult,
    ElementDispatcher,
    dispatch,
)
from goforge.generator.renderer import ElementRenderer, file_path, template_slug

__all__ = [
    "CodeAccumulator",
    "CodeElement",
    "ContentKind",
    "DispatchResult",
    "ELEMENT_TYPES",
    "ElementDispatcher",
    "ElementKind",
    "ElementRenderer",
    "FEATURE_ROLES",
    "FieldDecl",
    "FunctionDecl",
    "GeneratedFile",
    "HandlerDecl",
    "InterfaceDecl",
    "MappedField",
    "MethodDecl",
    "NON_ENTITY_FEATURES",
    "PackageRef",
    "ParamDecl",
    "RepositoryDecl",
    "ServiceDecl",
    "StructDecl",
    "build_constructor",
    "build_validator",
    "dispatch",
    "file_path",
    "template_slug",
]
