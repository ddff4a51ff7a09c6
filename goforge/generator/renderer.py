"""Render code elements into generated files.

Every :class:`ElementKind` maps to exactly one template slug and one
parameter routine.  The table is checked when the module is imported, so
adding a variant without a rendering path fails immediately instead of at
generation time.
"""

from __future__ import annotations

from typing import Any

from goforge.generator.accumulator import CodeAccumulator, ContentKind, GeneratedFile
from goforge.generator.elements import (
    CodeElement,
    ElementKind,
    FunctionDecl,
    HandlerDecl,
    InterfaceDecl,
    RepositoryDecl,
    ServiceDecl,
    StructDecl,
)
from goforge.mapping.naming import local_name, snake_name
from goforge.templating.cache import TemplateCache
from goforge.templating.engine import TemplateEngine

# Identifiers the layered templates declare or import themselves.
_TEMPLATE_NAMES = frozenset({
    "context", "ctx", "err", "errors", "exists", "fmt", "h", "http", "i", "id",
    "item", "items", "j", "json", "now", "ok", "r", "s", "service", "sort",
    "strconv", "sync", "time", "w",
})

_RENDER_METHODS: dict[ElementKind, str] = {
    ElementKind.STRUCT: "_struct_parameters",
    ElementKind.INTERFACE: "_interface_parameters",
    ElementKind.FUNCTION: "_function_parameters",
    ElementKind.REPOSITORY: "_repository_parameters",
    ElementKind.SERVICE: "_service_parameters",
    ElementKind.HANDLER: "_handler_parameters",
}

_missing = [kind.value for kind in ElementKind if kind not in _RENDER_METHODS]
if _missing:
    raise RuntimeError(f"element kinds without a rendering routine: {', '.join(_missing)}")
del _missing


def template_slug(kind: ElementKind) -> str:
    """Slug of the template that renders elements of *kind*."""
    return kind.value


def file_path(element: CodeElement) -> str:
    """Project-relative path an element is written to."""
    return f"{element.package.path}/{snake_name(element.name)}.go"


class ElementRenderer:
    """Turns code elements into :class:`GeneratedFile` entries.

    Args:
        engine: Renders template records against their parameter schema.
        cache: Supplies template records by slug.
        module_name: Go module path, used to build import paths.
    """

    def __init__(self, engine: TemplateEngine, cache: TemplateCache, module_name: str) -> None:
        self.engine = engine
        self.cache = cache
        self.module_name = module_name

    async def render(self, element: CodeElement) -> GeneratedFile:
        """Render one element.

        Raises:
            TemplateError: If the template is missing, malformed or its
                parameters do not bind.
        """
        kind = element.kind
        record = await self.cache.get(template_slug(kind))
        parameters = getattr(self, _RENDER_METHODS[kind])(element)
        content = self.engine.render(record, parameters)
        return GeneratedFile(
            path=file_path(element),
            content=content,
            kind=ContentKind(kind.value),
            package=element.package.name,
        )

    async def render_all(self, elements: list[CodeElement], accumulator: CodeAccumulator) -> int:
        """Render *elements* in order into *accumulator*; returns the count."""
        for slug in dict.fromkeys(template_slug(e.kind) for e in elements):
            await self.cache.get(slug)
        for element in elements:
            accumulator.append(await self.render(element))
        return len(elements)

    # -- Parameter routines --------------------------------------------------

    def _entity_parameters(self, entity: str, *packages: str) -> dict[str, Any]:
        return {
            "entity": entity,
            "entity_var": local_name(entity, _TEMPLATE_NAMES | set(packages)),
            "entity_label": snake_name(entity).replace("_", " "),
        }

    def _struct_parameters(self, element: StructDecl) -> dict[str, Any]:
        return {
            "package": element.package.name,
            "imports": list(element.imports),
            "name": element.name,
            "doc": element.doc or None,
            "fields": [
                {"name": f.name, "type": f.type, "tag": f.tag, "comment": f.comment}
                for f in element.fields
            ],
            "table_name": element.table_name,
        }

    def _interface_parameters(self, element: InterfaceDecl) -> dict[str, Any]:
        return {
            "package": element.package.name,
            "imports": list(element.imports),
            "name": element.name,
            "doc": element.doc or None,
            "methods": [{"signature": m.signature, "doc": m.doc} for m in element.methods],
        }

    def _function_parameters(self, element: FunctionDecl) -> dict[str, Any]:
        return {
            "package": element.package.name,
            "imports": list(element.imports),
            "name": element.name,
            "doc": element.doc or None,
            "signature": element.signature,
            "body": list(element.body),
        }

    def _repository_parameters(self, element: RepositoryDecl) -> dict[str, Any]:
        return {
            "package": element.package.name,
            "name": element.name,
            "interface_name": element.interface_name,
            "domain_import": element.domain.import_path(self.module_name),
            "domain_package": element.domain.name,
            **self._entity_parameters(element.entity, element.domain.name),
        }

    def _service_parameters(self, element: ServiceDecl) -> dict[str, Any]:
        return {
            "package": element.package.name,
            "name": element.name,
            "repository_interface": element.repository_interface,
            "domain_import": element.domain.import_path(self.module_name),
            "domain_package": element.domain.name,
            "validator": element.validator,
            **self._entity_parameters(element.entity, element.domain.name),
        }

    def _handler_parameters(self, element: HandlerDecl) -> dict[str, Any]:
        return {
            "package": element.package.name,
            "name": element.name,
            "route": element.route,
            "service_name": element.service_name,
            "service_import": element.service.import_path(self.module_name),
            "service_package": element.service.name,
            "domain_import": element.domain.import_path(self.module_name),
            "domain_package": element.domain.name,
            **self._entity_parameters(element.entity, element.domain.name, element.service.name),
        }
