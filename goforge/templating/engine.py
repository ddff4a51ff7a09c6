"""Jinja2 template rendering with a declared parameter schema.

Rendering is two-phase.  Parse time checks that the template text is
well-formed and that it only references parameters its schema declares.
Execute time binds the caller's parameters against the schema: missing
required parameters are a hard failure, optional ones fall back to their
declared default, and ``StrictUndefined`` guarantees nothing is silently
rendered as an empty string.

The engine is storage-agnostic: it consumes an already-fetched
:class:`TemplateRecord` (or raw text plus schema) and never talks to a
template store itself.
"""

from __future__ import annotations

import json
import re
from typing import Any

from jinja2 import Environment, StrictUndefined, Template, TemplateSyntaxError, meta
from jinja2.exceptions import UndefinedError
from pydantic import AliasChoices, BaseModel, Field

from goforge.mapping.naming import exported_name, pluralize, snake_name, unexported_name
from goforge.spec.errors import SpecificationError


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class TemplateError(SpecificationError):
    """A template could not be parsed or its parameters could not be bound."""

    def __init__(self, message: str, slug: str = "", line: int | None = None) -> None:
        self.slug = slug
        self.line = line
        location = slug or "<template>"
        if line is not None:
            location = f"{location}:{line}"
        super().__init__(f"{location}: {message}")


class TemplateNotFoundError(TemplateError):
    """The template store has no template for the requested slug."""


# ---------------------------------------------------------------------------
# Template records
# ---------------------------------------------------------------------------


_PARAMETER_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "int": (int,),
    "bool": (bool,),
    "list": (list, tuple),
    "mapping": (dict,),
}


class TemplateParameter(BaseModel):
    """One entry of a template's parameter schema."""

    name: str
    type: str = Field(default="string", description="string | int | bool | list | mapping | any")
    required: bool = Field(default=True)
    default: Any = Field(default=None, validation_alias=AliasChoices("default", "default_value"))
    description: str = Field(default="")


class TemplateRecord(BaseModel):
    """A template as fetched from a store: text plus parameter schema."""

    id: str = Field(default="")
    slug: str
    name: str = Field(default="")
    category: str = Field(default="")
    content: str
    parameters: list[TemplateParameter] = Field(default_factory=list)

    def parameter(self, name: str) -> TemplateParameter | None:
        for param in self.parameters:
            if param.name == name:
                return param
        return None


# ---------------------------------------------------------------------------
# Custom filters
# ---------------------------------------------------------------------------


def _slugify_filter(value: str) -> str:
    """Convert a string to a URL/filename-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower().strip())
    return slug.strip("-")


def _go_quote_filter(value: Any) -> str:
    """Render *value* as a Go interpreted string literal."""
    return json.dumps(str(value), ensure_ascii=False)


def _indent_lines_filter(lines: list[str] | str, prefix: str = "\t") -> str:
    """Join body lines, prefixing every non-empty line with *prefix*."""
    if isinstance(lines, str):
        lines = lines.splitlines()
    return "\n".join(f"{prefix}{line}" if line else "" for line in lines)


# ---------------------------------------------------------------------------
# TemplateEngine
# ---------------------------------------------------------------------------


class TemplateEngine:
    """Parses and renders schema-checked Jinja2 templates."""

    def __init__(self) -> None:
        self.env = Environment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["slugify"] = _slugify_filter
        self.env.filters["pascal_case"] = exported_name
        self.env.filters["camel_case"] = unexported_name
        self.env.filters["snake_case"] = snake_name
        self.env.filters["plural"] = pluralize
        self.env.filters["go_quote"] = _go_quote_filter
        self.env.filters["indent_lines"] = _indent_lines_filter

    # -- Parse time ----------------------------------------------------------

    def parse(self, record: TemplateRecord) -> Template:
        """Check *record* is well-formed and return the compiled template.

        Raises:
            TemplateError: On a syntax error, or when the template uses a
                variable its parameter schema does not declare.
        """
        try:
            ast = self.env.parse(record.content)
        except TemplateSyntaxError as exc:
            raise TemplateError(exc.message or "syntax error", slug=record.slug, line=exc.lineno) from exc

        declared = {p.name for p in record.parameters}
        undeclared = sorted(meta.find_undeclared_variables(ast) - declared)
        if undeclared:
            raise TemplateError(
                f"template references undeclared parameter(s): {', '.join(undeclared)}",
                slug=record.slug,
            )
        return self.env.from_string(record.content)

    # -- Execute time --------------------------------------------------------

    def bind(self, record: TemplateRecord, parameters: dict[str, Any]) -> dict[str, Any]:
        """Bind caller *parameters* against the schema of *record*.

        Raises:
            TemplateError: When a required parameter is missing or a value
                has the wrong type.
        """
        bound: dict[str, Any] = {}
        for param in record.parameters:
            if param.name in parameters and parameters[param.name] is not None:
                value = parameters[param.name]
            elif param.required:
                raise TemplateError(f"required parameter {param.name} is missing", slug=record.slug)
            else:
                value = param.default

            expected = _PARAMETER_TYPES.get(param.type)
            if expected is not None and value is not None:
                wrong_bool = param.type == "int" and isinstance(value, bool)
                if wrong_bool or not isinstance(value, expected):
                    raise TemplateError(
                        f"parameter {param.name} must be {param.type}, got {type(value).__name__}",
                        slug=record.slug,
                    )
            bound[param.name] = value
        return bound

    def render(self, record: TemplateRecord, parameters: dict[str, Any]) -> str:
        """Render *record* with *parameters* after both validation phases."""
        template = self.parse(record)
        context = self.bind(record, parameters)
        try:
            return template.render(**context)
        except UndefinedError as exc:
            raise TemplateError(str(exc), slug=record.slug) from exc

    def render_text(
        self,
        text: str,
        parameters: dict[str, Any],
        schema: list[TemplateParameter] | None = None,
        slug: str = "",
    ) -> str:
        """Render inline template *text*.

        When *schema* is omitted every variable the text references is
        treated as a required string-or-anything parameter.
        """
        if schema is None:
            try:
                names = meta.find_undeclared_variables(self.env.parse(text))
            except TemplateSyntaxError as exc:
                raise TemplateError(exc.message or "syntax error", slug=slug, line=exc.lineno) from exc
            schema = [TemplateParameter(name=n, type="any") for n in sorted(names)]
        record = TemplateRecord(slug=slug or "inline", content=text, parameters=schema)
        return self.render(record, parameters)
