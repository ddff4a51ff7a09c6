"""Function elements generated per entity.

Builds the ``New<Entity>`` constructor and the ``Validate<Entity>``
function as :class:`FunctionDecl` values.  Both work from
:class:`MappedField` records, which pair a declared field with its
resolved Go type and translated rules.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from goforge.generator.elements import FunctionDecl, PackageRef, ParamDecl
from goforge.mapping.naming import snake_name, unexported_name
from goforge.mapping.rules import RuleCheck, RuleTranslation
from goforge.mapping.types import TypeCategory, TypeResolution
from goforge.spec.models import FieldSpec


@dataclass(frozen=True)
class MappedField:
    """A declared field after type resolution and rule translation."""

    spec: FieldSpec
    go_name: str
    resolution: TypeResolution
    rules: RuleTranslation

    @property
    def go_type(self) -> str:
        return self.resolution.target_type

    @property
    def is_pointer(self) -> bool:
        return self.go_type.startswith("*")

    @property
    def label(self) -> str:
        return snake_name(self.spec.name)


# Go regular expressions for the text format rules without a stdlib parser.
_FORMAT_PATTERNS = {
    "uuid": r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$",
    "alpha": r"^[A-Za-z]+$",
    "alphanum": r"^[A-Za-z0-9]+$",
    "numeric": r"^[-+]?[0-9]+(\.[0-9]+)?$",
    "e164": r"^\+[1-9][0-9]{1,14}$",
    "hostname": r"^[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?(\.[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*$",
    "hexcolor": r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$",
}


def go_string(value: str) -> str:
    """Return *value* as a Go interpreted string literal."""
    return json.dumps(value, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Constructor
# ---------------------------------------------------------------------------


def _param_name(field: MappedField, taken: set[str]) -> str:
    name = unexported_name(field.spec.name)
    while name in taken:
        name = f"{name}Value"
    taken.add(name)
    return name


def build_constructor(
    entity: str,
    package: PackageRef,
    required: list[MappedField],
) -> FunctionDecl:
    """Build ``New<Entity>`` taking every required field as a parameter."""
    imports = {"strconv", "time"}
    for f in required:
        imports.update(f.resolution.imports)
    # local names and package identifiers the body refers to
    taken = {"now"} | {imp.rsplit("/", 1)[-1] for imp in imports}

    params: list[ParamDecl] = []
    assignments: list[tuple[str, str]] = [("ID", "strconv.FormatInt(now.UnixNano(), 36)")]
    for f in required:
        param = _param_name(f, taken)
        params.append(ParamDecl(param, f.go_type))
        assignments.append((f.go_name, param))
    assignments += [("CreatedAt", "now"), ("UpdatedAt", "now")]

    width = max(len(name) for name, _ in assignments) + 1
    body = ["now := time.Now().UTC()", f"return &{entity}{{"]
    body += [f"\t{(name + ':').ljust(width)} {value}," for name, value in assignments]
    body.append("}")

    return FunctionDecl(
        name=f"New{entity}",
        package=package,
        params=tuple(params),
        results=(f"*{entity}",),
        body=tuple(body),
        imports=tuple(sorted(imports)),
        doc=f"returns a new {entity} with its required fields set.",
        entity=entity,
    )


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------


class _ValidatorBuilder:
    def __init__(self, entity: str) -> None:
        self.entity = entity
        self.label = snake_name(entity)
        self.imports: set[str] = {"errors"}
        self.body: list[str] = [
            "if v == nil {",
            f"\treturn errors.New({go_string(self.label + ' must not be nil')})",
            "}",
        ]

    def fail(self, condition: str, field: MappedField, message: str) -> None:
        text = f"{self.label}: {field.label} {message}"
        self.body += [f"if {condition} {{", f"\treturn errors.New({go_string(text)})", "}"]

    def add_field(self, field: MappedField) -> None:
        for check in field.rules.checks:
            if check.kind == "required":
                self._required(field)
            elif check.kind in ("min", "max", "len"):
                self._bound(field, check)
            elif check.kind == "oneof":
                self._oneof(field, check)
            else:
                self._format(field, check)

    def _required(self, field: MappedField) -> None:
        ref = f"v.{field.go_name}"
        t = field.go_type
        if field.is_pointer or t == "any":
            cond = f"{ref} == nil"
        elif t.startswith(("[]", "map[")) or t == "json.RawMessage":
            cond = f"len({ref}) == 0"
        elif t == "string":
            cond = f'{ref} == ""'
        elif t == "time.Time":
            cond = f"{ref}.IsZero()"
        elif field.resolution.category in (TypeCategory.INTEGER, TypeCategory.FLOAT) or t == "time.Duration":
            cond = f"{ref} == 0"
        else:
            return
        self.fail(cond, field, "is required")

    def _operand(self, field: MappedField) -> tuple[str, str]:
        """Return ``(guard, value)`` for reading the field's value."""
        ref = f"v.{field.go_name}"
        if field.is_pointer:
            return f"{ref} != nil && ", f"*{ref}"
        return "", ref

    def _bound(self, field: MappedField, check: RuleCheck) -> None:
        guard, value = self._operand(field)
        category = field.resolution.category
        if category is TypeCategory.TEXT:
            self.imports.add("unicode/utf8")
            measured = f"utf8.RuneCountInString({value})"
            unit = " characters"
            if not field.is_pointer and not field.spec.required:
                guard = f'{value} != "" && '
        elif category in (TypeCategory.INTEGER, TypeCategory.FLOAT):
            measured = value
            unit = ""
        else:
            measured = f"len({value})"
            unit = " items" if category is TypeCategory.COLLECTION else " bytes"

        arg = check.argument
        if check.kind == "min":
            cond, message = f"{measured} < {arg}", f"must be at least {arg}{unit}"
        elif check.kind == "max":
            cond, message = f"{measured} > {arg}", f"must be at most {arg}{unit}"
        else:
            cond, message = f"{measured} != {arg}", f"must be exactly {arg}{unit}"
        self.fail(guard + cond, field, message)

    def _oneof(self, field: MappedField, check: RuleCheck) -> None:
        guard, value = self._operand(field)
        options = check.argument.split()
        if field.resolution.category is TypeCategory.TEXT:
            literals = [go_string(o) for o in options]
            if not field.is_pointer and not field.spec.required:
                guard = f'{value} != "" && '
        else:
            literals = options
        comparisons = " && ".join(f"{value} != {lit}" for lit in literals)
        self.fail(f"{guard}{comparisons}", field, f"must be one of {', '.join(options)}")

    def _format(self, field: MappedField, check: RuleCheck) -> None:
        guard, value = self._operand(field)
        if not field.is_pointer:
            guard = f'{value} != "" && '

        if check.kind == "email":
            self.imports.add("net/mail")
            self.body += [
                f"if {guard.removesuffix(' && ')} {{",
                f"\tif _, err := mail.ParseAddress({value}); err != nil {{",
                f"\t\treturn errors.New({go_string(f'{self.label}: {field.label} must be a valid email address')})",
                "\t}",
                "}",
            ]
        elif check.kind == "url":
            self.imports.add("net/url")
            self.body += [
                f"if {guard.removesuffix(' && ')} {{",
                f"\tif _, err := url.ParseRequestURI({value}); err != nil {{",
                f"\t\treturn errors.New({go_string(f'{self.label}: {field.label} must be a valid URL')})",
                "\t}",
                "}",
            ]
        elif check.kind == "ip":
            self.imports.add("net")
            self.fail(f"{guard}net.ParseIP({value}) == nil", field, "must be a valid IP address")
        else:
            pattern = check.argument if check.kind == "pattern" else _FORMAT_PATTERNS.get(check.kind)
            if pattern is None:
                return
            self.imports.add("regexp")
            description = "must match its pattern" if check.kind == "pattern" else f"must be {check.kind}"
            self.body += [
                f"if {guard.removesuffix(' && ')} {{",
                f"\tif ok, err := regexp.MatchString({go_string(pattern)}, {value}); err != nil || !ok {{",
                f"\t\treturn errors.New({go_string(f'{self.label}: {field.label} {description}')})",
                "\t}",
                "}",
            ]


def build_validator(entity: str, package: PackageRef, fields: list[MappedField]) -> FunctionDecl:
    """Build ``Validate<Entity>`` enforcing every translated rule."""
    builder = _ValidatorBuilder(entity)
    for f in fields:
        builder.add_field(f)
    builder.body.append("return nil")
    return FunctionDecl(
        name=f"Validate{entity}",
        package=package,
        params=(ParamDecl("v", f"*{entity}"),),
        results=("error",),
        body=tuple(builder.body),
        imports=tuple(sorted(builder.imports)),
        doc=f"reports the first rule a {entity} violates, or nil.",
        entity=entity,
    )
