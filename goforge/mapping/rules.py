"""Validation rule grammar and struct tag composition.

Rule tokens come from ``FieldSpec.validation`` (``"min:0"``, ``"email"``,
``"pattern:^[A-Z]+$"``) and from the field's own flags and bounds.  Each
token is translated into the ``validate`` struct tag understood by
go-playground/validator and into a :class:`RuleCheck` the generated
``Validate<Entity>`` function enforces.  Tokens that do not apply to the
field's type are dropped and reported as :class:`MappingWarning` records;
translation itself never fails.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from goforge.mapping.naming import snake_name
from goforge.mapping.types import TypeCategory, TypeResolution
from goforge.spec.models import FieldSpec


@dataclass(frozen=True)
class MappingWarning:
    """A non-fatal mapping problem; generation continued with a fallback."""

    entity: str
    field: str
    token: str
    message: str

    def __str__(self) -> str:
        where = f"{self.entity}.{self.field}" if self.field else self.entity
        return f"{where}: {self.message}"


@dataclass(frozen=True)
class RuleCheck:
    """One translated rule, in a form the code generator can enforce."""

    kind: str
    argument: str = ""


@dataclass
class RuleTranslation:
    """Result of translating every rule that applies to one field."""

    checks: list[RuleCheck] = field(default_factory=list)
    pattern: str | None = None
    warnings: list[MappingWarning] = field(default_factory=list)

    @property
    def validate_tag(self) -> str:
        """Comma-separated go-playground/validator tag value."""
        tokens: list[str] = []
        for check in self.checks:
            if check.kind == "pattern":
                continue
            token = f"{check.kind}={check.argument}" if check.argument else check.kind
            if token not in tokens:
                tokens.append(token)
        return ",".join(tokens)

    def has(self, kind: str) -> bool:
        return any(c.kind == kind for c in self.checks)


_BOUNDED = {
    TypeCategory.TEXT,
    TypeCategory.INTEGER,
    TypeCategory.FLOAT,
    TypeCategory.BINARY,
    TypeCategory.COLLECTION,
}
_TEXT_ONLY = {"email", "url", "uuid", "alpha", "alphanum", "numeric", "e164", "ip", "hostname", "hexcolor"}
_BOUND_RULES = {"min", "max", "len"}
_PATTERN_RULES = {"pattern", "regex"}


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def _split_token(token: str) -> tuple[str, str]:
    for sep in (":", "="):
        if sep in token:
            name, arg = token.split(sep, 1)
            return name.strip().lower(), arg.strip()
    return token.strip().lower(), ""


def translate_rules(entity: str, spec: FieldSpec, resolution: TypeResolution) -> RuleTranslation:
    """Translate the rules that apply to *spec* given its resolved type."""
    result = RuleTranslation()

    def warn(token: str, message: str) -> None:
        result.warnings.append(MappingWarning(entity=entity, field=spec.name, token=token, message=message))

    tokens: list[str] = []
    if spec.required:
        tokens.append("required")
    if resolution.validation_tag:
        tokens.append(resolution.validation_tag)
    if spec.min is not None:
        tokens.append(f"min:{_format_number(spec.min)}")
    if spec.max is not None:
        tokens.append(f"max:{_format_number(spec.max)}")
    tokens.extend(t for t in spec.validation if t and t.strip())

    for token in tokens:
        name, arg = _split_token(token)
        if name == "required":
            if not result.has("required"):
                result.checks.append(RuleCheck("required"))
        elif name in _BOUND_RULES:
            if resolution.category not in _BOUNDED:
                warn(token, f"rule {name!r} is not supported for {resolution.category.value} fields; dropped")
                continue
            try:
                number = float(arg)
            except ValueError:
                warn(token, f"rule {name!r} needs a numeric argument, got {arg!r}; dropped")
                continue
            if resolution.category is TypeCategory.FLOAT:
                usable = True
            elif resolution.category is TypeCategory.INTEGER:
                usable = number.is_integer()
            else:
                # lengths
                usable = number.is_integer() and number >= 0
            if not usable:
                warn(token, f"rule {name!r} needs a whole number for {resolution.category.value} fields; dropped")
                continue
            result.checks.append(RuleCheck(name, _format_number(number)))
        elif name in _TEXT_ONLY:
            if resolution.category is not TypeCategory.TEXT:
                warn(token, f"rule {name!r} only applies to text fields; dropped")
                continue
            result.checks.append(RuleCheck(name))
        elif name in _PATTERN_RULES:
            if resolution.category is not TypeCategory.TEXT:
                warn(token, "pattern rules only apply to text fields; dropped")
            elif not arg:
                warn(token, "pattern rule has no expression; dropped")
            elif "`" in arg:
                warn(token, "pattern contains a backtick and cannot be carried in a struct tag; dropped")
            elif re.search(r"\(\?<?[=!]|\\[1-9]", arg):
                warn(token, "pattern uses lookaround or backreferences, which Go's regexp lacks; dropped")
            else:
                try:
                    re.compile(arg)
                except re.error as exc:
                    warn(token, f"pattern does not compile ({exc}); dropped")
                    continue
                result.pattern = arg
                result.checks.append(RuleCheck("pattern", arg))
        else:
            warn(token, f"unsupported validation rule {name!r}; dropped")

    if spec.enum:
        if resolution.category not in (TypeCategory.TEXT, TypeCategory.INTEGER):
            warn("oneof", f"enum values are not supported for {resolution.category.value} fields; dropped")
        elif any(re.search(r"[\s,\"'`\\]", v) for v in spec.enum):
            warn("oneof", "enum values containing spaces, commas or quotes cannot be validated; dropped")
        elif resolution.category is TypeCategory.INTEGER and not all(
            re.fullmatch(r"-?\d+", v) for v in spec.enum
        ):
            warn("oneof", "enum values for an integer field must be whole numbers; dropped")
        else:
            result.checks.append(RuleCheck("oneof", " ".join(spec.enum)))

    return result


# ---------------------------------------------------------------------------
# Struct tags
# ---------------------------------------------------------------------------


def escape_tag_value(value: str) -> str:
    """Escape a value for use inside a ``key:"value"`` struct tag."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _sql_default(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    text = str(value).replace("'", "''")
    return f"'{text}'"


def build_struct_tag(
    entity: str,
    spec: FieldSpec,
    resolution: TypeResolution,
    rules: RuleTranslation,
    storage_extras: list[str] | None = None,
) -> tuple[str, list[MappingWarning]]:
    """Compose the full struct tag for one field.

    Returns the tag body (without surrounding backticks) and any warnings
    raised while composing it.
    """
    warnings: list[MappingWarning] = []
    column = snake_name(spec.name)

    if resolution.serialization_tag == "-":
        json_value = "-"
    else:
        options = [column]
        if not spec.required:
            options.append("omitempty")
        if resolution.serialization_tag:
            options.append(resolution.serialization_tag)
        json_value = ",".join(options)

    sql_parts: list[str] = []
    if resolution.storage_tag:
        sql_parts.append(f"type:{resolution.storage_tag}")
    if spec.required and not spec.nullable:
        sql_parts.append("not null")
    if spec.unique:
        sql_parts.append("unique")
    if spec.default is not None:
        default = _sql_default(spec.default)
        if "`" in default:
            warnings.append(
                MappingWarning(entity, spec.name, "default", "default value contains a backtick; dropped")
            )
        else:
            sql_parts.append(f"default:{default}")
    sql_parts.extend(storage_extras or [])

    parts = [f'json:"{json_value}"', f'db:"{column}"']
    if sql_parts:
        parts.append(f'sql:"{escape_tag_value(";".join(sql_parts))}"')
    if rules.validate_tag:
        parts.append(f'validate:"{escape_tag_value(rules.validate_tag)}"')
    if rules.pattern is not None:
        parts.append(f'pattern:"{escape_tag_value(rules.pattern)}"')
    return " ".join(parts), warnings
