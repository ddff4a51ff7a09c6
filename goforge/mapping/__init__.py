"""goforge field & type mapping engine.

Pure lookups and transforms from specification fields to Go: the logical
type table, the validation rule grammar, struct tag composition and Go
identifier naming.

Quick usage::

    from goforge.mapping import resolve, translate_rules

    resolution = resolve("decimal")        # *big.Rat, NUMERIC(19,4)
    rules = translate_rules("Order", field_spec, resolution)
    rules.validate_tag                     # "required"
    rules.warnings                         # [MappingWarning(... "min" ...)]
"""

from goforge.mapping.naming import (
    exported_name,
    local_name,
    package_name,
    pluralize,
    snake_name,
    split_words,
    unexported_name,
)
from goforge.mapping.rules import (
    MappingWarning,
    RuleCheck,
    RuleTranslation,
    build_struct_tag,
    translate_rules,
)
from goforge.mapping.types import TypeCategory, TypeResolution, known_types, resolve

__all__ = [
    "MappingWarning",
    "RuleCheck",
    "RuleTranslation",
    "TypeCategory",
    "TypeResolution",
    "build_struct_tag",
    "exported_name",
    "known_types",
    "local_name",
    "package_name",
    "pluralize",
    "resolve",
    "snake_name",
    "split_words",
    "translate_rules",
    "unexported_name",
]
