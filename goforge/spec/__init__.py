"""goforge specification input -- models, loading and validation.

Quick usage::

    from goforge.spec import load_specification, validate_specification

    spec = validate_specification(load_specification("shop.yaml"))
"""

from goforge.spec.errors import SpecificationError
from goforge.spec.loader import load_specification, parse_specification
from goforge.spec.models import (
    Cardinality,
    CascadePolicy,
    ConstraintKind,
    ConstraintSpec,
    EntitySpec,
    FieldSpec,
    IndexKind,
    IndexSpec,
    ProjectSpec,
    RelationshipSpec,
)
from goforge.spec.validation import (
    collect_specification_errors,
    entity_errors,
    validate_specification,
)

__all__ = [
    "Cardinality",
    "CascadePolicy",
    "ConstraintKind",
    "ConstraintSpec",
    "EntitySpec",
    "FieldSpec",
    "IndexKind",
    "IndexSpec",
    "ProjectSpec",
    "RelationshipSpec",
    "SpecificationError",
    "collect_specification_errors",
    "entity_errors",
    "load_specification",
    "parse_specification",
    "validate_specification",
]
