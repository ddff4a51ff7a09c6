"""Cross-reference validation of a :class:`ProjectSpec`.

Everything here runs before a single file is generated.  Problems are
collected rather than raised one at a time so a caller sees the full list
in one ``SpecificationError``.
"""

from __future__ import annotations

from goforge.mapping.naming import (
    exported_name,
    is_valid_identifier_source,
    is_valid_module_path,
    snake_name,
)
from goforge.spec.errors import SpecificationError
from goforge.spec.models import EntitySpec, ProjectSpec

# Members every generated struct carries besides the declared fields.
GENERATED_MEMBERS = frozenset({"ID", "CreatedAt", "UpdatedAt", "TableName"})

# Declared fields with these names are replaced, not rejected.
_REPLACED_FIELDS = frozenset({"ID", "CreatedAt", "UpdatedAt"})

# Identifiers generated for an entity ``E``, keyed on the pattern.
_GENERATED_NAMES = (
    "New{}",
    "Validate{}",
    "{}Repository",
    "Memory{}Repository",
    "NewMemory{}Repository",
    "{}Service",
    "New{}Service",
    "{}Handler",
    "New{}Handler",
)


def generated_names(entity: str) -> list[str]:
    """Go identifiers (and so file names) generated for *entity*."""
    go_name = exported_name(entity)
    return [go_name] + [pattern.format(go_name) for pattern in _GENERATED_NAMES]


def _name_clashes(spec: ProjectSpec) -> list[str]:
    """Entities whose generated identifiers or files would overwrite another's."""
    errors: list[str] = []
    owners: dict[str, tuple[str, str]] = {}
    reported: set[tuple[str, str]] = set()
    seen: set[str] = set()
    for entity in spec.entities:
        if not is_valid_identifier_source(entity.name):
            continue
        # Entities that share a Go name are reported once, by the caller.
        go_name = exported_name(entity.name)
        if go_name in seen:
            continue
        seen.add(go_name)
        for name in generated_names(entity.name):
            key = snake_name(name)
            owner = owners.get(key)
            if owner is None:
                owners[key] = (entity.name, name)
            elif owner[0] != entity.name and (entity.name, owner[0]) not in reported:
                reported.add((entity.name, owner[0]))
                errors.append(
                    f"entity {entity.name!r} generates {name}, which clashes with "
                    f"{owner[1]} generated for entity {owner[0]!r}"
                )
    return errors


def collect_specification_errors(spec: ProjectSpec) -> list[str]:
    """Return every problem found in *spec* (empty when it is valid)."""
    errors: list[str] = []

    if not spec.name.strip():
        errors.append("project name must not be empty")
    if not is_valid_module_path(spec.module_name):
        errors.append(f"invalid module identifier {spec.module_name!r}")

    seen_entities: dict[str, str] = {}
    for entity in spec.entities:
        if not is_valid_identifier_source(entity.name):
            errors.append(f"invalid entity name {entity.name!r}")
            continue
        go_name = exported_name(entity.name)
        if go_name in seen_entities:
            errors.append(
                f"entity {entity.name!r} collides with {seen_entities[go_name]!r} (both become {go_name})"
            )
        seen_entities[go_name] = entity.name
    errors.extend(_name_clashes(spec))

    entity_names = set(spec.entity_names())
    for entity in spec.entities:
        errors.extend(entity_errors(entity, entity_names))

    return errors


def entity_errors(entity: EntitySpec, entity_names: set[str]) -> list[str]:
    """Return the problems in one *entity* given the known entity names."""
    errors: list[str] = []
    prefix = f"entity {entity.name!r}"

    members: dict[str, str] = {}
    for field in entity.fields:
        if not is_valid_identifier_source(field.name):
            errors.append(f"{prefix}: invalid field name {field.name!r}")
            continue
        go_name = exported_name(field.name)
        if go_name in GENERATED_MEMBERS and go_name not in _REPLACED_FIELDS:
            errors.append(f"{prefix}: field {field.name!r} clashes with the generated {go_name} member")
            continue
        if go_name in members:
            errors.append(f"{prefix}: duplicate field {field.name!r}")
        members[go_name] = field.name
        if field.reference and field.reference not in entity_names:
            errors.append(
                f"{prefix}: field {field.name!r} references unknown entity {field.reference!r}"
            )

    for rel in entity.relationships:
        if rel.target not in entity_names:
            errors.append(
                f"{prefix}: relationship {rel.name!r} targets unknown entity {rel.target!r}"
            )
        if not is_valid_identifier_source(rel.name):
            errors.append(f"{prefix}: invalid relationship name {rel.name!r}")
            continue
        go_name = exported_name(rel.name)
        if go_name in GENERATED_MEMBERS:
            errors.append(f"{prefix}: relationship {rel.name!r} clashes with the generated {go_name} member")
            continue
        if go_name in members:
            errors.append(f"{prefix}: relationship {rel.name!r} collides with field {members[go_name]!r}")
        members[go_name] = rel.name

    for constraint in entity.constraints:
        for name in constraint.fields:
            if entity.get_field(name) is None:
                errors.append(
                    f"{prefix}: constraint {constraint.name!r} uses unknown field {name!r}"
                )
        if not constraint.fields and constraint.kind.value != "check":
            errors.append(f"{prefix}: constraint {constraint.name!r} lists no fields")

    for index in entity.indexes:
        if not index.fields:
            errors.append(f"{prefix}: index {index.name!r} lists no fields")
        for name in index.fields:
            if entity.get_field(name) is None:
                errors.append(f"{prefix}: index {index.name!r} uses unknown field {name!r}")

    return errors


def validate_specification(spec: ProjectSpec) -> ProjectSpec:
    """Raise ``SpecificationError`` if *spec* has any problem, else return it."""
    errors = collect_specification_errors(spec)
    if errors:
        summary = errors[0] if len(errors) == 1 else f"{len(errors)} specification errors: {errors[0]}; ..."
        raise SpecificationError(summary, errors=errors)
    return spec
