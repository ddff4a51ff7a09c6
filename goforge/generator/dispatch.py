"""Entity -> code element dispatch.

For every entity the dispatcher emits one :class:`StructDecl`, a
``New<Entity>`` constructor when at least one field is required, and then
the elements its features ask for, in the order the features first ask
for them.  Construction order is deterministic because the filesystem
writer resolves path collisions by accumulator order.

Dispatch never renders anything; it only builds immutable element values
for :class:`goforge.generator.renderer.ElementRenderer`.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator

from goforge.generator.elements import (
    CodeElement,
    FieldDecl,
    HandlerDecl,
    InterfaceDecl,
    MethodDecl,
    ParamDecl,
    RepositoryDecl,
    ServiceDecl,
    StructDecl,
)
from goforge.generator.functions import MappedField, build_constructor, build_validator
from goforge.mapping.naming import exported_name, local_name, pluralize, snake_name, split_words
from goforge.mapping.rules import MappingWarning, build_struct_tag, translate_rules
from goforge.mapping.types import resolve
from goforge.spec.errors import SpecificationError
from goforge.spec.models import (
    Cardinality,
    ConstraintKind,
    EntitySpec,
    FieldSpec,
    IndexKind,
    ProjectSpec,
)
from goforge.spec.validation import entity_errors, validate_specification

if TYPE_CHECKING:
    from goforge.scaffold.synthesizer import ProjectSkeleton

# ---------------------------------------------------------------------------
# Feature table
# ---------------------------------------------------------------------------

ROLE_REPOSITORY_INTERFACE = "repository_interface"
ROLE_REPOSITORY = "repository"
ROLE_SERVICE = "service"
ROLE_HANDLER = "handler"
ROLE_VALIDATOR = "validator"

FEATURE_ROLES: dict[str, tuple[str, ...]] = {
    "crud": (ROLE_REPOSITORY_INTERFACE, ROLE_REPOSITORY, ROLE_SERVICE, ROLE_HANDLER, ROLE_VALIDATOR),
    "repository": (ROLE_REPOSITORY_INTERFACE, ROLE_REPOSITORY),
    "service": (ROLE_REPOSITORY_INTERFACE, ROLE_SERVICE),
    "rest_api": (ROLE_REPOSITORY_INTERFACE, ROLE_SERVICE, ROLE_HANDLER),
    "handler": (ROLE_REPOSITORY_INTERFACE, ROLE_SERVICE, ROLE_HANDLER),
    "validation": (ROLE_VALIDATOR,),
}

# Project-level features; they shape the skeleton, not entity code.
NON_ENTITY_FEATURES = frozenset({
    "auth", "cache", "config", "database", "docker", "logging", "metrics",
    "monitoring", "queue", "static_files", "tracing",
})

_TIMESTAMPS = ("CreatedAt", "UpdatedAt")
_RESERVED_FIELDS = {"ID", *_TIMESTAMPS}

_ID_FIELD = FieldDecl("ID", "string", 'json:"id" db:"id" sql:"type:VARCHAR(64);primaryKey"')


def normalize_feature(name: str) -> str:
    return name.strip().lower().replace("-", "_").replace(" ", "_")


def route_for(entity: str) -> str:
    """``OrderItem`` -> ``/api/v1/order-items``."""
    words = split_words(pluralize(exported_name(entity)))
    return "/api/v1/" + "-".join(w.lower() for w in words)


def table_name_for(entity: EntitySpec) -> str:
    return entity.table_name or snake_name(pluralize(exported_name(entity.name)))


def _one_line(text: str) -> str:
    return " ".join(text.split())


def _tag_safe(text: str) -> bool:
    return "`" not in text and ";" not in text


def _covered(entity: EntitySpec, names: list[str]) -> list[FieldSpec]:
    found = (entity.get_field(n) for n in names)
    return [f for f in found if f is not None]


@dataclass
class DispatchResult:
    """Elements for one or more entities plus the warnings raised building them."""

    elements: list[CodeElement] = field(default_factory=list)
    warnings: list[MappingWarning] = field(default_factory=list)

    def extend(self, other: DispatchResult) -> None:
        self.elements.extend(other.elements)
        self.warnings.extend(other.warnings)

    def __iter__(self) -> Iterator[CodeElement]:
        return iter(self.elements)

    def __len__(self) -> int:
        return len(self.elements)


# ---------------------------------------------------------------------------
# ElementDispatcher
# ---------------------------------------------------------------------------


class ElementDispatcher:
    """Builds the code elements of a validated :class:`ProjectSpec`.

    Args:
        spec: The project specification; validated on construction.
        skeleton: The synthesized skeleton whose layout decides packages.
            Synthesized from ``spec.archetype`` when omitted.

    Raises:
        SpecificationError: If the specification is invalid or names an
            unsupported archetype.
    """

    def __init__(self, spec: ProjectSpec, skeleton: ProjectSkeleton | None = None) -> None:
        validate_specification(spec)
        if skeleton is None:
            from goforge.scaffold.synthesizer import synthesize

            skeleton = synthesize(spec.archetype, spec.module_name, project_name=spec.name)
        self.spec = spec
        self.skeleton = skeleton
        self.domain = skeleton.package_for("domain")
        self.application = skeleton.package_for("application")
        self.persistence = skeleton.package_for("persistence")
        self.handlers = skeleton.package_for("handlers")
        self._entities = {e.name: e for e in spec.entities}

    # -- Features ------------------------------------------------------------

    def features_for(self, entity: EntitySpec) -> list[str]:
        if entity.features is not None:
            raw = entity.features
        elif self.spec.features:
            raw = self.spec.features
        else:
            raw = list(self.skeleton.default_features)
        return [normalize_feature(f) for f in raw if f and f.strip()]

    def roles_for(self, entity: EntitySpec) -> tuple[list[str], list[MappingWarning]]:
        """Return the roles requested for *entity*, ordered by first request."""
        roles: list[str] = []
        warnings: list[MappingWarning] = []
        for feature in self.features_for(entity):
            if feature in FEATURE_ROLES:
                roles.extend(r for r in FEATURE_ROLES[feature] if r not in roles)
            elif feature not in NON_ENTITY_FEATURES:
                warnings.append(MappingWarning(entity.name, "", feature, f"unknown feature {feature!r}; ignored"))
        return roles, warnings

    # -- Dispatch ------------------------------------------------------------

    def dispatch_all(self) -> DispatchResult:
        """Dispatch every entity in declaration order."""
        result = DispatchResult()
        for entity in self.spec.entities:
            result.extend(self.dispatch(entity))
        return result

    def dispatch(self, entity: EntitySpec) -> DispatchResult:
        """Build every element for *entity*.

        Raises:
            SpecificationError: If *entity* has unresolved references.
        """
        errors = entity_errors(entity, set(self._entities) | {entity.name})
        if errors:
            raise SpecificationError(errors[0], errors=errors)

        result = DispatchResult()
        go_name = exported_name(entity.name)
        struct, mapped, warnings = self._struct(entity, go_name)
        result.elements.append(struct)
        result.warnings.extend(warnings)

        required = [m for m in mapped if m.spec.required]
        if required:
            result.elements.append(build_constructor(go_name, self.domain, required))

        roles, role_warnings = self.roles_for(entity)
        result.warnings.extend(role_warnings)
        has_validator = ROLE_VALIDATOR in roles
        for role in roles:
            if role == ROLE_REPOSITORY_INTERFACE:
                result.elements.append(self._repository_interface(go_name))
            elif role == ROLE_REPOSITORY:
                result.elements.append(self._repository(go_name))
            elif role == ROLE_SERVICE:
                result.elements.append(self._service(go_name, has_validator))
            elif role == ROLE_HANDLER:
                result.elements.append(self._handler(go_name))
            elif role == ROLE_VALIDATOR:
                result.elements.append(build_validator(go_name, self.domain, mapped))
        return result

    # -- Struct --------------------------------------------------------------

    def _struct(
        self, entity: EntitySpec, go_name: str
    ) -> tuple[StructDecl, list[MappedField], list[MappingWarning]]:
        warnings: list[MappingWarning] = []
        extras, extra_warnings = self._storage_extras(entity)
        warnings.extend(extra_warnings)

        fields: list[FieldDecl] = [_ID_FIELD]
        mapped: list[MappedField] = []
        imports: set[str] = set()

        for spec in entity.fields:
            field_go_name = exported_name(spec.name)
            resolution = resolve(spec.type)
            if field_go_name in _RESERVED_FIELDS:
                expected = "string" if field_go_name == "ID" else "time.Time"
                if resolution.target_type != expected:
                    warnings.append(
                        MappingWarning(
                            entity.name,
                            spec.name,
                            spec.type,
                            f"{field_go_name} is always {expected}; declared type {spec.type!r} replaced",
                        )
                    )
                continue

            if not resolution.known:
                warnings.append(
                    MappingWarning(
                        entity.name, spec.name, spec.type, f"unknown type {spec.type!r}; using {resolution.target_type}"
                    )
                )
            if spec.nullable:
                resolution = resolution.as_nullable()

            rules = translate_rules(entity.name, spec, resolution)
            warnings.extend(rules.warnings)

            field_extras = list(extras.get(spec.name, []))
            if spec.reference:
                target = entity if spec.reference == entity.name else self._entities[spec.reference]
                field_extras.append(f"references:{table_name_for(target)}(id)")
            tag, tag_warnings = build_struct_tag(entity.name, spec, resolution, rules, field_extras)
            warnings.extend(tag_warnings)

            fields.append(FieldDecl(field_go_name, resolution.target_type, tag, _one_line(spec.description)))
            imports.update(resolution.imports)
            mapped.append(MappedField(spec, field_go_name, resolution, rules))

        for rel in entity.relationships:
            target = exported_name(rel.target)
            many = rel.cardinality in (Cardinality.ONE_TO_MANY, Cardinality.MANY_TO_MANY)
            go_type = f"[]*{target}" if many else f"*{target}"
            relation = [f"kind={rel.cardinality.value}"]
            if rel.foreign_key:
                relation.append(f"foreignKey={exported_name(rel.foreign_key)}")
            relation += [f"onDelete={rel.on_delete.value}", f"onUpdate={rel.on_update.value}"]
            tag = f'json:"{snake_name(rel.name)},omitempty" db:"-" relation:"{";".join(relation)}"'
            fields.append(FieldDecl(exported_name(rel.name), go_type, tag))

        for name in _TIMESTAMPS:
            column = snake_name(name)
            fields.append(FieldDecl(name, "time.Time", f'json:"{column}" db:"{column}" sql:"type:TIMESTAMPTZ;not null"'))
        imports.add("time")

        doc = f"is the {snake_name(go_name).replace('_', ' ')} entity."
        if entity.description.strip():
            doc = f"{doc} {_one_line(entity.description)}"

        struct = StructDecl(
            name=go_name,
            package=self.domain,
            fields=tuple(fields),
            imports=tuple(sorted(imports)),
            table_name=table_name_for(entity),
            doc=doc,
            entity=go_name,
        )
        return struct, mapped, warnings

    def _storage_extras(self, entity: EntitySpec) -> tuple[dict[str, list[str]], list[MappingWarning]]:
        """Fold constraints and indexes into per-field ``sql`` tag options."""
        extras: dict[str, list[str]] = defaultdict(list)
        warnings: list[MappingWarning] = []

        for constraint in entity.constraints:
            if not _tag_safe(constraint.name) or not _tag_safe(constraint.expression):
                warnings.append(
                    MappingWarning(
                        entity.name, "", constraint.name,
                        f"constraint {constraint.name!r} contains a backtick or ';'; dropped",
                    )
                )
                continue
            covered = _covered(entity, constraint.fields)
            if constraint.kind is ConstraintKind.UNIQUE:
                if len(covered) == 1:
                    if not covered[0].unique:
                        extras[covered[0].name].append("unique")
                else:
                    for f in covered:
                        extras[f.name].append(f"uniqueIndex:{constraint.name}")
            elif constraint.kind is ConstraintKind.CHECK:
                if not covered:
                    warnings.append(
                        MappingWarning(
                            entity.name, "", constraint.name,
                            f"check constraint {constraint.name!r} names no field to attach to; dropped",
                        )
                    )
                    continue
                extras[covered[0].name].append(f"check:{constraint.name},{constraint.expression}")
            else:
                for f in covered:
                    extras[f.name].append(f"foreignKey:{constraint.name}")
                    if constraint.expression:
                        extras[f.name].append(f"references:{constraint.expression}")

        for index in entity.indexes:
            if not _tag_safe(index.name):
                warnings.append(
                    MappingWarning(entity.name, "", index.name, f"index {index.name!r} contains a backtick or ';'; dropped")
                )
                continue
            covered = _covered(entity, index.fields)
            composite = index.kind is IndexKind.MULTI_FIELD or len(covered) > 1
            for position, f in enumerate(covered, start=1):
                if index.kind is IndexKind.HASH:
                    extras[f.name].append(f"index:{index.name},type:hash")
                elif composite:
                    extras[f.name].append(f"index:{index.name},priority:{position}")
                else:
                    extras[f.name].append(f"index:{index.name}")

        return dict(extras), warnings

    # -- Layered elements ----------------------------------------------------

    def _repository_interface(self, entity: str) -> InterfaceDecl:
        var = local_name(entity, {"ctx", "id", "context"})
        ptr = f"*{entity}"
        ctx = ParamDecl("ctx", "context.Context")
        label = snake_name(entity).replace("_", " ")
        methods = (
            MethodDecl("Create", (ctx, ParamDecl(var, ptr)), ("error",), f"Create stores a new {label}."),
            MethodDecl("GetByID", (ctx, ParamDecl("id", "string")), (ptr, "error"), f"GetByID returns the {label} stored under id."),
            MethodDecl("Update", (ctx, ParamDecl(var, ptr)), ("error",), f"Update replaces an existing {label}."),
            MethodDecl("Delete", (ctx, ParamDecl("id", "string")), ("error",), f"Delete removes the {label} stored under id."),
            MethodDecl("List", (ctx,), (f"[]{ptr}", "error"), f"List returns every stored {label}."),
        )
        return InterfaceDecl(
            name=f"{entity}Repository",
            package=self.domain,
            methods=methods,
            imports=("context",),
            doc=f"persists {pluralize(label)}.",
            entity=entity,
        )

    def _repository(self, entity: str) -> RepositoryDecl:
        return RepositoryDecl(
            name=f"Memory{entity}Repository",
            package=self.persistence,
            entity=entity,
            interface_name=f"{entity}Repository",
            domain=self.domain,
        )

    def _service(self, entity: str, validated: bool) -> ServiceDecl:
        return ServiceDecl(
            name=f"{entity}Service",
            package=self.application,
            entity=entity,
            repository_interface=f"{entity}Repository",
            domain=self.domain,
            validator=f"Validate{entity}" if validated else "",
        )

    def _handler(self, entity: str) -> HandlerDecl:
        return HandlerDecl(
            name=f"{entity}Handler",
            package=self.handlers,
            entity=entity,
            service_name=f"{entity}Service",
            service=self.application,
            domain=self.domain,
            route=route_for(entity),
        )


def dispatch(
    entity: EntitySpec, project: ProjectSpec, skeleton: ProjectSkeleton | None = None
) -> DispatchResult:
    """Dispatch one *entity* of *project*.

    Raises:
        SpecificationError: If the project or the entity is invalid; no
            element is built in that case.
    """
    return ElementDispatcher(project, skeleton).dispatch(entity)

