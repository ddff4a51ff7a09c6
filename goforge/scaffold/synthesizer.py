"""Project skeleton synthesis.

``synthesize`` looks an archetype up in the static table and renders its
directory list and boilerplate files for one module.  The result is pure
data; :class:`goforge.build.writer.FilesystemWriter` puts it on disk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from goforge.generator.accumulator import GeneratedFile
from goforge.generator.elements import PackageRef
from goforge.mapping.naming import is_valid_module_path, package_name
from goforge.scaffold.archetypes import (
    ARCHETYPES,
    Archetype,
    normalize_archetype_name,
    supported_archetypes,
)
from goforge.spec.errors import SpecificationError
from goforge.templating.engine import TemplateEngine


@dataclass(frozen=True)
class ProjectSkeleton:
    """The archetype-derived layout of one project, independent of entities."""

    archetype: str
    module_name: str
    package_name: str
    root: Path
    directories: tuple[str, ...]
    files: tuple[GeneratedFile, ...]
    layout: dict[str, PackageRef] = field(default_factory=dict)
    default_features: tuple[str, ...] = ()
    entrypoint: str = ""

    def package_for(self, layer: str) -> PackageRef:
        """Return the package code elements of *layer* are generated into."""
        return self.layout[layer]

    def file_paths(self) -> list[str]:
        return [f.path for f in self.files]


def get_archetype(name: str) -> Archetype:
    """Look up an archetype by name.

    Raises:
        SpecificationError: For a name the static table does not contain.
    """
    archetype = ARCHETYPES.get(normalize_archetype_name(name))
    if archetype is None:
        raise SpecificationError(
            f"unsupported archetype {name!r}; expected one of: {', '.join(supported_archetypes())}"
        )
    return archetype


def synthesize(
    archetype: str,
    module_name: str,
    *,
    root: str | Path = ".",
    project_name: str = "",
    description: str = "",
    go_version: str = "1.22",
    engine: TemplateEngine | None = None,
) -> ProjectSkeleton:
    """Build the skeleton for *archetype* and *module_name*.

    Raises:
        SpecificationError: If the archetype is unknown or the module path
            is not a valid Go module path.
    """
    spec = get_archetype(archetype)
    if not is_valid_module_path(module_name):
        raise SpecificationError(f"invalid module identifier {module_name!r}")

    engine = engine if engine is not None else TemplateEngine()
    pkg = package_name(module_name)
    project = project_name or module_name.rsplit("/", 1)[-1]

    context: dict = {
        "module_name": module_name,
        "package_name": pkg,
        "project_name": project,
        "description": description or f"A {spec.name} project",
        "go_version": go_version,
        "serve_static": spec.serve_static,
    }
    entrypoint = engine.render_text(spec.entrypoint, context, slug="entrypoint") if spec.entrypoint else ""
    context["entrypoint"] = entrypoint
    context["build_target"] = f"./{entrypoint}" if entrypoint else "./..."

    directories = tuple(engine.render_text(d, context, slug="directory") for d in spec.directories)
    context["directories"] = list(directories)

    files = tuple(
        GeneratedFile(
            path=engine.render_text(bp.path, context, slug=bp.path),
            content=engine.render_text(bp.template, context, slug=bp.path),
            kind=bp.kind,
            package=pkg,
        )
        for bp in spec.files
    )

    layout = {
        layer: PackageRef(name=package_name(path), path=path)
        for layer, path in spec.layout.items()
    }

    return ProjectSkeleton(
        archetype=spec.name,
        module_name=module_name,
        package_name=pkg,
        root=Path(root),
        directories=directories,
        files=files,
        layout=layout,
        default_features=spec.default_features,
        entrypoint=entrypoint,
    )
