"""goforge project structure synthesizer.

Builds the directory layout and boilerplate (go.mod, Makefile, .gitignore,
README, entrypoint, Dockerfile) for one of the static archetypes:
microservice, api, cli, library, web and worker.

Quick usage::

    from goforge.scaffold import synthesize

    skeleton = synthesize("microservice", "github.com/acme/shop", root="/tmp/shop")
    skeleton.directories      # ("cmd/server", "internal/domain", ...)
"""

from goforge.scaffold.archetypes import ARCHETYPES, Archetype, BoilerplateFile, supported_archetypes
from goforge.scaffold.layout import LayoutReport, inspect_layout
from goforge.scaffold.synthesizer import ProjectSkeleton, get_archetype, synthesize

__all__ = [
    "ARCHETYPES",
    "Archetype",
    "BoilerplateFile",
    "LayoutReport",
    "ProjectSkeleton",
    "get_archetype",
    "inspect_layout",
    "supported_archetypes",
    "synthesize",
]
