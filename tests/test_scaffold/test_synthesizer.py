"""Unit tests for skeleton synthesis (goforge.scaffold.synthesizer, goforge.scaffold.archetypes)."""

from __future__ import annotations

from pathlib import Path

import pytest

from goforge.build.syntax import SyntaxChecker
from goforge.generator.accumulator import ContentKind
from goforge.scaffold.archetypes import ARCHETYPES, LAYERS, normalize_archetype_name, supported_archetypes
from goforge.scaffold.synthesizer import get_archetype, synthesize
from goforge.spec.errors import SpecificationError


class TestArchetypeTable:
    @pytest.mark.unit
    def test_supported_archetypes(self):
        assert supported_archetypes() == ["api", "cli", "library", "microservice", "web", "worker"]

    @pytest.mark.unit
    @pytest.mark.parametrize("name", sorted(ARCHETYPES))
    def test_every_archetype_maps_every_layer(self, name):
        assert set(ARCHETYPES[name].layout) == set(LAYERS)

    @pytest.mark.unit
    def test_normalize_name(self):
        assert normalize_archetype_name(" Micro-Service ") == "micro_service"

    @pytest.mark.unit
    def test_unknown_archetype(self):
        with pytest.raises(SpecificationError, match="unsupported archetype 'unknown-type'"):
            get_archetype("unknown-type")

    @pytest.mark.unit
    def test_lookup_is_case_insensitive(self):
        assert get_archetype("API").name == "api"


class TestSynthesize:
    @pytest.mark.unit
    def test_microservice_skeleton(self, tmp_path: Path):
        skeleton = synthesize("microservice", "github.com/acme/shop", root=tmp_path, project_name="Shop")
        assert skeleton.archetype == "microservice"
        assert skeleton.package_name == "shop"
        assert skeleton.entrypoint == "cmd/server"
        assert "internal/domain" in skeleton.directories
        assert skeleton.file_paths() == [
            "go.mod", ".gitignore", "Makefile", "README.md", "Dockerfile", "cmd/server/main.go",
        ]
        assert skeleton.package_for("domain").name == "domain"
        assert skeleton.package_for("persistence").path == "internal/infrastructure/persistence"

    @pytest.mark.unit
    def test_go_mod_content(self):
        skeleton = synthesize("api", "github.com/acme/notes", go_version="1.23")
        go_mod = next(f for f in skeleton.files if f.path == "go.mod")
        assert go_mod.content == "module github.com/acme/notes\n\ngo 1.23\n"
        assert go_mod.kind is ContentKind.MANIFEST

    @pytest.mark.unit
    def test_cli_paths_use_package_name(self):
        skeleton = synthesize("cli", "github.com/acme/todo-cli")
        assert "cmd/todocli" in skeleton.directories
        assert "cmd/todocli/main.go" in skeleton.file_paths()
        main = next(f for f in skeleton.files if f.path == "cmd/todocli/main.go")
        assert '"github.com/acme/todo-cli/internal/commands"' in main.content

    @pytest.mark.unit
    def test_library_has_no_entrypoint(self):
        skeleton = synthesize("library", "example.com/kit")
        assert skeleton.entrypoint == ""
        makefile = next(f for f in skeleton.files if f.path == "Makefile")
        assert "\tgo build ./...\n" in makefile.content
        assert "run:" not in makefile.content

    @pytest.mark.unit
    def test_web_serves_static_files(self):
        skeleton = synthesize("web", "example.com/site", project_name="Site")
        main = next(f for f in skeleton.files if f.path == "cmd/web/main.go")
        assert 'http.FileServer(http.Dir("web/static"))' in main.content
        assert "web/static/index.html" in skeleton.file_paths()

    @pytest.mark.unit
    def test_synthesis_is_deterministic(self):
        first = synthesize("worker", "example.com/jobs", description="Jobs")
        second = synthesize("worker", "example.com/jobs", description="Jobs")
        assert first == second

    @pytest.mark.unit
    def test_invalid_module(self):
        with pytest.raises(SpecificationError, match="invalid module identifier"):
            synthesize("api", "not a module")

    @pytest.mark.unit
    @pytest.mark.parametrize("name", sorted(ARCHETYPES))
    def test_boilerplate_passes_syntax_checks(self, name):
        skeleton = synthesize(name, "github.com/acme/sample", project_name="Sample", description='A "quoted" app')
        checked, issues = SyntaxChecker().check_files(skeleton.files)
        assert checked >= 2
        assert issues == []
