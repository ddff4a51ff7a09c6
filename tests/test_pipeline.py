"""Unit tests for the generation orchestrator (goforge.pipeline).

Tests cover:
- create_template_store selection
- GenerationPipeline.run: report contents, report file, output location
- Requests rejected before anything is written
- Template cache sharing between requests
- Build target selection for binary builds
- The CLI entry point and its exit codes
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from goforge.build.results import BuildStatus
from goforge.config import Config, TemplateStoreConfig
from goforge.pipeline import GenerationPipeline, create_template_store, main
from goforge.spec.errors import SpecificationError
from goforge.spec.models import EntitySpec, FieldSpec, ProjectSpec, RelationshipSpec
from goforge.templating.engine import TemplateParameter, TemplateRecord
from goforge.templating.store import BuiltinTemplateStore, HttpTemplateStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _pipeline(config: Config, compiler) -> GenerationPipeline:
    return GenerationPipeline(config, compiler=compiler)


# ---------------------------------------------------------------------------
# create_template_store
# ---------------------------------------------------------------------------


class TestCreateTemplateStore:
    @pytest.mark.unit
    def test_builtin_by_default(self):
        assert isinstance(create_template_store(Config()), BuiltinTemplateStore)

    @pytest.mark.unit
    def test_http_when_url_configured(self):
        config = Config(templates=TemplateStoreConfig(url="http://templates.local", timeout=3))
        store = create_template_store(config)
        assert isinstance(store, HttpTemplateStore)


# ---------------------------------------------------------------------------
# GenerationPipeline.run
# ---------------------------------------------------------------------------


class TestGenerationPipelineRun:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_shop_generation(self, shop_spec, offline_config, fake_compiler):
        report = await _pipeline(offline_config, fake_compiler).run(shop_spec)
        root = offline_config.output_dir

        assert report.success is True
        assert report.project == "Shop"
        assert report.archetype == "microservice"
        assert report.build_result.status is BuildStatus.SUCCEEDED
        assert "internal/domain/order.go" in report.file_paths
        assert "internal/domain/new_order.go" in report.file_paths
        assert report.file_paths[0] == "go.mod"
        assert (root / "internal/infrastructure/persistence/memory_customer_repository.go").is_file()
        assert report.generated_file_count == len(report.file_paths)
        assert fake_compiler.calls[0][0] == "compile"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_mapping_warnings_are_reported(self, shop_spec, offline_config, fake_compiler):
        report = await _pipeline(offline_config, fake_compiler).run(shop_spec)
        assert report.mapping_warnings == [
            "Order.total_amount: rule 'min' is not supported for decimal fields; dropped"
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_report_file_is_saved(self, shop_spec, offline_config, fake_compiler):
        report = await _pipeline(offline_config, fake_compiler).run(shop_spec)
        saved = json.loads(offline_config.report_path().read_text(encoding="utf-8"))
        assert saved["project"] == "Shop"
        assert saved["generated_file_count"] == report.generated_file_count
        assert [s["stage"] for s in saved["stages"]][-1] == "reported"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_accepts_a_specification_path(self, shop_spec_file, offline_config, fake_compiler):
        report = await _pipeline(offline_config, fake_compiler).run(shop_spec_file)
        assert report.success is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_output_path_override(self, tmp_path, shop_spec, offline_config, fake_compiler):
        target = tmp_path / "elsewhere"
        spec = shop_spec.model_copy(update={"output_path": str(target)})
        report = await _pipeline(offline_config, fake_compiler).run(spec)

        assert report.output_dir == str(target)
        assert (target / "go.mod").is_file()
        assert offline_config.report_path(target).is_file()
        assert not offline_config.output_dir.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_binary_targets_the_entrypoint(self, shop_spec, offline_config, fake_compiler):
        offline_config.pipeline.produce_binary = True
        offline_config.pipeline.binary_name = "shop"
        report = await _pipeline(offline_config, fake_compiler).run(shop_spec)

        kind, _, kwargs = fake_compiler.calls[0]
        assert kind == "build"
        assert kwargs["target"] == "./cmd/server"
        assert kwargs["output"] == offline_config.output_dir / "bin" / "shop"
        assert report.build_result.artifact is not None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_library_binary_builds_every_package(self, shop_spec, offline_config, fake_compiler):
        offline_config.pipeline.produce_binary = True
        spec = shop_spec.model_copy(update={"archetype": "library"})
        await _pipeline(offline_config, fake_compiler).run(spec)
        assert fake_compiler.calls[0][2]["target"] == "./..."

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_format_and_tidy_follow_configuration(self, shop_spec, offline_config, make_tooling_compiler):
        compiler = make_tooling_compiler()
        offline_config.pipeline.tidy_modules = True
        report = await _pipeline(offline_config, compiler).run(shop_spec)

        assert [call[0] for call in compiler.calls] == ["format", "tidy", "compile"]
        assert "internal/domain/order.go" in compiler.calls[0][2]["files"]
        assert report.success is True

    @pytest.mark.unit
    def test_toolchain_built_from_configuration(self, offline_config):
        offline_config.toolchain.go_binary = "/opt/go/bin/go"
        offline_config.toolchain.gofmt_binary = "/opt/go/bin/gofmt"
        compiler = GenerationPipeline(offline_config).compiler
        assert compiler.go_binary == "/opt/go/bin/go"
        assert compiler.gofmt_binary == "/opt/go/bin/gofmt"

    @pytest.mark.unit
    def test_empty_injected_cache_is_kept(self, offline_config, fake_compiler, builtin_cache):
        assert len(builtin_cache) == 0
        pipeline = GenerationPipeline(offline_config, compiler=fake_compiler, cache=builtin_cache)
        assert pipeline.cache is builtin_cache

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalidating_the_injected_cache_refetches(
        self, shop_spec, offline_config, fake_compiler, builtin_cache
    ):
        pipeline = GenerationPipeline(offline_config, compiler=fake_compiler, cache=builtin_cache)
        await pipeline.run(shop_spec)
        assert "struct" in builtin_cache
        misses = builtin_cache.misses

        assert builtin_cache.invalidate("struct") is True
        await pipeline.run(shop_spec)
        assert builtin_cache.misses == misses + 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cache_is_shared_between_requests(self, shop_spec, offline_config, fake_compiler, builtin_cache):
        pipeline = GenerationPipeline(offline_config, compiler=fake_compiler, cache=builtin_cache)
        await pipeline.run(shop_spec)
        misses = builtin_cache.misses
        await pipeline.run(shop_spec)
        assert builtin_cache.misses == misses
        assert builtin_cache.hits > 0


# ---------------------------------------------------------------------------
# Rejected requests
# ---------------------------------------------------------------------------


class TestRejectedRequests:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_archetype_writes_nothing(self, shop_spec, offline_config, fake_compiler):
        spec = shop_spec.model_copy(update={"archetype": "unknown-type"})
        with pytest.raises(SpecificationError, match="unsupported archetype"):
            await _pipeline(offline_config, fake_compiler).run(spec)
        assert not offline_config.output_dir.exists()
        assert fake_compiler.calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unresolved_target_writes_nothing(self, offline_config, fake_compiler):
        spec = ProjectSpec(
            name="Shop",
            module="github.com/acme/shop",
            entities=[EntitySpec(name="Order", relationships=[RelationshipSpec(name="lines", target="OrderLine")])],
        )
        with pytest.raises(SpecificationError) as exc_info:
            await _pipeline(offline_config, fake_compiler).run(spec)
        assert "OrderLine" in exc_info.value.errors[0]
        assert not offline_config.output_dir.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_generated_member_clash_writes_nothing(self, offline_config, fake_compiler):
        spec = ProjectSpec(
            name="Shop",
            module="github.com/acme/shop",
            entities=[EntitySpec(name="Order", fields=[FieldSpec(name="table_name", required=True)])],
        )
        with pytest.raises(SpecificationError, match="generated TableName member"):
            await _pipeline(offline_config, fake_compiler).run(spec)
        assert not offline_config.output_dir.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_template_parameter_writes_nothing(
        self, shop_spec, offline_config, fake_compiler, builtin_cache
    ):
        builtin_cache.put(
            TemplateRecord(
                slug="struct",
                content="package {{ package }}\n\n// owner: {{ owner }}\n",
                parameters=[TemplateParameter(name="package"), TemplateParameter(name="owner")],
            )
        )
        pipeline = GenerationPipeline(offline_config, compiler=fake_compiler, cache=builtin_cache)
        with pytest.raises(SpecificationError, match="required parameter owner is missing"):
            await pipeline.run(shop_spec)
        assert not offline_config.output_dir.exists()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestMain:
    @pytest.mark.unit
    def test_generates_without_compiling(self, tmp_path: Path, shop_spec_file: Path):
        out = tmp_path / "cli-out"
        argv = ["goforge", str(shop_spec_file), "-o", str(out), "--skip-compile", "--skip-format"]
        with patch("sys.argv", argv):
            main()
        assert (out / "internal/domain/order.go").is_file()
        saved = json.loads((out / "goforge-report.json").read_text(encoding="utf-8"))
        assert saved["build_result"]["status"] == "skipped"

    @pytest.mark.unit
    def test_missing_specification_file(self, tmp_path: Path):
        with patch("sys.argv", ["goforge", str(tmp_path / "absent.yaml")]):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1

    @pytest.mark.unit
    def test_specification_error_exits_2(self, tmp_path: Path, shop_spec_file: Path):
        out = tmp_path / "cli-out"
        argv = ["goforge", str(shop_spec_file), "-o", str(out), "--archetype", "unknown-type"]
        with patch("sys.argv", argv):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 2
        assert not out.exists()

    @pytest.mark.unit
    def test_failed_build_exits_1(self, tmp_path: Path, shop_spec_file: Path, failing_compiler):
        out = tmp_path / "cli-out"
        argv = ["goforge", str(shop_spec_file), "-o", str(out), "--module", "example.com/shop"]
        with patch("sys.argv", argv), patch("goforge.pipeline.GoToolchain", return_value=failing_compiler):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1
        go_mod = (out / "go.mod").read_text(encoding="utf-8")
        assert go_mod.startswith("module example.com/shop\n")

    @pytest.mark.unit
    def test_tidy_and_skip_format_flags(self, tmp_path: Path, shop_spec_file: Path, make_tooling_compiler):
        compiler = make_tooling_compiler()
        out = tmp_path / "cli-out"
        argv = ["goforge", str(shop_spec_file), "-o", str(out), "--tidy", "--skip-format"]
        with patch("sys.argv", argv), patch("goforge.pipeline.GoToolchain", return_value=compiler):
            main()
        assert [call[0] for call in compiler.calls] == ["tidy", "compile"]
