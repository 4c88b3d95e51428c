"""Tests for screen module generation (appbuilder.generator.modules)."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from appbuilder.categoriser import categorise, get_all_routes
from appbuilder.generator.modules import (
    FILES_PER_MODULE,
    feature_dir,
    generate_modules,
    import_path,
    module_dir,
    validate_generated_modules,
)
from appbuilder.parser import parse


@pytest.fixture
def routes(sample_config):
    return get_all_routes(categorise(parse(sample_config).normalised).categorised)


class TestPaths:
    @pytest.mark.unit
    def test_feature_dir_uses_app_slug(self, tmp_path: Path):
        assert feature_dir("Demo Bank", tmp_path) == (
            tmp_path / "src" / "modules" / "feature" / "generated-demo-bank"
        )

    @pytest.mark.unit
    def test_import_path_relative_to_router(self, tmp_path: Path):
        router_dir = tmp_path / "src" / "modules" / "core" / "figma-router"
        assert import_path("DemoBank", "cards-tab", tmp_path, router_dir) == (
            "../../feature/generated-demobank/cards-tab"
        )

    @pytest.mark.unit
    def test_import_path_gets_dot_prefix(self, tmp_path: Path):
        target = module_dir("DemoBank", "cards-tab", tmp_path)
        assert import_path("DemoBank", "cards-tab", tmp_path, target.parent) == "./cards-tab"


class TestGenerateModules:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_writes_two_files_per_route(self, tmp_path: Path, routes):
        result = await generate_modules("DemoBank", routes, tmp_path)
        assert result.success is True
        assert len(result.modules) == len(routes) == 6
        assert result.total_files == len(routes) * FILES_PER_MODULE
        assert validate_generated_modules(result) == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_screen_builder_module(self, tmp_path: Path, routes):
        await generate_modules("DemoBank", routes, tmp_path)
        target = module_dir("DemoBank", "transfer-details", tmp_path)

        index = (target / "index.tsx").read_text(encoding="utf-8")
        assert "const TransferDetails: React.FC<TransferDetailsProps>" in index
        assert "const { ScreenBuilder } = Components;" in index
        assert "from '../../../../utils/imports'" in index
        assert "export default TransferDetails;" in index

        data = json.loads((target / "screenData.json").read_text(encoding="utf-8"))
        assert data["id"] == "transfer-details"
        assert data["name"] == "Transfer Details"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_journey_module_carries_config(self, tmp_path: Path, routes):
        await generate_modules("DemoBank", routes, tmp_path)
        index = (module_dir("DemoBank", "summary-journey", tmp_path) / "index.tsx").read_text(
            encoding="utf-8"
        )
        assert 'journeyType={"CoreJourney"}' in index
        assert '"customerId": "cust-1"' in index
        assert '"useMockMode": true' in index


    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_component_id_is_a_js_string_literal(self, tmp_path: Path, sample_config, screen_factory):
        sample_config["components"] = [screen_factory("1:1", 'quote"id<x>', "slide")]
        routes = get_all_routes(categorise(parse(sample_config).normalised).categorised)
        await generate_modules("DemoBank", routes, tmp_path)
        index = (module_dir("DemoBank", 'quote"id<x>', tmp_path) / "index.tsx").read_text(
            encoding="utf-8"
        )
        assert 'id={"quote\\"id\\u003cx\\u003e"}' in index
        assert 'id="quote' not in index

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_write_failure_is_collected(self, tmp_path: Path, routes):
        with patch("appbuilder.generator.modules.write_json", side_effect=OSError("disk full")):
            result = await generate_modules("DemoBank", routes[:2], tmp_path)
        assert result.success is False
        assert len(result.errors) == 2
        assert "disk full" in result.errors[0]
        problems = validate_generated_modules(result)
        assert len(problems) == 2
        assert "was not written" in problems[0]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_validate_flags_missing_file(self, tmp_path: Path, routes):
        result = await generate_modules("DemoBank", routes[:1], tmp_path)
        result.modules[0].files[1].unlink()
        problems = validate_generated_modules(result)
        assert problems and "not found" in problems[0]
