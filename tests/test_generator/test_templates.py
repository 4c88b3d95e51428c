"""Unit tests for the Jinja2 renderer and naming helpers (appbuilder.generator.templates)."""

from __future__ import annotations

from pathlib import Path

import pytest

from appbuilder.generator.templates import (
    TemplateRenderer,
    get_renderer,
    js_string,
    to_component_name,
    to_file_name,
)


class TestNaming:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "identifier, expected",
        [
            ("summary-screen", "SummaryScreen"),
            ("everyday", "Everyday"),
            ("account_settings v2", "AccountSettingsV2"),
            ("2fa-setup", "Generated2faSetup"),
            ("---", "Generated"),
            ("component-381-12", "Component38112"),
        ],
    )
    def test_to_component_name(self, identifier, expected):
        assert to_component_name(identifier) == expected

    @pytest.mark.unit
    def test_to_file_name(self):
        assert to_file_name("Transfer Details_2") == "transfer-details-2"
        assert to_file_name("summary") == "summary"

    @pytest.mark.unit
    def test_js_string_escapes_quotes(self):
        assert js_string("It's\nhere") == "It\\'s\\nhere"


class TestTemplateRenderer:
    @pytest.mark.unit
    def test_packaged_templates_present(self):
        root = get_renderer().template_dir
        templates = {str(p.relative_to(root)) for p in root.rglob("*.j2")}
        assert "module_index.tsx.j2" in templates
        assert "viewer.html.j2" in templates
        assert "esbuild.build.mjs.j2" in templates
        assert str(Path("routers") / "routes.tsx.j2") in templates

    @pytest.mark.unit
    def test_filters_available_in_string_templates(self):
        renderer = TemplateRenderer()
        out = renderer.render_string(
            "{{ name | pascal_case }}/{{ name | kebab_case }}/{{ data | tojson_compact }}",
            {"name": "my screen", "data": {"a": 1}},
        )
        assert out == 'MyScreen/my-screen/{"a": 1}'

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_render_to_file_creates_parents(self, tmp_path: Path):
        template_dir = tmp_path / "tpl"
        template_dir.mkdir()
        (template_dir / "hello.txt.j2").write_text("Hello {{ who }}!\n", encoding="utf-8")
        renderer = TemplateRenderer(template_dir)

        out = await renderer.render_to_file("hello.txt.j2", tmp_path / "a" / "b" / "hello.txt", {"who": "app"})
        assert out.read_text(encoding="utf-8") == "Hello app!\n"

    @pytest.mark.unit
    def test_html_templates_are_autoescaped(self):
        html = get_renderer().render(
            "bundle_index.html.j2", {"app_name": "<script>alert(1)</script>"}
        )
        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html

    @pytest.mark.unit
    def test_get_renderer_is_shared(self):
        assert get_renderer() is get_renderer()
