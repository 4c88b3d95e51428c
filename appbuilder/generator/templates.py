"""Jinja2 template rendering for generated app sources.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``appbuilder/generator/templates/`` directory and renders screen modules,
router tables, the esbuild build script and the prototype HTML pages.
"""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..utils import write_text


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


# ---------------------------------------------------------------------------
# Naming helpers (also exposed as filters)
# ---------------------------------------------------------------------------

def to_component_name(identifier: str) -> str:
    """Convert a component id to a PascalCase React component name.

    Ids that start with a digit get a ``Generated`` prefix so the result is
    a valid identifier.

    Examples::

        to_component_name("summary-screen") -> "SummaryScreen"
        to_component_name("2fa-setup") -> "Generated2faSetup"
    """
    parts = re.split(r"[^A-Za-z0-9]+", identifier)
    name = "".join(part[:1].upper() + part[1:].lower() for part in parts if part)
    if not name or name[0].isdigit():
        name = f"Generated{name}"
    return name


def to_file_name(identifier: str) -> str:
    """Lowercase kebab-case directory name (``[^a-z0-9-]`` becomes ``-``)."""
    return re.sub(r"[^a-z0-9-]", "-", identifier.lower())


def js_string(value: Any) -> str:
    """Render *value* as a single-quoted JavaScript string literal body."""
    text = str(value)
    return text.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")


def _json_filter(value: Any, indent: int | None = None) -> str:
    return json.dumps(value, indent=indent, ensure_ascii=False, default=str)


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders the ``.j2`` templates that make up a generated app.

    Templates are rendered with a context dictionary carrying route tables,
    component properties or prototype metadata.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html.j2"], default_for_string=False),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["pascal_case"] = to_component_name
        self.env.filters["kebab_case"] = to_file_name
        self.env.filters["js_string"] = js_string
        self.env.filters["tojson_compact"] = _json_filter

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"routers/routes.tsx.j2"``).
            context: Dictionary of variables available inside the template.
        """
        template = self.env.get_template(template_path)
        return template.render(**context)

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        """Render an inline template string with the provided context."""
        template = self.env.from_string(template_string)
        return template.render(**context)

    async def render_to_file(
        self,
        template_path: str,
        output_path: str | Path,
        context: dict[str, Any],
    ) -> Path:
        """Render a template and write the result to *output_path*.

        Parent directories are created automatically.
        """
        content = self.render(template_path, context)
        out = Path(output_path)
        await asyncio.to_thread(write_text, out, content)
        return out


_default_renderer: TemplateRenderer | None = None


def get_renderer() -> TemplateRenderer:
    """Shared renderer over the packaged templates."""
    global _default_renderer
    if _default_renderer is None:
        _default_renderer = TemplateRenderer()
    return _default_renderer
