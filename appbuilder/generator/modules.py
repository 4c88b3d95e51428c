"""Screen module generation.

Writes one feature module per categorised route: an ``index.tsx`` that
renders the shared ``ScreenBuilder`` (or ``Journey``) primitive and a
``screenData.json`` holding the cleaned component properties.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

from jinja2 import TemplateError
from pydantic import BaseModel, Field

from ..categoriser import RouteComponent
from ..utils import slugify, write_json
from .templates import TemplateRenderer, get_renderer, to_component_name, to_file_name

logger = logging.getLogger(__name__)

FILES_PER_MODULE = 2


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------

class GeneratedModule(BaseModel):
    route_id: str
    component_id: str
    component_name: str
    file_name: str
    module_dir: Path
    files: list[Path] = Field(default_factory=list)
    success: bool = True
    error: Optional[str] = None


class ModuleGenerationResult(BaseModel):
    success: bool
    modules: list[GeneratedModule] = Field(default_factory=list)
    total_files: int = 0
    errors: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

def feature_dir(app_name: str, base_path: Path) -> Path:
    """``src/modules/feature/generated-<app-slug>`` inside the app."""
    return base_path / "src" / "modules" / "feature" / f"generated-{slugify(app_name)}"


def module_dir(app_name: str, component_id: str, base_path: Path) -> Path:
    return feature_dir(app_name, base_path) / to_file_name(component_id)


def import_path(app_name: str, component_id: str, base_path: Path, router_dir: Path) -> str:
    """Module import specifier as seen from *router_dir*."""
    relative = os.path.relpath(module_dir(app_name, component_id, base_path), router_dir)
    relative = relative.replace(os.sep, "/")
    if not relative.startswith("."):
        relative = f"./{relative}"
    return relative


def _imports_path(target_dir: Path, base_path: Path) -> str:
    relative = os.path.relpath(base_path / "src" / "utils" / "imports", target_dir)
    return relative.replace(os.sep, "/")


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def _module_context(route: RouteComponent, target_dir: Path, base_path: Path) -> dict:
    component = route.component
    journey = None
    if component.journey_config is not None:
        journey = component.journey_config.model_dump(
            by_alias=True, exclude={"journey_type"}, exclude_none=True
        )
    return {
        "component_name": to_component_name(component.id),
        "component_id": component.id,
        "node_id": component.node_id,
        "imports_path": _imports_path(target_dir, base_path),
        "journey": journey,
        "journey_type": component.journey_type.value if component.journey_type else None,
    }


async def generate_module(
    app_name: str,
    route: RouteComponent,
    base_path: Path,
    renderer: Optional[TemplateRenderer] = None,
) -> GeneratedModule:
    """Write ``index.tsx`` and ``screenData.json`` for one route.

    Failures are captured on the returned record rather than raised.
    """
    renderer = renderer or get_renderer()
    component = route.component
    target = module_dir(app_name, component.id, base_path)
    module = GeneratedModule(
        route_id=route.route_id,
        component_id=component.id,
        component_name=to_component_name(component.id),
        file_name=to_file_name(component.id),
        module_dir=target,
    )

    try:
        index_file = await renderer.render_to_file(
            "module_index.tsx.j2", target / "index.tsx", _module_context(route, target, base_path)
        )
        module.files.append(index_file)

        data_file = target / "screenData.json"
        await asyncio.to_thread(write_json, component.properties, data_file)
        module.files.append(data_file)
    except (OSError, TemplateError) as exc:
        logger.error("Failed to generate module %s: %s", component.id, exc)
        module.success = False
        module.error = str(exc)

    return module


async def generate_modules(
    app_name: str,
    routes: list[RouteComponent],
    base_path: Path,
    router_module: str = "figma-router",
    renderer: Optional[TemplateRenderer] = None,
) -> ModuleGenerationResult:
    """Generate a feature module for every route in *routes*.

    Each route is attempted independently; one failed write does not stop the
    others. Routes that render the same component share one module, written
    from the last such route. ``router_module`` is accepted so callers can pass the same layout
    settings to both generators.
    """
    modules: list[GeneratedModule] = []
    errors: list[str] = []

    unique = {route.component.id: route for route in routes}
    for route in unique.values():
        module = await generate_module(app_name, route, base_path, renderer)
        modules.append(module)
        if not module.success:
            errors.append(f"Module '{module.component_id}': {module.error}")

    total_files = sum(len(m.files) for m in modules)
    logger.debug(
        "Generated %d modules (%d files) for router %s", len(modules), total_files, router_module
    )
    return ModuleGenerationResult(
        success=not errors, modules=modules, total_files=total_files, errors=errors
    )


def validate_generated_modules(result: ModuleGenerationResult) -> list[str]:
    """Check that every module reported as written exists and is non-empty."""
    problems: list[str] = []
    for module in result.modules:
        if not module.success:
            problems.append(f"Module '{module.component_id}' was not written: {module.error}")
            continue
        if len(module.files) != FILES_PER_MODULE:
            problems.append(
                f"Module '{module.component_id}': expected {FILES_PER_MODULE} files, "
                f"found {len(module.files)}"
            )
        for path in module.files:
            if not path.is_file():
                problems.append(f"Module file not found: {path}")
            elif path.stat().st_size == 0:
                problems.append(f"Module file is empty: {path}")
    return problems
