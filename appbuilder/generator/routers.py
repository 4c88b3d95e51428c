"""Router table generation.

Writes ``carouselRoutes.tsx``, ``bottomNavRoutes.tsx`` and ``childRoutes.tsx``
into ``src/modules/core/<router_module>/``. Each file imports every route's
generated module and exports an ordered route table.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Literal, Optional

from jinja2 import TemplateError
from pydantic import BaseModel, Field

from ..categoriser import CategorisedComponents, RouteComponent
from ..utils import write_text
from .modules import import_path
from .templates import TemplateRenderer, get_renderer, to_component_name

logger = logging.getLogger(__name__)

RouterKind = Literal["carousel", "bottomNav", "child"]

ROUTER_FILES: dict[str, str] = {
    "carousel": "carouselRoutes.tsx",
    "bottomNav": "bottomNavRoutes.tsx",
    "child": "childRoutes.tsx",
}

_ROUTER_SHAPES: dict[str, dict] = {
    "carousel": {
        "interface_name": "CarouselRoute",
        "export_name": "carouselRoutes",
        "type_union": None,
        "leading_home": False,
        "empty_label": "carousel",
    },
    "bottomNav": {
        "interface_name": "BottomNavRoute",
        "export_name": "bottomNavRoutes",
        "type_union": "'tab' | 'modal'",
        "leading_home": True,
        "empty_label": "bottom nav",
    },
    "child": {
        "interface_name": "ChildRoute",
        "export_name": "childRoutes",
        "type_union": "'slide' | 'modal' | 'full'",
        "leading_home": False,
        "empty_label": "child",
    },
}

_IMPORT_LINE = re.compile(r"^import \w+ from '\.", re.MULTILINE)


class RouterImport(BaseModel):
    component_name: str
    import_path: str


class GeneratedRouter(BaseModel):
    kind: RouterKind
    file_path: Path
    content: str = ""
    imports: list[RouterImport] = Field(default_factory=list)
    route_count: int = 0
    written: bool = False
    success: bool = False
    error: Optional[str] = None


class RouterGenerationResult(BaseModel):
    success: bool
    routers: list[GeneratedRouter] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


def router_directory(base_path: Path, router_module: str = "figma-router") -> Path:
    """Directory inside a generated app that holds the router tables."""
    return base_path / "src" / "modules" / "core" / router_module


def _route_context(route: RouteComponent) -> dict:
    return {
        "route_id": route.route_id,
        "name": route.name,
        "title": route.title,
        "type": route.type or "slide",
        "component_name": to_component_name(route.component.id),
    }


async def generate_router(
    kind: RouterKind,
    app_name: str,
    routes: list[RouteComponent],
    base_path: Path,
    router_dir: Path,
    renderer: Optional[TemplateRenderer] = None,
) -> GeneratedRouter:
    """Render and write a single router table. Never raises."""
    renderer = renderer or get_renderer()
    file_path = router_dir / ROUTER_FILES[kind]
    imports: list[RouterImport] = []
    for route in routes:
        name = to_component_name(route.component.id)
        # one import per module even when two routes render the same component
        if any(imp.component_name == name for imp in imports):
            continue
        imports.append(
            RouterImport(
                component_name=name,
                import_path=import_path(app_name, route.component.id, base_path, router_dir),
            )
        )
    router = GeneratedRouter(
        kind=kind, file_path=file_path, imports=imports, route_count=len(routes)
    )

    context = {
        **_ROUTER_SHAPES[kind],
        "imports": [imp.model_dump() for imp in imports],
        "routes": [_route_context(route) for route in routes],
    }
    try:
        router.content = renderer.render("routers/routes.tsx.j2", context)
        await asyncio.to_thread(write_text, file_path, router.content)
    except (OSError, TemplateError) as exc:
        logger.error("Failed to write %s: %s", file_path.name, exc)
        router.error = str(exc)
        return router

    router.written = True
    router.success = True
    return router


async def generate_routers(
    app_name: str,
    categorised: CategorisedComponents,
    base_path: Path,
    router_module: str = "figma-router",
    renderer: Optional[TemplateRenderer] = None,
) -> RouterGenerationResult:
    """Write the three router tables for *categorised*.

    Route order is taken from *categorised* as-is, so callers sort first.
    """
    target_dir = router_directory(base_path, router_module)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return RouterGenerationResult(
            success=False, errors=[f"Failed to create router directory: {exc}"]
        )

    buckets: list[tuple[RouterKind, list[RouteComponent]]] = [
        ("carousel", categorised.carousel_routes),
        ("bottomNav", categorised.bottom_nav_routes),
        ("child", categorised.child_routes),
    ]
    routers: list[GeneratedRouter] = []
    errors: list[str] = []
    for kind, routes in buckets:
        router = await generate_router(kind, app_name, routes, base_path, target_dir, renderer)
        routers.append(router)
        if not router.success:
            errors.append(f"{ROUTER_FILES[kind]}: {router.error}")

    return RouterGenerationResult(success=not errors, routers=routers, errors=errors)


def validate_generated_routers(result: RouterGenerationResult) -> list[str]:
    """Confirm each router exists, is non-empty and imports each routed module once."""
    problems: list[str] = []
    for router in result.routers:
        name = ROUTER_FILES[router.kind]
        if not router.written:
            problems.append(f"Router '{name}' was not written to disk")
            continue
        if not router.file_path.is_file():
            problems.append(f"Router file not found: {router.file_path}")
            continue
        content = router.file_path.read_text(encoding="utf-8")
        if not content.strip():
            problems.append(f"Router '{name}' has empty content")
            continue
        import_count = len(_IMPORT_LINE.findall(content))
        if import_count != len(router.imports):
            problems.append(
                f"Router '{name}': import mismatch "
                f"({import_count} imports, {len(router.imports)} expected)"
            )
    return problems


def router_summary(result: RouterGenerationResult) -> str:
    lines = [f"Routers: {len(result.routers)} ({'ok' if result.success else 'failed'})"]
    for router in result.routers:
        mark = "+" if router.success else "x"
        lines.append(f"  {mark} {ROUTER_FILES[router.kind]} ({router.route_count} routes)")
    lines.extend(f"  ! {error}" for error in result.errors)
    return "\n".join(lines)
