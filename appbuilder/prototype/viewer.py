"""Device-frame viewer page for prototypes."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

from ..config import BundleType
from ..generator.templates import TemplateRenderer, get_renderer
from ..utils import write_text

_BADGES: dict[str, tuple[str, str]] = {
    "esbuild": ("#2196F3", "DEV BUILD"),
    "expo": ("#4CAF50", "PRODUCTION"),
    "expo_server": ("#FF9800", "LIVE DEV"),
}


def render_viewer(
    bundle_type: BundleType,
    server_url: Optional[str] = None,
    title: str = "Prototype Viewer",
    renderer: Optional[TemplateRenderer] = None,
) -> str:
    """Render the viewer HTML.

    Bundled prototypes load ``<page path>/bundle/index.html`` into the frame
    at runtime, so the page keeps working wherever it is mounted. The Expo
    dev-server variant points straight at *server_url* with a cache-busting
    timestamp.
    """
    renderer = renderer or get_renderer()
    iframe_src = None
    if bundle_type == "expo_server":
        if not server_url:
            raise ValueError("server_url is required for the expo_server viewer")
        iframe_src = f"{server_url}?t={int(time.time() * 1000)}"

    color, text = _BADGES[bundle_type]
    return renderer.render(
        "viewer.html.j2",
        {
            "title": title,
            "bundle_type": bundle_type,
            "iframe_src": iframe_src,
            "badge_color": color,
            "badge_text": text,
        },
    )


def generate_viewer(
    build_path: Path,
    bundle_type: BundleType,
    server_url: Optional[str] = None,
) -> Path:
    """Write ``<build_path>/index.html`` and return its path."""
    target = Path(build_path) / "index.html"
    write_text(target, render_viewer(bundle_type, server_url))
    return target


def render_not_found(proto_id: str) -> str:
    """Small HTML body for unknown prototype ids."""
    return get_renderer().render_string(
        "<!DOCTYPE html><html><head><title>Prototype not found</title></head>"
        "<body><h1>Prototype not found</h1><p>No prototype with id "
        "<code>{{ proto_id | e }}</code>.</p></body></html>",
        {"proto_id": proto_id},
    )
