"""Prototype builds, their UUID mappings and the viewer page."""

from appbuilder.prototype.builder import (
    PrototypeBuilder,
    PrototypeBuildError,
    PrototypeBuildRequest,
)
from appbuilder.prototype.mappings import MappingsStore, PrototypeMapping
from appbuilder.prototype.viewer import generate_viewer, render_viewer

__all__ = [
    "PrototypeBuilder",
    "PrototypeBuildError",
    "PrototypeBuildRequest",
    "MappingsStore",
    "PrototypeMapping",
    "generate_viewer",
    "render_viewer",
]
