"""Shared pytest fixtures for the App Builder test suite.

Provides reusable fixtures for:
- Sample fullAppConfig payloads and component factories
- Settings pointed at temporary directories
- A fresh job queue and mappings store per test
- A fake Node dependency tree for the bundlers
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import pytest

from appbuilder.config import BundlerConfig, Config
from appbuilder.jobs import JobQueue
from appbuilder.prototype.mappings import MappingsStore


# ---------------------------------------------------------------------------
# Component factories
# ---------------------------------------------------------------------------

def make_screen(
    node_id: str,
    component_id: str | None = None,
    section_type: str = "slide",
    home: str | None = None,
    **props: Any,
) -> dict[str, Any]:
    """Raw ``ScreenBuilder_frame`` component as exported by the plugin."""
    properties: dict[str, Any] = {"section_type": section_type, **props}
    if component_id is not None:
        properties["id"] = component_id
    if home is not None:
        properties["sectionHome"] = True
        properties["sectionHomeOption"] = home
    return {"nodeId": node_id, "componentName": "ScreenBuilder_frame", "properties": properties}


def make_journey(
    node_id: str,
    component_id: str,
    journey_option: str | None = "CoreJourney",
    home: str | None = None,
    **props: Any,
) -> dict[str, Any]:
    properties: dict[str, Any] = {"id": component_id, **props}
    if journey_option is not None:
        properties["journeyOption"] = journey_option
    if home is not None:
        properties["sectionHome"] = "true"
        properties["sectionHomeOption"] = home
    return {"nodeId": node_id, "componentName": "Journey", "properties": properties}


SAMPLE_CONFIG: dict[str, Any] = {
    "appName": "DemoBank",
    "appFrame": {
        "appName": "DemoBank",
        "brand": "lloyds",
        "mode": "dark",
        "apiBase": "http://api.example.test",
    },
    "components": [
        make_screen("1:1", "everyday-home", "main-carousel", home="everyday", title="Everyday"),
        make_journey("1:2", "summary-journey", "CoreJourney", home="summary", customerId="cust-1"),
        make_screen("1:3", "cards-tab", "slide-panel", home="cards"),
        make_screen("1:4", "apply-modal", "modal", home="apply"),
        make_screen("1:5", "transfer-details", "slide", name="Transfer Details"),
        make_screen("1:6", "account-settings", "full"),
    ],
}


@pytest.fixture
def sample_config() -> dict[str, Any]:
    """A valid config: 2 carousel, 2 bottom-nav and 2 child routes."""
    return copy.deepcopy(SAMPLE_CONFIG)


@pytest.fixture
def screen_factory():
    return make_screen


@pytest.fixture
def journey_factory():
    return make_journey


# ---------------------------------------------------------------------------
# Settings & stores
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_node_modules(tmp_path: Path) -> Path:
    """Minimal stand-in for an installed dependency tree."""
    node_modules = tmp_path / "node_modules"
    (node_modules / "react").mkdir(parents=True)
    (node_modules / "react" / "package.json").write_text('{"name": "react"}', encoding="utf-8")
    return node_modules


@pytest.fixture
def settings(tmp_path: Path, fake_node_modules: Path) -> Config:
    """Config whose output paths all live under ``tmp_path``."""
    return Config(
        build_base_path=tmp_path / "builds",
        prototypes_root=tmp_path / "prototypes",
        template_node_modules=fake_node_modules,
        public_base_url="http://testserver",
        bundler=BundlerConfig(bundle_type="esbuild", expo_ready_timeout=1.0, expo_stop_timeout=0.5),
    )


@pytest.fixture
def queue() -> JobQueue:
    return JobQueue()


@pytest.fixture
def mappings(settings: Config) -> MappingsStore:
    settings.ensure_directories()
    return MappingsStore(settings.mappings_path)
