"""App Builder configuration.

Centralised, typed configuration for the build pipeline, the prototype
builder and the HTTP service. All settings use Pydantic v2 models so they can
be validated at construction time and serialised to/from JSON or environment
variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

BundleType = Literal["esbuild", "expo", "expo_server"]

_PACKAGE_DIR = Path(__file__).parent
DEFAULT_TEMPLATE_DIR = _PACKAGE_DIR / "generator" / "base_template"


class BundlerConfig(BaseModel):
    """Tuning knobs for the bundler adapters."""

    bundle_type: BundleType = Field(default="esbuild")
    node_binary: str = Field(default="node")
    npx_binary: str = Field(default="npx")
    esbuild_timeout: int = Field(default=120, ge=10, description="esbuild script timeout in seconds")
    expo_export_timeout: int = Field(
        default=180, ge=10, description="`expo export` wall-clock timeout in seconds"
    )
    expo_dev_port: int = Field(default=19006, ge=1024)
    expo_ready_timeout: float = Field(
        default=30.0, gt=0, description="Seconds to wait for the dev server readiness marker"
    )
    expo_stop_timeout: float = Field(
        default=5.0, gt=0, description="Seconds between SIGTERM and SIGKILL on shutdown"
    )


class ServerConfig(BaseModel):
    """Bind address for the HTTP service."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3001, ge=1)


class Config(BaseModel):
    """Global App Builder configuration.

    Instances are created once by the CLI or by ``create_app`` and then passed
    through the rest of the system.
    """

    build_base_path: Path = Field(default=Path("/tmp/generated-apps"))
    prototypes_root: Path = Field(default=Path("./public/prototypes"))
    template_dir: Path = Field(default=DEFAULT_TEMPLATE_DIR)
    template_node_modules: Path | None = Field(
        default=None, description="Installed dependency tree copied into bundled projects"
    )
    router_module: str = Field(default="figma-router")
    public_base_url: str = Field(default="http://localhost:3001")
    job_max_age_minutes: int = Field(default=60, ge=1)
    bundler: BundlerConfig = Field(default_factory=BundlerConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def mappings_path(self) -> Path:
        """Path to the UUID -> prototype mapping file."""
        return self.prototypes_root / "mappings.json"

    @property
    def node_modules_path(self) -> Path:
        """Dependency tree used by the bundlers (defaults to the template's own)."""
        return self.template_node_modules or (self.template_dir / "node_modules")

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            APP_BUILD_PATH, APP_BUILDER_PROTOTYPES_PATH, APP_BUILDER_TEMPLATE_DIR,
            APP_BUILDER_NODE_MODULES, APP_BUILDER_ROUTER_MODULE,
            APP_BUILDER_PUBLIC_URL, APP_BUILDER_HOST, APP_BUILDER_PORT,
            BUNDLE_TYPE, EXPO_DEV_PORT, EXPO_EXPORT_TIMEOUT, EXPO_READY_TIMEOUT,
            ESBUILD_TIMEOUT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("APP_BUILD_PATH"):
            kwargs["build_base_path"] = Path(os.environ["APP_BUILD_PATH"])
        if os.environ.get("APP_BUILDER_PROTOTYPES_PATH"):
            kwargs["prototypes_root"] = Path(os.environ["APP_BUILDER_PROTOTYPES_PATH"])
        if os.environ.get("APP_BUILDER_TEMPLATE_DIR"):
            kwargs["template_dir"] = Path(os.environ["APP_BUILDER_TEMPLATE_DIR"])
        if os.environ.get("APP_BUILDER_NODE_MODULES"):
            kwargs["template_node_modules"] = Path(os.environ["APP_BUILDER_NODE_MODULES"])
        if os.environ.get("APP_BUILDER_ROUTER_MODULE"):
            kwargs["router_module"] = os.environ["APP_BUILDER_ROUTER_MODULE"]
        if os.environ.get("APP_BUILDER_PUBLIC_URL"):
            kwargs["public_base_url"] = os.environ["APP_BUILDER_PUBLIC_URL"].rstrip("/")

        bundler_kwargs: dict[str, Any] = {}
        if os.environ.get("BUNDLE_TYPE"):
            bundler_kwargs["bundle_type"] = os.environ["BUNDLE_TYPE"]
        if os.environ.get("EXPO_DEV_PORT"):
            bundler_kwargs["expo_dev_port"] = int(os.environ["EXPO_DEV_PORT"])
        if os.environ.get("EXPO_EXPORT_TIMEOUT"):
            bundler_kwargs["expo_export_timeout"] = int(os.environ["EXPO_EXPORT_TIMEOUT"])
        if os.environ.get("EXPO_READY_TIMEOUT"):
            bundler_kwargs["expo_ready_timeout"] = float(os.environ["EXPO_READY_TIMEOUT"])
        if os.environ.get("ESBUILD_TIMEOUT"):
            bundler_kwargs["esbuild_timeout"] = int(os.environ["ESBUILD_TIMEOUT"])

        server_kwargs: dict[str, Any] = {}
        if os.environ.get("APP_BUILDER_HOST"):
            server_kwargs["host"] = os.environ["APP_BUILDER_HOST"]
        if os.environ.get("APP_BUILDER_PORT"):
            server_kwargs["port"] = int(os.environ["APP_BUILDER_PORT"])

        return cls(
            **kwargs,
            bundler=BundlerConfig(**bundler_kwargs),
            server=ServerConfig(**server_kwargs),
        )

    def validate_paths(self) -> list[str]:
        """Return a list of problems with the configured input paths.

        Called before any file is written so that a misconfigured deployment
        fails without leaving a half-built app behind.
        """
        problems: list[str] = []
        if not self.template_dir.is_dir():
            problems.append(f"Template not found at: {self.template_dir}")
        elif not (self.template_dir / "package.json").is_file():
            problems.append(f"Template has no package.json: {self.template_dir}")
        if not self.router_module or "/" in self.router_module or "\\" in self.router_module:
            problems.append(f"Invalid router module name: {self.router_module!r}")
        return problems

    def ensure_directories(self) -> None:
        """Create the directories that must exist before the service runs."""
        self.prototypes_root.mkdir(parents=True, exist_ok=True)
