"""Shared bundler plumbing: result type, errors, dependency materialisation."""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from ..config import BundleType, Config
from ..jobs import JobQueue, job_queue

if TYPE_CHECKING:
    from .expo_server import ExpoDevServer

logger = logging.getLogger(__name__)


@dataclass
class BundleResult:
    """Outcome of a successful bundle step."""

    url: str | None = None
    bundle_dir: Path | None = None


class BundlerError(Exception):
    """Raised when a bundler subprocess fails or its output is missing."""

    def __init__(self, message: str, stderr: str = ""):
        self.stderr = stderr
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.stderr:
            return f"{base}: {self.stderr.strip()[-2000:]}"
        return base


class Bundler:
    """Base class for the bundler adapters.

    Subclasses implement :meth:`bundle`. Progress is reported through the
    job queue between 45 and 80 percent.
    """

    name: BundleType
    needs_local_node_modules: bool = True

    def __init__(self, settings: Config, queue: JobQueue | None = None) -> None:
        self.settings = settings
        self.queue = queue or job_queue

    def progress(self, job_id: str, percent: int, step: str) -> None:
        logger.info("[%s] %s", job_id, step)
        self.queue.update_progress(job_id, percent, step)

    async def bundle(self, job_id: str, temp_project_path: Path, build_path: Path) -> BundleResult:
        raise NotImplementedError


def _copy_node_modules(source: Path, destination: Path) -> bool:
    if destination.exists():
        return False
    if not source.is_dir():
        raise BundlerError(
            f"Template node_modules not found at {source}. Run npm install in the template directory."
        )
    shutil.copytree(source, destination, symlinks=False, dirs_exist_ok=True)
    return True


async def copy_node_modules(template_node_modules: Path, temp_path: Path) -> bool:
    """Copy the template's ``node_modules`` into *temp_path*.

    Skipped when the destination already exists. Returns True if a copy was
    made.
    """
    destination = Path(temp_path) / "node_modules"
    copied = await asyncio.to_thread(_copy_node_modules, Path(template_node_modules), destination)
    if copied:
        logger.info("Copied node_modules into %s", temp_path)
    else:
        logger.debug("node_modules already present in %s", temp_path)
    return copied


def get_bundler(
    bundle_type: BundleType,
    settings: Config,
    queue: JobQueue | None = None,
    dev_server: "ExpoDevServer | None" = None,
) -> Bundler:
    """Return the bundler adapter for *bundle_type*."""
    from .esbuild import EsbuildBundler
    from .expo_export import ExpoExportBundler
    from .expo_server import ExpoServerBundler

    if bundle_type == "esbuild":
        return EsbuildBundler(settings, queue)
    if bundle_type == "expo":
        return ExpoExportBundler(settings, queue)
    if bundle_type == "expo_server":
        return ExpoServerBundler(settings, queue, dev_server=dev_server)
    raise ValueError(f"Unknown bundle type: {bundle_type!r}")
