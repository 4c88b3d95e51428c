"""Shareable prototype builds.

A prototype build runs the normal app build into a temporary directory,
bundles it for the browser, writes the viewer page and registers a UUID for
the result. Each build is a detached asyncio task reporting progress through
the job queue.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid as uuid_lib
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..bundlers.base import get_bundler, copy_node_modules
from ..bundlers.expo_server import ExpoDevServer
from ..config import BundleType, Config
from ..jobs import JobQueue, job_queue
from ..orchestrator import BuildOptions, execute_build
from ..utils import ensure_dir, remove_tree, safe_name, write_json
from .mappings import MappingsStore
from .viewer import generate_viewer

logger = logging.getLogger(__name__)

BUILD_ERROR = "BUILD_ERROR"


class PrototypeBuildRequest(BaseModel):
    """Body of ``POST /api/app-builder/prototype/build``."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    figma_file_id: str
    figma_file_name: str
    figma_page_name: str
    app_name: str
    full_app_config: dict[str, Any]
    bundle_type: Optional[BundleType] = Field(
        default=None, description="Overrides the configured default bundler"
    )


class PrototypeBuildError(Exception):
    """A prototype build step failed."""

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        self.details = details
        super().__init__(f"{message}: {details}" if details else message)


def prototype_dir(settings: Config, request: PrototypeBuildRequest) -> Path:
    """``<prototypes_root>/<file>/<page>/<app>``"""
    return (
        settings.prototypes_root
        / safe_name(request.figma_file_name)
        / safe_name(request.figma_page_name)
        / safe_name(request.app_name)
    )


class PrototypeBuilder:
    """Runs prototype builds and tracks them as jobs."""

    def __init__(
        self,
        settings: Config,
        queue: JobQueue | None = None,
        mappings: MappingsStore | None = None,
        dev_server: ExpoDevServer | None = None,
    ) -> None:
        self.settings = settings
        self.queue = queue or job_queue
        self.mappings = mappings or MappingsStore(settings.mappings_path)
        self.dev_server = dev_server
        self._tasks: set[asyncio.Task] = set()

    def start_build(self, request: PrototypeBuildRequest) -> str:
        """Create a job and run :meth:`build_prototype` in the background.

        Must be called from inside a running event loop.
        """
        job_id = f"job-{uuid_lib.uuid4()}"
        self.queue.create_job(job_id)
        task = asyncio.create_task(self.build_prototype(job_id, request), name=job_id)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_done(job_id, t))
        logger.info("Queued prototype build %s for %s", job_id, request.app_name)
        return job_id

    def _on_done(self, job_id: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            self.queue.fail_job(job_id, "Build cancelled", BUILD_ERROR)
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Prototype build %s failed: %s", job_id, exc)
            self.queue.fail_job(job_id, str(exc), BUILD_ERROR)

    async def wait_all(self) -> None:
        """Wait for every in-flight build task."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def build_prototype(self, job_id: str, request: PrototypeBuildRequest) -> str:
        """Build, bundle, publish. Returns the prototype URL."""
        started = time.monotonic()
        bundle_type: BundleType = request.bundle_type or self.settings.bundler.bundle_type
        step = self.queue.update_progress
        try:
            self.queue.start_job(job_id)

            step(job_id, 10, "Creating directories...")
            build_path = prototype_dir(self.settings, request)
            temp_path = build_path / "temp"
            await asyncio.to_thread(ensure_dir, build_path)

            step(job_id, 15, "Saving configuration...")
            await asyncio.to_thread(
                write_json, request.full_app_config, build_path / "fullAppConfig.json"
            )

            step(job_id, 20, "Generating app...")
            outcome = await execute_build(
                request.full_app_config,
                target_path=temp_path,
                options=BuildOptions(
                    build_type="prototype",
                    figma_file_name=request.figma_file_name,
                    figma_page_name=request.figma_page_name,
                ),
                settings=self.settings,
            )
            if not outcome.success:
                raise PrototypeBuildError(outcome.error or "Build failed", outcome.details)

            bundler = get_bundler(bundle_type, self.settings, self.queue, dev_server=self.dev_server)
            if bundler.needs_local_node_modules:
                step(job_id, 40, "Installing dependencies...")
                await copy_node_modules(self.settings.node_modules_path, temp_path)

            result = await bundler.bundle(job_id, temp_path, build_path)

            step(job_id, 85, "Generating viewer...")
            await asyncio.to_thread(generate_viewer, build_path, bundle_type, result.url)

            step(job_id, 90, "Creating shareable link...")
            proto_id = await self.mappings.register(build_path, request.figma_file_id, bundle_type)

            if bundle_type != "expo_server":
                step(job_id, 95, "Cleaning up...")
                await asyncio.to_thread(remove_tree, temp_path)

            prototype_url = f"{self.settings.public_base_url.rstrip('/')}/prototypes/{proto_id}"
            build_time = round(time.monotonic() - started, 2)
            self.queue.complete_job(job_id, prototype_url, build_time)
            logger.info("Prototype %s ready at %s (%.1fs)", job_id, prototype_url, build_time)
            return prototype_url

        except Exception as exc:
            logger.error("Prototype build %s failed: %s", job_id, exc)
            self.queue.fail_job(job_id, str(exc), BUILD_ERROR)
            raise
