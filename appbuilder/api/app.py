"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from .. import __version__
from ..bundlers.expo_server import get_dev_server
from ..config import Config
from ..jobs import JobQueue, job_queue
from ..prototype.builder import PrototypeBuilder
from ..prototype.mappings import MappingsStore
from . import builds, prototypes
from .schemas import utc_timestamp

logger = logging.getLogger(__name__)

SERVICE_NAME = "app-builder"


def create_app(settings: Optional[Config] = None, queue: Optional[JobQueue] = None) -> FastAPI:
    """Build the HTTP application.

    One :class:`MappingsStore` and one :class:`PrototypeBuilder` are shared
    by every request; the Expo dev server is stopped on shutdown.
    """
    settings = settings or Config.from_env()
    queue = queue or job_queue
    dev_server = get_dev_server(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        settings.ensure_directories()
        removed = queue.clear_old_jobs(settings.job_max_age_minutes)
        logger.info("App builder ready (prototypes at %s, %d stale jobs cleared)",
                    settings.prototypes_root, removed)
        try:
            yield
        finally:
            await dev_server.stop()

    app = FastAPI(
        title="App Builder",
        description="Builds React Native apps and shareable web prototypes from Figma plugin configs",
        version=__version__,
        lifespan=lifespan,
    )

    mappings = MappingsStore(settings.mappings_path)
    app.state.settings = settings
    app.state.mappings = mappings
    app.state.prototype_builder = PrototypeBuilder(
        settings, queue=queue, mappings=mappings, dev_server=dev_server
    )

    @app.get("/health")
    async def health_check() -> JSONResponse:
        """Health check endpoint."""
        return JSONResponse(
            status_code=200,
            content={
                "status": "healthy",
                "service": SERVICE_NAME,
                "version": __version__,
                "timestamp": utc_timestamp(),
            },
        )

    app.include_router(builds.router, prefix="/api/app-builder", tags=["app-builder"])
    app.include_router(prototypes.router, prefix="/api/app-builder/prototype", tags=["prototype"])
    app.include_router(prototypes.viewer_router, tags=["viewer"])
    return app
