"""Prototype build endpoints and the public prototype pages."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Body, HTTPException, Request
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse
from pydantic import ValidationError

from ..prototype.builder import PrototypeBuilder, PrototypeBuildRequest
from ..prototype.mappings import MappingsStore
from ..prototype.viewer import render_not_found
from .schemas import PROTOTYPE_REQUIRED_FIELDS, PrototypeAccepted, PrototypeBuildBody, dump

logger = logging.getLogger(__name__)

router = APIRouter()
viewer_router = APIRouter()


def _builder(request: Request) -> PrototypeBuilder:
    return request.app.state.prototype_builder


def _mappings(request: Request) -> MappingsStore:
    return request.app.state.mappings


def _missing_fields() -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Missing required fields", "required": PROTOTYPE_REQUIRED_FIELDS},
    )


@router.post("/build")
async def build_prototype(request: Request, payload: Any = Body(None)) -> JSONResponse:
    """Start an asynchronous prototype build and return its job id."""
    if not isinstance(payload, dict):
        return _missing_fields()
    try:
        body = PrototypeBuildBody.model_validate(payload)
    except ValidationError:
        return _missing_fields()
    if body.missing():
        return _missing_fields()

    try:
        job_id = _builder(request).start_build(
            PrototypeBuildRequest.model_validate(body.model_dump())
        )
    except Exception:
        logger.exception("Failed to start prototype build")
        raise HTTPException(status_code=500, detail="Failed to start build")

    accepted = PrototypeAccepted(
        job_id=job_id,
        message=f"Build started. Poll /api/app-builder/prototype/status/{job_id} for progress.",
    )
    return JSONResponse(status_code=202, content=dump(accepted))


@router.get("/status/{job_id}")
async def get_build_status(request: Request, job_id: str) -> JSONResponse:
    job = _builder(request).queue.get_job(job_id)
    if job is None:
        return JSONResponse(status_code=404, content={"error": "Job not found", "jobId": job_id})
    return JSONResponse(status_code=200, content=dump(job))


@router.get("/metadata/{proto_id}")
async def get_prototype_metadata(request: Request, proto_id: str) -> JSONResponse:
    try:
        mapping = await _mappings(request).get(proto_id)
    except Exception:
        logger.exception("Failed to read metadata for %s", proto_id)
        raise HTTPException(status_code=500, detail="Failed to get metadata")
    if mapping is None:
        return JSONResponse(
            status_code=404, content={"error": "Prototype not found", "uuid": proto_id}
        )
    return JSONResponse(status_code=200, content={"uuid": proto_id, **dump(mapping)})


@router.get("/jobs")
async def list_jobs(request: Request) -> dict:
    """All tracked jobs (debug)."""
    return {"jobs": [dump(job) for job in _builder(request).queue.all_jobs()]}


# ---------------------------------------------------------------------------
# Public prototype pages
# ---------------------------------------------------------------------------


@viewer_router.get("/prototypes/{proto_id}", response_class=HTMLResponse)
async def serve_prototype(request: Request, proto_id: str) -> HTMLResponse:
    store = _mappings(request)
    try:
        mapping = await store.increment_views(proto_id)
        if mapping is None:
            return HTMLResponse(status_code=404, content=render_not_found(proto_id))
        viewer = store.build_path(mapping) / "index.html"
        html = await asyncio.to_thread(viewer.read_text, encoding="utf-8")
    except FileNotFoundError:
        logger.error("Viewer page missing for prototype %s", proto_id)
        return HTMLResponse(status_code=404, content=render_not_found(proto_id))
    except Exception:
        logger.exception("Failed to serve prototype %s", proto_id)
        return HTMLResponse(
            status_code=500,
            content="<!DOCTYPE html><html><body><h1>Error</h1>"
            "<p>Failed to load prototype</p></body></html>",
        )
    return HTMLResponse(status_code=200, content=html)


@viewer_router.get("/prototypes/{proto_id}/bundle/{file_path:path}")
async def serve_bundle_file(request: Request, proto_id: str, file_path: str) -> FileResponse:
    store = _mappings(request)
    mapping = await store.get(proto_id)
    if mapping is None:
        raise HTTPException(status_code=404, detail="Prototype not found")

    bundle_dir = (store.build_path(mapping) / "bundle").resolve()
    target = (bundle_dir / (file_path or "index.html")).resolve()
    if not target.is_relative_to(bundle_dir) or not target.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(Path(target))
