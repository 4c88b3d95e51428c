"""Synchronous build and validation endpoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse

from ..orchestrator import execute_build
from ..parser import generate_parse_summary, parse, validate_normalised_components
from .schemas import (
    BuildErrorResponse,
    BuildRequest,
    BuildSuccessResponse,
    BuildSummaryBody,
    ValidateResponse,
    dump,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/build")
async def build_app(request: Request, body: BuildRequest = Body(...)) -> JSONResponse:
    """
    Build a complete app from a ``fullAppConfig`` payload.

    Returns:
        200 with the build summary, 400 when the config is missing or fails
        validation, 500 when a later phase fails.
    """
    if body.config is None:
        error = BuildErrorResponse(
            error="Missing configuration",
            details='Request body must include "config" field with fullAppConfig.json',
        )
        return JSONResponse(status_code=400, content=dump(error))

    settings = request.app.state.settings
    try:
        outcome = await execute_build(
            body.config,
            target_path=Path(body.target_path) if body.target_path else None,
            options=body.options.to_build_options(),
            settings=settings,
        )
    except Exception:
        logger.exception("Build request failed")
        error = BuildErrorResponse(error="Internal server error")
        return JSONResponse(status_code=500, content=dump(error))

    if not outcome.success or outcome.summary is None:
        error = BuildErrorResponse(
            error=outcome.error or "Build failed",
            details=outcome.details,
            validation_errors=outcome.validation_errors or None,
        )
        status_code = 400 if outcome.validation_errors else 500
        return JSONResponse(status_code=status_code, content=dump(error))

    success = BuildSuccessResponse(
        build_id=outcome.build_id,
        app_path=str(outcome.app_path),
        duration=outcome.duration,
        summary=BuildSummaryBody.from_summary(outcome.summary),
    )
    return JSONResponse(status_code=200, content=dump(success))


@router.post("/validate")
async def validate_config(config: Any = Body(None)) -> JSONResponse:
    """Validate a config without building. Validity is reported in the body."""
    try:
        result = parse(config)
        if not result.success:
            body = ValidateResponse(
                valid=False, errors=result.error_issues, warnings=result.warning_issues
            )
            return JSONResponse(status_code=200, content=dump(body))

        issues = [*result.errors, *validate_normalised_components(result.normalised)]
        body = ValidateResponse(
            valid=not any(issue.is_error for issue in issues),
            summary=generate_parse_summary(result.normalised),
            errors=[issue for issue in issues if issue.is_error],
            warnings=[issue for issue in issues if not issue.is_error],
        )
        return JSONResponse(status_code=200, content=dump(body))
    except Exception:
        logger.exception("Validation request failed")
        return JSONResponse(status_code=500, content={"valid": False, "error": "Validation failed"})
