"""Build orchestrator.

Implements the five-phase app build:

Phase 1: PARSE & VALIDATE  -- Normalise the plugin payload, gate on errors.
Phase 2: CATEGORISE        -- Bucket components into routes and sort them.
Phase 3: COPY TEMPLATE     -- Materialise the base project, configure App.tsx.
Phase 4: GENERATE MODULES  -- One screen module per route.
Phase 5: GENERATE ROUTERS  -- The three router tables.

A failing phase ends the build with a structured :class:`BuildOutcome`;
files written by earlier phases are left in place.

Usage::

    outcome = await execute_build(raw_config, options=BuildOptions(dry_run=True))
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from .categoriser import (
    CategorisationResult,
    categorise,
    generate_categorisation_report,
    get_all_routes,
    sort_categorised,
    validate_categorisation,
)
from .config import Config
from .generator.entry_point import configure_app_entry_point
from .generator.modules import FILES_PER_MODULE, generate_modules, validate_generated_modules
from .generator.routers import (
    ROUTER_FILES,
    generate_routers,
    router_summary,
    validate_generated_routers,
)
from .generator.template_copy import copy_base_template
from .parser import generate_parse_summary, parse, validate_normalised_components
from .parser.models import AppFrame, ValidationIssue, has_errors
from .utils import PHASE_NAMES, format_duration, print_phase_header, safe_name

logger = logging.getLogger(__name__)

BuildType = Literal["local", "prototype"]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class BuildError(Exception):
    """Raised inside the orchestrator when a phase fails."""

    def __init__(
        self,
        phase: int,
        message: str,
        details: Optional[str] = None,
        validation_errors: Optional[list[ValidationIssue]] = None,
    ) -> None:
        self.phase = phase
        self.message = message
        self.details = details
        self.validation_errors = validation_errors or []
        super().__init__(f"Phase {phase} ({PHASE_NAMES.get(phase, '?')}): {message}")


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class BuildOptions(BaseModel):
    build_type: BuildType = "local"
    dry_run: bool = False
    figma_file_name: str = "unknown"
    figma_page_name: str = "unknown"
    report: bool = Field(default=False, description="Print rich phase headers to the console")


class BuildSummary(BaseModel):
    app_name: str
    total_components: int
    carousel_routes: int
    bottom_nav_routes: int
    child_routes: int
    generated_files: int
    warnings: list[str] = Field(default_factory=list)


class BuildOutcome(BaseModel):
    success: bool
    build_id: str
    build_type: BuildType = "local"
    app_path: Optional[Path] = None
    duration: float = 0.0
    summary: Optional[BuildSummary] = None
    error: Optional[str] = None
    details: Optional[str] = None
    validation_errors: list[ValidationIssue] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_build_id() -> str:
    """``build-<epoch ms>-<6 random chars>``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"build-{int(time.time() * 1000)}-{suffix}"


def resolve_app_path(
    app_name: str,
    options: BuildOptions,
    settings: Config,
    target_path: Optional[Path] = None,
) -> Path:
    """Where the app for this build is written.

    Prototype builds land in ``<prototypes_root>/<file>/<page>/<app>/temp``
    unless an explicit *target_path* is given, which is then used verbatim.
    Local builds land in ``<target_path or build_base_path>/<app_name>``; an
    *app_name* that is not a single path component raises :class:`BuildError`.
    """
    if options.build_type == "prototype":
        if target_path is not None:
            return Path(target_path)
        return (
            settings.prototypes_root
            / safe_name(options.figma_file_name)
            / safe_name(options.figma_page_name)
            / safe_name(app_name)
            / "temp"
        )
    base = Path(target_path) if target_path is not None else settings.build_base_path
    if app_name in (".", "..") or Path(app_name).name != app_name or "\\" in app_name:
        raise BuildError(
            1, "Invalid app name", details=f"appName {app_name!r} must not contain path separators"
        )
    return base / app_name


def _messages(issues: list[ValidationIssue]) -> list[str]:
    return [issue.message for issue in issues]


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------


def _phase_parse(raw_config: Any) -> tuple[Any, list[ValidationIssue]]:
    result = parse(raw_config)
    if not result.success:
        raise BuildError(
            1,
            "Configuration validation failed",
            details="; ".join(_messages(result.error_issues)),
            validation_errors=result.errors,
        )
    logger.info(generate_parse_summary(result.normalised))

    issues = [*result.errors, *validate_normalised_components(result.normalised)]
    if has_errors(issues):
        raise BuildError(
            1,
            "Component validation failed",
            details="; ".join(i.message for i in issues if i.is_error),
            validation_errors=issues,
        )
    for issue in issues:
        logger.warning(issue.message)
    return result, issues


def _phase_categorise(normalised: list) -> tuple[CategorisationResult, list[ValidationIssue]]:
    result = categorise(normalised)
    logger.debug(generate_categorisation_report(result))
    vocabulary = validate_categorisation(result.categorised)
    for issue in vocabulary:
        logger.warning(issue.message)
    result.categorised = sort_categorised(result.categorised)
    return result, vocabulary


async def _phase_copy(app_name: str, app_frame: AppFrame, app_path: Path, settings: Config) -> list[str]:
    problems = settings.validate_paths()
    if problems:
        raise BuildError(3, "Template copy failed", details="; ".join(problems))

    copy_result = await copy_base_template(app_name, app_path, settings.template_dir)
    if not copy_result.success:
        raise BuildError(3, "Template copy failed", details="; ".join(copy_result.errors))

    entry = await configure_app_entry_point(app_frame, app_path)
    if not entry.success:
        return [f"App.tsx not configured: {entry.error}"]
    return []


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def execute_build(
    raw_config: Any,
    target_path: Optional[Path] = None,
    options: Optional[BuildOptions] = None,
    settings: Optional[Config] = None,
) -> BuildOutcome:
    """Run the five build phases for one ``fullAppConfig`` payload.

    Never raises: phase failures and unexpected exceptions are both returned
    as ``BuildOutcome(success=False, ...)``.
    """
    options = options or BuildOptions()
    settings = settings or Config.from_env()
    build_id = generate_build_id()
    started = time.monotonic()
    outcome = BuildOutcome(success=False, build_id=build_id, build_type=options.build_type)

    def header(phase: int) -> None:
        logger.info("[%s] Phase %d: %s", build_id, phase, PHASE_NAMES[phase])
        if options.report:
            print_phase_header(phase, PHASE_NAMES[phase])

    try:
        header(1)
        parse_result, parse_issues = _phase_parse(raw_config)
        app_name: str = raw_config["appName"]
        app_frame = AppFrame.model_validate(raw_config["appFrame"])
        app_path = resolve_app_path(app_name, options, settings, target_path)
        outcome.app_path = app_path
        logger.info("[%s] Building %s into %s (%s)", build_id, app_name, app_path, options.build_type)

        header(2)
        categorisation, vocabulary = _phase_categorise(parse_result.normalised)
        categorised = categorisation.categorised
        all_routes = get_all_routes(categorised)
        module_count = len({route.component.id for route in all_routes})

        extra_warnings: list[str] = []
        if options.dry_run:
            logger.info(
                "[%s] Dry run: would copy template, write %d modules and %d routers",
                build_id, module_count, len(ROUTER_FILES),
            )
        else:
            header(3)
            extra_warnings += await _phase_copy(app_name, app_frame, app_path, settings)

            header(4)
            modules = await generate_modules(app_name, all_routes, app_path, settings.router_module)
            if not modules.success:
                raise BuildError(4, "Module generation failed", details="; ".join(modules.errors))
            extra_warnings += validate_generated_modules(modules)

            header(5)
            routers = await generate_routers(app_name, categorised, app_path, settings.router_module)
            logger.debug(router_summary(routers))
            if not routers.success:
                raise BuildError(5, "Router generation failed", details="; ".join(routers.errors))
            extra_warnings += validate_generated_routers(routers)

        outcome.summary = BuildSummary(
            app_name=app_name,
            total_components=len(parse_result.normalised),
            carousel_routes=len(categorised.carousel_routes),
            bottom_nav_routes=len(categorised.bottom_nav_routes),
            child_routes=len(categorised.child_routes),
            generated_files=module_count * FILES_PER_MODULE + len(ROUTER_FILES),
            warnings=[
                *_messages(parse_issues),
                *_messages(categorisation.warnings),
                *_messages(vocabulary),
                *extra_warnings,
            ],
        )
        outcome.success = True

    except BuildError as exc:
        logger.error("[%s] %s", build_id, exc)
        outcome.error = exc.message
        outcome.details = exc.details
        outcome.validation_errors = exc.validation_errors
    except Exception as exc:  # noqa: BLE001
        logger.exception("[%s] Build failed with an unexpected error", build_id)
        outcome.error = "Build failed"
        outcome.details = str(exc) or exc.__class__.__name__

    outcome.duration = round(time.monotonic() - started, 2)
    if outcome.success:
        logger.info("[%s] Build complete in %s", build_id, format_duration(outcome.duration))
    return outcome
