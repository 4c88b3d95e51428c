"""Command-line interface: ``python -m appbuilder``."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import uuid
from pathlib import Path
from typing import Any, Optional

from rich.panel import Panel

from .config import Config
from .jobs import JobQueue
from .orchestrator import BuildOptions, execute_build
from .parser import generate_parse_summary, parse, validate_normalised_components
from .utils import (
    configure_logging,
    console,
    load_json,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
)


def _load_config(path: str) -> Optional[dict[str, Any]]:
    config_path = Path(path)
    if not config_path.is_file():
        print_error(f"Error: config file not found: {config_path}")
        return None
    try:
        return load_json(config_path)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        print_error(f"Error: {config_path} is not valid JSON ({exc})")
        return None


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def cmd_build(args: argparse.Namespace, settings: Config) -> int:
    raw = _load_config(args.config)
    if raw is None:
        return 1
    outcome = asyncio.run(
        execute_build(
            raw,
            target_path=Path(args.target) if args.target else None,
            options=BuildOptions(dry_run=args.dry_run, report=True),
            settings=settings,
        )
    )
    if not outcome.success:
        print_error(f"Build failed: {outcome.error}")
        if outcome.details:
            console.print(outcome.details)
        for issue in outcome.validation_errors:
            console.print(f"  [{issue.severity.value}] {issue.message}")
        return 1

    summary = outcome.summary
    print_summary_table(
        {
            "Build ID": outcome.build_id,
            "App": summary.app_name,
            "Output": str(outcome.app_path),
            "Components": summary.total_components,
            "Carousel routes": summary.carousel_routes,
            "Bottom nav routes": summary.bottom_nav_routes,
            "Child routes": summary.child_routes,
            "Files": summary.generated_files,
            "Duration": f"{outcome.duration:.2f}s",
        },
        title="Build Summary" + (" (dry run)" if args.dry_run else ""),
    )
    for warning in summary.warnings:
        print_warning(f"  {warning}")
    print_success("Build complete")
    return 0


def cmd_validate(args: argparse.Namespace, settings: Config) -> int:
    raw = _load_config(args.config)
    if raw is None:
        return 1
    result = parse(raw)
    issues = list(result.errors)
    if result.success:
        issues += validate_normalised_components(result.normalised)
        console.print(generate_parse_summary(result.normalised))
    for issue in issues:
        if issue.is_error:
            print_error(f"  error: {issue.message}")
        else:
            print_warning(f"  warning: {issue.message}")
    if not result.success or any(issue.is_error for issue in issues):
        print_error("Config is invalid")
        return 1
    print_success("Config is valid")
    return 0


def cmd_prototype(args: argparse.Namespace, settings: Config) -> int:
    from .prototype.builder import PrototypeBuilder, PrototypeBuildRequest

    raw = _load_config(args.config)
    if raw is None:
        return 1
    bundle_type = args.bundle_type or settings.bundler.bundle_type
    if bundle_type == "expo_server":
        # The dev server stops when this command exits.
        print_warning("expo_server needs a running service; bundling with esbuild instead")
        bundle_type = "esbuild"
    request = PrototypeBuildRequest(
        figma_file_id=args.file_id,
        figma_file_name=args.file_name,
        figma_page_name=args.page_name,
        app_name=args.app_name or raw.get("appName") or "app",
        full_app_config=raw,
        bundle_type=bundle_type,
    )
    queue = JobQueue()
    builder = PrototypeBuilder(settings, queue=queue)
    job_id = f"job-{uuid.uuid4()}"
    queue.create_job(job_id)

    try:
        with console.status("Building prototype..."):
            url = asyncio.run(builder.build_prototype(job_id, request))
    except Exception as exc:  # noqa: BLE001
        print_error(f"Prototype build failed: {exc}")
        return 1
    job = queue.get_job(job_id)
    console.print(
        Panel(
            f"URL        : {url}\n"
            f"Bundler    : {bundle_type}\n"
            f"Build time : {job.result.build_time:.1f}s",
            title="[bold]Prototype Ready[/bold]",
            border_style="green",
        )
    )
    return 0


def cmd_serve(args: argparse.Namespace, settings: Config) -> int:
    import uvicorn

    from .api.app import create_app

    host = args.host or settings.server.host
    port = args.port or settings.server.port
    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="appbuilder",
        description="App Builder -- generate apps and prototypes from fullAppConfig.json",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m appbuilder validate fullAppConfig.json\n"
            "  python -m appbuilder build fullAppConfig.json --target ./out --dry-run\n"
            "  python -m appbuilder prototype fullAppConfig.json --file-id abc "
            "--file-name Banking --page-name Home\n"
            "  python -m appbuilder serve --port 3001\n"
        ),
    )
    parser.add_argument("--config-file", default=None, help="JSON settings file (see Config.save)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", help="Build an app from a config file")
    build.add_argument("config", help="Path to fullAppConfig.json")
    build.add_argument("--target", "-t", default=None, help="Base output directory")
    build.add_argument("--dry-run", action="store_true", help="Parse and categorise only")
    build.set_defaults(handler=cmd_build)

    validate = sub.add_parser("validate", help="Validate a config file")
    validate.add_argument("config", help="Path to fullAppConfig.json")
    validate.set_defaults(handler=cmd_validate)

    prototype = sub.add_parser("prototype", help="Build a shareable web prototype")
    prototype.add_argument("config", help="Path to fullAppConfig.json")
    prototype.add_argument("--file-id", required=True, help="Figma file id")
    prototype.add_argument("--file-name", required=True, help="Figma file name")
    prototype.add_argument("--page-name", required=True, help="Figma page name")
    prototype.add_argument("--app-name", default=None, help="Defaults to the config's appName")
    prototype.add_argument(
        "--bundle-type",
        choices=["esbuild", "expo"],
        default=None,
        help="Override the configured bundler (the live Expo server needs `serve`)",
    )
    prototype.set_defaults(handler=cmd_prototype)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(handler=cmd_serve)
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point for ``python -m appbuilder``."""
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else "INFO")

    if args.config_file:
        settings = Config.load(Path(args.config_file))
    else:
        settings = Config.from_env()

    sys.exit(args.handler(args, settings))
