"""Base project template copier.

Materialises the base React Native project into the build directory,
skipping build artefacts and lockfiles, then rewrites the ``package.json``
name for the generated app.
"""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
from pathlib import Path

from pydantic import BaseModel, Field

from ..utils import slugify

logger = logging.getLogger(__name__)

SKIP_NAMES: frozenset[str] = frozenset(
    {
        "node_modules",
        ".expo",
        ".expo-shared",
        "dist",
        "build",
        ".DS_Store",
        ".git",
        "package-lock.json",
        "yarn.lock",
    }
)
SKIP_SUFFIXES: tuple[str, ...] = (".tgz",)


class TemplateCopyResult(BaseModel):
    success: bool
    target_path: Path
    copied_files: int = 0
    errors: list[str] = Field(default_factory=list)


def should_skip(name: str) -> bool:
    return name in SKIP_NAMES or name.endswith(SKIP_SUFFIXES)


def _copy_dir(source: Path, target: Path, errors: list[str]) -> int:
    """Recursive copy that records per-entry failures instead of raising."""
    copied = 0
    target.mkdir(parents=True, exist_ok=True)
    for entry in sorted(source.iterdir()):
        if should_skip(entry.name):
            continue
        destination = target / entry.name
        try:
            if entry.is_dir():
                copied += _copy_dir(entry, destination, errors)
            else:
                shutil.copy2(entry, destination)
                copied += 1
        except OSError as exc:
            errors.append(f"Failed to copy {entry.name}: {exc}")
    return copied


def update_package_name(target_path: Path, app_name: str) -> None:
    """Set the ``name`` field of the copied ``package.json``."""
    manifest = target_path / "package.json"
    data = json.loads(manifest.read_text(encoding="utf-8"))
    data["name"] = slugify(app_name) or data.get("name", "app")
    manifest.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def _copy_template(app_name: str, target_path: Path, template_dir: Path) -> TemplateCopyResult:
    if not template_dir.is_dir():
        return TemplateCopyResult(
            success=False,
            target_path=target_path,
            errors=[f"Template not found at: {template_dir}"],
        )

    errors: list[str] = []
    try:
        copied = _copy_dir(template_dir, target_path, errors)
    except OSError as exc:
        return TemplateCopyResult(
            success=False, target_path=target_path, errors=[f"Failed to copy template: {exc}"]
        )

    try:
        update_package_name(target_path, app_name)
    except (OSError, ValueError) as exc:
        errors.append(f"Failed to update package.json: {exc}")

    return TemplateCopyResult(
        success=not errors, target_path=target_path, copied_files=copied, errors=errors
    )


async def copy_base_template(
    app_name: str, target_path: Path, template_dir: Path
) -> TemplateCopyResult:
    """Copy *template_dir* into *target_path* without blocking the loop."""
    result = await asyncio.to_thread(_copy_template, app_name, target_path, template_dir)
    if result.success:
        logger.info("Copied %d template files to %s", result.copied_files, target_path)
    else:
        logger.error("Template copy failed: %s", "; ".join(result.errors))
    return result
