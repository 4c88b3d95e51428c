"""App entry point configuration.

Rewrites the provider props in the copied ``App.tsx`` from the config's
``appFrame`` block (theme mode, brand, API base URL, default customer).
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from ..parser.models import AppFrame

logger = logging.getLogger(__name__)

DEFAULT_MODE = "light"
DEFAULT_BRAND = "lloyds"
DEFAULT_API_BASE = "http://localhost:3001"


class EntryPointResult(BaseModel):
    success: bool
    file_path: Optional[Path] = None
    error: Optional[str] = None


def configure_source(source: str, app_frame: AppFrame) -> str:
    """Apply the ``appFrame`` values to ``App.tsx`` source text."""
    mode = app_frame.mode or DEFAULT_MODE
    brand = app_frame.brand or DEFAULT_BRAND
    api_base = app_frame.api_base or DEFAULT_API_BASE

    source = re.sub(r'initialThemeMode="[^"]*"', f'initialThemeMode="{mode}"', source)
    source = re.sub(r'initialBrand="[^"]*"', f'initialBrand="{brand}"', source)
    source = re.sub(r'apiBaseUrl="[^"]*"', f'apiBaseUrl="{api_base}"', source)
    if app_frame.default_customer_id:
        source = re.sub(
            r'<CustomerProvider apiBaseUrl="[^"]*"[^>]*>',
            f'<CustomerProvider apiBaseUrl="{api_base}" '
            f'defaultCustomerId="{app_frame.default_customer_id}">',
            source,
        )
    return source


def _configure(app_frame: AppFrame, app_path: Path) -> EntryPointResult:
    entry = app_path / "App.tsx"
    try:
        configured = configure_source(entry.read_text(encoding="utf-8"), app_frame)
        entry.write_text(configured, encoding="utf-8")
    except OSError as exc:
        return EntryPointResult(success=False, file_path=entry, error=str(exc))
    return EntryPointResult(success=True, file_path=entry)


async def configure_app_entry_point(app_frame: AppFrame, app_path: Path) -> EntryPointResult:
    """Configure ``<app_path>/App.tsx``; failure is reported, never raised."""
    result = await asyncio.to_thread(_configure, app_frame, app_path)
    if result.success:
        logger.info(
            "Configured App.tsx: theme=%s brand=%s",
            app_frame.mode or DEFAULT_MODE, app_frame.brand or DEFAULT_BRAND,
        )
    return result
