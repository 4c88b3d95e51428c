"""Expo static export bundler (production build, slower)."""

from __future__ import annotations

import asyncio
from pathlib import Path

from ..utils import copy_tree, run_command
from .base import Bundler, BundleResult, BundlerError


class ExpoExportBundler(Bundler):
    name = "expo"

    async def bundle(self, job_id: str, temp_project_path: Path, build_path: Path) -> BundleResult:
        self.progress(job_id, 50, "Bundling with Expo (30-40s)...")
        timeout = self.settings.bundler.expo_export_timeout
        returncode, stdout, stderr = await run_command(
            [self.settings.bundler.npx_binary, "expo", "export", "--platform", "web"],
            cwd=temp_project_path,
            timeout=timeout,
            env={"NODE_ENV": "production"},
        )
        if returncode == -1:
            raise BundlerError(f"Expo export timed out after {timeout}s", stderr=stderr)
        if returncode != 0:
            raise BundlerError(f"Expo export failed with exit code {returncode}", stderr=stderr or stdout)

        self.progress(job_id, 80, "Copying bundle...")
        dist = Path(temp_project_path) / "dist"
        if not dist.is_dir():
            raise BundlerError("Bundle output not found. Expo export may have failed.", stderr=stderr)
        bundle_dir = Path(build_path) / "bundle"
        await asyncio.to_thread(copy_tree, dist, bundle_dir)
        return BundleResult(bundle_dir=bundle_dir)
