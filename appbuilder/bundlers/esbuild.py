"""esbuild bundler adapter.

esbuild plugins are JavaScript callbacks, so the build runs as a small Node
script rendered from ``esbuild.build.mjs.j2``. The module-resolution
workarounds the React Native web build needs are described declaratively in
:data:`RESOLUTION_RULES` and turned into plugins by the template.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from ..utils import ensure_dir, run_command, write_text
from ..generator.templates import get_renderer
from .base import Bundler, BundleResult, BundlerError

ENTRY_CANDIDATES: tuple[str, ...] = ("index.js", "index.tsx", "App.tsx", "src/index.tsx")

BUILD_SCRIPT = "esbuild.build.mjs"

LOADERS: dict[str, str] = {
    ".js": "jsx",
    ".jsx": "jsx",
    ".ts": "tsx",
    ".tsx": "tsx",
    ".json": "json",
    ".ttf": "file",
    ".otf": "file",
    ".woff": "file",
    ".woff2": "file",
    ".png": "file",
    ".jpg": "file",
    ".svg": "file",
}

DEFINES: dict[str, str] = {
    "process.env.NODE_ENV": '"development"',
    "global": "window",
    "__DEV__": "false",
}

ALIASES: dict[str, str] = {"react-native": "react-native-web/dist/index.js"}

# Each rule becomes one esbuild plugin in the rendered script.
RESOLUTION_RULES: list[dict] = [
    {
        # react-native-svg pulls in react-native internals missing on web
        "name": "mock-native-modules",
        "action": "shim",
        "filter": r"^react-native$",
        "importer": "react-native-svg",
        "target": "react-native-web",
    },
    {
        "name": "commonjs-interop",
        "action": "interop",
        "filter": r"node_modules[\\/]react-native-web.*\.js$",
        "module": "normalize-color",
    },
    {
        "name": "ignore-react-native-internals",
        "action": "noop",
        "filters": [r"react-native/Libraries", r"@react-native/", r"^expo-asset$"],
    },
]


def find_entry_point(project_path: Path) -> Path:
    for candidate in ENTRY_CANDIDATES:
        path = Path(project_path) / candidate
        if path.is_file():
            return path
    raise BundlerError(
        f"No entry point found in {project_path} (tried {', '.join(ENTRY_CANDIDATES)})"
    )


def render_build_script(
    entry_point: Path,
    outfile: Path,
    node_modules: Path,
    app_name: str = "app",
) -> str:
    return get_renderer().render(
        "esbuild.build.mjs.j2",
        {
            "app_name": app_name,
            "entry_point": str(entry_point),
            "outfile": str(outfile),
            "node_modules": str(node_modules),
            "loaders": LOADERS,
            "defines": DEFINES,
            "aliases": ALIASES,
            "rules": RESOLUTION_RULES,
        },
    )


class EsbuildBundler(Bundler):
    """Fast development bundle resolved against the template's node_modules."""

    name = "esbuild"
    needs_local_node_modules = False

    async def bundle(self, job_id: str, temp_project_path: Path, build_path: Path) -> BundleResult:
        self.progress(job_id, 50, "Bundling with esbuild (5-10s)...")
        node_modules = self.settings.node_modules_path
        if not node_modules.is_dir():
            raise BundlerError(
                f"Template node_modules not found at {node_modules}. "
                "Run npm install in the template directory."
            )

        entry = find_entry_point(temp_project_path)
        bundle_dir = ensure_dir(Path(build_path) / "bundle")
        script_path = Path(temp_project_path) / BUILD_SCRIPT
        script = render_build_script(
            entry.resolve(), bundle_dir / "index.js", node_modules.resolve(), Path(build_path).name
        )
        await asyncio.to_thread(write_text, script_path, script)

        returncode, stdout, stderr = await run_command(
            [self.settings.bundler.node_binary, str(script_path)],
            cwd=temp_project_path,
            timeout=self.settings.bundler.esbuild_timeout,
        )
        if returncode != 0:
            raise BundlerError("esbuild bundling failed", stderr=stderr or stdout)

        html = get_renderer().render("bundle_index.html.j2", {"app_name": Path(build_path).name})
        await asyncio.to_thread(write_text, bundle_dir / "index.html", html)

        self.progress(job_id, 80, "esbuild bundle complete")
        return BundleResult(bundle_dir=bundle_dir)
