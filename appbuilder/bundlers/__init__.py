"""Bundler adapters that turn a generated app into something a browser can load."""

from appbuilder.bundlers.base import (
    Bundler,
    BundlerError,
    BundleResult,
    copy_node_modules,
    get_bundler,
)
from appbuilder.bundlers.esbuild import RESOLUTION_RULES, EsbuildBundler
from appbuilder.bundlers.expo_export import ExpoExportBundler
from appbuilder.bundlers.expo_server import (
    ExpoDevServer,
    ExpoServerBundler,
    get_dev_server,
    shutdown_dev_server,
)

__all__ = [
    "Bundler",
    "BundlerError",
    "BundleResult",
    "copy_node_modules",
    "get_bundler",
    "EsbuildBundler",
    "RESOLUTION_RULES",
    "ExpoExportBundler",
    "ExpoDevServer",
    "ExpoServerBundler",
    "get_dev_server",
    "shutdown_dev_server",
]
