"""Expo dev-server bundler.

Only one Expo dev server runs per process. :class:`ExpoDevServer` owns it
and serialises every start and stop behind an ``asyncio.Lock``; each
prototype build restarts the server so Metro never serves a stale cache.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path

from ..config import Config
from ..jobs import JobQueue
from .base import Bundler, BundleResult, BundlerError, copy_node_modules

logger = logging.getLogger(__name__)

READY_MARKERS: tuple[str, ...] = ("Metro waiting", "Logs for your project")


@dataclass
class ServerState:
    process: asyncio.subprocess.Process
    location: Path
    port: int
    url: str


class ExpoDevServer:
    """Process-wide handle on the Expo dev server."""

    def __init__(
        self,
        npx_binary: str = "npx",
        port: int = 19006,
        ready_timeout: float = 30.0,
        stop_timeout: float = 5.0,
    ) -> None:
        self.npx_binary = npx_binary
        self.port = port
        self.ready_timeout = ready_timeout
        self.stop_timeout = stop_timeout
        self._lock = asyncio.Lock()
        self._state: ServerState | None = None
        self._drain_task: asyncio.Task | None = None

    @classmethod
    def from_config(cls, settings: Config) -> "ExpoDevServer":
        return cls(
            npx_binary=settings.bundler.npx_binary,
            port=settings.bundler.expo_dev_port,
            ready_timeout=settings.bundler.expo_ready_timeout,
            stop_timeout=settings.bundler.expo_stop_timeout,
        )

    @property
    def current(self) -> ServerState | None:
        """Snapshot of the running server, or None."""
        return replace(self._state) if self._state else None

    # -- public ----------------------------------------------------------

    async def acquire(self, location: Path, project_path: Path) -> str:
        """Restart the server on *project_path* and return its URL.

        Any running server is stopped first, whether it served another
        prototype or this one.
        """
        async with self._lock:
            if self._state is not None:
                same = self._state.location == Path(location)
                logger.info(
                    "Restarting Expo server (%s)", "clearing cache" if same else "new location"
                )
                await self._stop_locked()
            self._state = await self._start(Path(location), Path(project_path))
            return self._state.url

    async def stop(self) -> None:
        async with self._lock:
            await self._stop_locked()

    # -- internal --------------------------------------------------------

    async def _start(self, location: Path, project_path: Path) -> ServerState:
        logger.info("Starting Expo dev server in %s on port %d", project_path, self.port)
        try:
            process = await asyncio.create_subprocess_exec(
                self.npx_binary, "expo", "start", "--web", "--port", str(self.port),
                cwd=str(project_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                env={**os.environ, "CI": "1", "EXPO_NO_OPEN": "1", "BROWSER": "none"},
            )
        except OSError as exc:
            raise BundlerError(f"Failed to start Expo: {exc}") from exc

        output: list[str] = []
        try:
            await asyncio.wait_for(self._wait_ready(process, output), timeout=self.ready_timeout)
        except asyncio.TimeoutError:
            await self._kill(process)
            raise BundlerError(
                f"Expo server failed to start within {self.ready_timeout:g} seconds",
                stderr="".join(output),
            )
        except BundlerError:
            await self._kill(process)
            raise

        self._drain_task = asyncio.create_task(self._drain(process))
        url = f"http://localhost:{self.port}"
        logger.info("Expo server ready at %s", url)
        return ServerState(process=process, location=location, port=self.port, url=url)

    @staticmethod
    async def _wait_ready(process: asyncio.subprocess.Process, output: list[str]) -> None:
        assert process.stdout is not None
        while True:
            line = await process.stdout.readline()
            if not line:
                raise BundlerError("Expo server exited before it was ready", stderr="".join(output))
            text = line.decode("utf-8", errors="replace")
            output.append(text)
            logger.debug("expo: %s", text.rstrip())
            if any(marker in text for marker in READY_MARKERS):
                return

    @staticmethod
    async def _drain(process: asyncio.subprocess.Process) -> None:
        assert process.stdout is not None
        while line := await process.stdout.readline():
            logger.debug("expo: %s", line.decode("utf-8", errors="replace").rstrip())

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            process.kill()
        await process.wait()

    async def _stop_locked(self) -> None:
        state, self._state = self._state, None
        if state is None:
            return
        logger.info("Stopping Expo dev server at %s", state.url)
        process = state.process
        if process.returncode is None:
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=self.stop_timeout)
            except asyncio.TimeoutError:
                logger.warning("Expo server ignored SIGTERM; sending SIGKILL")
                await self._kill(process)
        if self._drain_task is not None:
            self._drain_task.cancel()
            self._drain_task = None


_dev_server: ExpoDevServer | None = None


def get_dev_server(settings: Config) -> ExpoDevServer:
    """The process-wide :class:`ExpoDevServer`."""
    global _dev_server
    if _dev_server is None:
        _dev_server = ExpoDevServer.from_config(settings)
    return _dev_server


async def shutdown_dev_server() -> None:
    """Stop the process-wide server if one was ever created."""
    if _dev_server is not None:
        await _dev_server.stop()


class ExpoServerBundler(Bundler):
    """Serves the prototype live from its temp directory."""

    name = "expo_server"

    def __init__(
        self,
        settings: Config,
        queue: JobQueue | None = None,
        dev_server: ExpoDevServer | None = None,
    ) -> None:
        super().__init__(settings, queue)
        self.dev_server = dev_server or get_dev_server(settings)

    async def bundle(self, job_id: str, temp_project_path: Path, build_path: Path) -> BundleResult:
        self.progress(job_id, 55, "Checking dependencies...")
        await copy_node_modules(self.settings.node_modules_path, temp_project_path)

        self.progress(job_id, 60, "Starting Expo dev server (10-15s)...")
        url = await self.dev_server.acquire(build_path, temp_project_path)

        self.progress(job_id, 80, "Expo dev server ready!")
        return BundleResult(url=url)
