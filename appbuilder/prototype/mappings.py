"""UUID to prototype-directory mapping store.

Prototypes are shared through ``/prototypes/<uuid>`` rather than their
filesystem path. The mapping lives in a single ``mappings.json`` file under
the prototypes root; every read parses the whole file and every change is a
read-modify-write serialised by the store's lock.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid as uuid_lib
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..config import BundleType
from ..utils import write_json

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class PrototypeMapping(BaseModel):
    """One ``mappings.json`` entry (camelCase on disk)."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    path: str = Field(..., description="Build directory relative to the prototypes root")
    figma_file_id: str
    created_at: str = Field(default_factory=_timestamp)
    views: int = 0
    last_viewed: Optional[str] = None
    bundle_type: Optional[BundleType] = None


class MappingsStore:
    """Async access to ``<prototypes_root>/mappings.json``.

    Create one store per mappings file and share it: the lock that makes
    concurrent updates safe belongs to the instance.
    """

    def __init__(self, path: Path) -> None:
        # mapping paths are stored relative to the file's directory
        self.path = Path(path)
        self.root = self.path.parent
        self._lock = asyncio.Lock()

    # -- file access -----------------------------------------------------

    def _read_sync(self) -> dict[str, PrototypeMapping]:
        if not self.path.is_file():
            return {}
        raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        return {key: PrototypeMapping.model_validate(value) for key, value in raw.items()}

    def _write_sync(self, mappings: dict[str, PrototypeMapping]) -> None:
        payload = {
            key: mapping.model_dump(by_alias=True, exclude_none=True)
            for key, mapping in mappings.items()
        }
        write_json(payload, self.path)

    async def _read(self) -> dict[str, PrototypeMapping]:
        return await asyncio.to_thread(self._read_sync)

    async def _write(self, mappings: dict[str, PrototypeMapping]) -> None:
        await asyncio.to_thread(self._write_sync, mappings)

    def relative_path(self, build_path: Path) -> str:
        return Path(os.path.relpath(Path(build_path).resolve(), self.root.resolve())).as_posix()

    # -- public API ------------------------------------------------------

    async def register(
        self,
        build_path: Path,
        figma_file_id: str,
        bundle_type: Optional[BundleType] = None,
    ) -> str:
        """Map *build_path* to a UUID and return it.

        A build directory that is already mapped keeps its UUID, creation time
        and view count; only the file id and bundle type are refreshed.
        """
        relative = self.relative_path(build_path)
        async with self._lock:
            mappings = await self._read()
            existing_id = next(
                (key for key, mapping in mappings.items() if mapping.path == relative), None
            )
            if existing_id is not None:
                previous = mappings[existing_id]
                mappings[existing_id] = previous.model_copy(
                    update={"figma_file_id": figma_file_id, "bundle_type": bundle_type}
                )
                proto_id = existing_id
                logger.info("Reusing prototype id %s for %s", proto_id, relative)
            else:
                proto_id = f"proto-{uuid_lib.uuid4()}"
                mappings[proto_id] = PrototypeMapping(
                    path=relative, figma_file_id=figma_file_id, bundle_type=bundle_type
                )
                logger.info("Created prototype id %s for %s", proto_id, relative)
            await self._write(mappings)
        return proto_id

    async def get(self, proto_id: str) -> Optional[PrototypeMapping]:
        return (await self._read()).get(proto_id)

    async def all(self) -> dict[str, PrototypeMapping]:
        return await self._read()

    async def increment_views(self, proto_id: str) -> Optional[PrototypeMapping]:
        """Bump the view counter; returns the updated mapping or None."""
        async with self._lock:
            mappings = await self._read()
            mapping = mappings.get(proto_id)
            if mapping is None:
                return None
            mapping.views += 1
            mapping.last_viewed = _timestamp()
            await self._write(mappings)
            return mapping

    def build_path(self, mapping: PrototypeMapping) -> Path:
        """Absolute build directory for *mapping*."""
        return self.root / mapping.path
