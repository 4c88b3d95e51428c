"""Tests for the UUID mapping store (appbuilder.prototype.mappings)."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from appbuilder.prototype.mappings import MappingsStore


@pytest.fixture
def build_dir(mappings: MappingsStore) -> Path:
    path = mappings.root / "bank" / "home" / "demobank"
    path.mkdir(parents=True)
    return path


class TestLocation:
    @pytest.mark.unit
    def test_store_uses_configured_mappings_file(self, settings, mappings: MappingsStore):
        assert mappings.path == settings.mappings_path
        assert mappings.root == settings.prototypes_root

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_paths_are_relative_to_the_file_directory(self, tmp_path: Path):
        store = MappingsStore(tmp_path / "shared" / "index.json")
        build = tmp_path / "shared" / "f" / "p" / "app"
        build.mkdir(parents=True)
        proto_id = await store.register(build, "file-1", "esbuild")
        assert (await store.get(proto_id)).path == "f/p/app"
        assert store.build_path(await store.get(proto_id)) == build


class TestRegister:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_register_writes_camel_case(self, mappings: MappingsStore, build_dir: Path):
        proto_id = await mappings.register(build_dir, "file-123", "esbuild")
        assert proto_id.startswith("proto-")

        raw = json.loads(mappings.path.read_text(encoding="utf-8"))
        entry = raw[proto_id]
        assert entry["path"] == "bank/home/demobank"
        assert entry["figmaFileId"] == "file-123"
        assert entry["views"] == 0
        assert entry["bundleType"] == "esbuild"
        assert "createdAt" in entry
        assert "lastViewed" not in entry

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_same_path_reuses_id(self, mappings: MappingsStore, build_dir: Path):
        first = await mappings.register(build_dir, "file-1", "esbuild")
        await mappings.increment_views(first)
        created = (await mappings.get(first)).created_at

        second = await mappings.register(build_dir, "file-2", "expo")
        assert second == first
        mapping = await mappings.get(first)
        assert mapping.views == 1
        assert mapping.created_at == created
        assert mapping.figma_file_id == "file-2"
        assert mapping.bundle_type == "expo"
        assert len(await mappings.all()) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_different_paths_get_different_ids(self, mappings: MappingsStore, build_dir: Path):
        other = mappings.root / "bank" / "home" / "other"
        first = await mappings.register(build_dir, "f")
        second = await mappings.register(other, "f")
        assert first != second
        assert mappings.build_path(await mappings.get(second)) == mappings.root / "bank" / "home" / "other"


class TestViews:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_id(self, mappings: MappingsStore):
        assert await mappings.get("proto-missing") is None
        assert await mappings.increment_views("proto-missing") is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_increment_sets_last_viewed(self, mappings: MappingsStore, build_dir: Path):
        proto_id = await mappings.register(build_dir, "f")
        mapping = await mappings.increment_views(proto_id)
        assert mapping.views == 1
        assert mapping.last_viewed is not None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrent_increments_are_not_lost(self, mappings: MappingsStore, build_dir: Path):
        proto_id = await mappings.register(build_dir, "f")
        await asyncio.gather(*(mappings.increment_views(proto_id) for _ in range(10)))
        assert (await mappings.get(proto_id)).views == 10

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrent_registrations(self, mappings: MappingsStore):
        paths = [mappings.root / "f" / "p" / f"app-{i}" for i in range(5)]
        ids = await asyncio.gather(*(mappings.register(path, "file") for path in paths))
        assert len(set(ids)) == 5
        assert len(await mappings.all()) == 5
