"""Tests for the background prototype builder (appbuilder.prototype.builder)."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from appbuilder.bundlers.base import BundleResult, BundlerError
from appbuilder.config import Config
from appbuilder.jobs import JobQueue, JobStatus
from appbuilder.prototype.builder import (
    BUILD_ERROR,
    PrototypeBuilder,
    PrototypeBuildError,
    PrototypeBuildRequest,
    prototype_dir,
)
from appbuilder.prototype.mappings import MappingsStore


def _request(config: dict, **overrides) -> PrototypeBuildRequest:
    body = {
        "figmaFileId": "file-abc",
        "figmaFileName": "Bank File",
        "figmaPageName": "Home",
        "appName": "DemoBank",
        "fullAppConfig": config,
        **overrides,
    }
    return PrototypeBuildRequest.model_validate(body)


def _fake_bundler(result: BundleResult | None = None, error: Exception | None = None) -> MagicMock:
    bundler = MagicMock()
    bundler.needs_local_node_modules = False
    bundler.bundle = AsyncMock(return_value=result or BundleResult(), side_effect=error)
    return bundler


@pytest.fixture
def builder(settings: Config, queue: JobQueue, mappings: MappingsStore) -> PrototypeBuilder:
    return PrototypeBuilder(settings, queue=queue, mappings=mappings)


class TestRequest:
    @pytest.mark.unit
    def test_camel_case_body(self, sample_config):
        request = _request(sample_config, bundleType="expo")
        assert request.figma_file_id == "file-abc"
        assert request.bundle_type == "expo"

    @pytest.mark.unit
    def test_prototype_dir(self, settings: Config, sample_config):
        request = _request(sample_config, figmaPageName="Home / Main")
        assert prototype_dir(settings, request) == (
            settings.prototypes_root / "bank-file" / "home---main" / "demobank"
        )

    @pytest.mark.unit
    def test_error_message_includes_details(self):
        assert str(PrototypeBuildError("Module generation failed", "boom")) == (
            "Module generation failed: boom"
        )


class TestBuildPrototype:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_successful_build(self, builder: PrototypeBuilder, queue: JobQueue, sample_config):
        request = _request(sample_config)
        queue.create_job("job-1")
        bundler = _fake_bundler()

        with patch("appbuilder.prototype.builder.get_bundler", return_value=bundler) as factory:
            url = await builder.build_prototype("job-1", request)

        assert factory.call_args.args[0] == "esbuild"
        assert url.startswith("http://testserver/prototypes/proto-")
        job = queue.get_job("job-1")
        assert job.status is JobStatus.COMPLETE
        assert job.result.prototype_url == url

        build_path = prototype_dir(builder.settings, request)
        assert not (build_path / "temp").exists()
        assert (build_path / "index.html").is_file()
        saved = json.loads((build_path / "fullAppConfig.json").read_text(encoding="utf-8"))
        assert saved["appName"] == "DemoBank"

        bundle_args = bundler.bundle.await_args.args
        assert bundle_args[0] == "job-1"
        assert bundle_args[1] == build_path / "temp"

        proto_id = url.rsplit("/", 1)[1]
        mapping = await builder.mappings.get(proto_id)
        assert mapping.figma_file_id == "file-abc"
        assert mapping.bundle_type == "esbuild"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_rebuild_keeps_prototype_id(self, builder: PrototypeBuilder, queue: JobQueue, sample_config):
        request = _request(sample_config)
        queue.create_job("job-1")
        queue.create_job("job-2")
        with patch("appbuilder.prototype.builder.get_bundler", return_value=_fake_bundler()):
            first = await builder.build_prototype("job-1", request)
            second = await builder.build_prototype("job-2", request)
        assert first == second

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_expo_server_keeps_temp(self, builder: PrototypeBuilder, queue: JobQueue, sample_config):
        request = _request(sample_config, bundleType="expo_server")
        queue.create_job("job-1")
        bundler = _fake_bundler(BundleResult(url="http://localhost:19006"))

        with patch("appbuilder.prototype.builder.get_bundler", return_value=bundler):
            await builder.build_prototype("job-1", request)

        build_path = prototype_dir(builder.settings, request)
        assert (build_path / "temp").is_dir()
        viewer = (build_path / "index.html").read_text(encoding="utf-8")
        assert "http://localhost:19006?t=" in viewer

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_config_fails_job(self, builder: PrototypeBuilder, queue: JobQueue):
        queue.create_job("job-1")
        with pytest.raises(PrototypeBuildError, match="Configuration validation failed"):
            await builder.build_prototype("job-1", _request({"appName": "X"}))

        job = queue.get_job("job-1")
        assert job.status is JobStatus.ERROR
        assert job.error_code == BUILD_ERROR
        assert job.can_retry is True

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_bundler_error_fails_job(self, builder: PrototypeBuilder, queue: JobQueue, sample_config):
        queue.create_job("job-1")
        bundler = _fake_bundler(error=BundlerError("esbuild bundling failed", stderr="syntax error"))

        with patch("appbuilder.prototype.builder.get_bundler", return_value=bundler):
            with pytest.raises(BundlerError):
                await builder.build_prototype("job-1", _request(sample_config))

        job = queue.get_job("job-1")
        assert job.status is JobStatus.ERROR
        assert "syntax error" in job.error
        assert await builder.mappings.all() == {}


class TestStartBuild:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_background_task_completes(self, builder: PrototypeBuilder, queue: JobQueue, sample_config):
        with patch("appbuilder.prototype.builder.get_bundler", return_value=_fake_bundler()):
            job_id = builder.start_build(_request(sample_config))
            assert job_id.startswith("job-")
            assert queue.get_job(job_id) is not None
            await builder.wait_all()

        assert queue.get_job(job_id).status is JobStatus.COMPLETE

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_background_failure_is_recorded(self, builder: PrototypeBuilder, queue: JobQueue):
        job_id = builder.start_build(_request({"components": "nope"}))
        await builder.wait_all()
        job = queue.get_job(job_id)
        assert job.status is JobStatus.ERROR
        assert job.error_code == BUILD_ERROR
