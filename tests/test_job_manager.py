import pytest
import asyncio

from app.models.job import QUEUED, PROCESSING, COMPLETED, FAILED
from app.services.errors import JobValidationError
from app.services.job_manager import derive_project_name
from conftest import FakeVersionControl, BlockingGenerator


class TestDeriveProjectName:
    """Test display-name derivation from repository URLs"""

    @pytest.mark.parametrize("url,expected", [
        ("https://github.com/org/repo", "repo"),
        ("https://github.com/org/repo.git", "repo"),
        ("https://github.com/org/repo/", "repo"),
        ("git@github.com:org/repo.git", "repo"),
        ("git@github.com:repo.git", "repo"),
    ])
    def test_derive(self, url, expected):
        assert derive_project_name(url) == expected


class TestValidation:
    """Test submission validation"""

    @pytest.mark.parametrize("url", [None, "", "   ", "ftp://example.com/a/b", "example.com/a/b", "http://example.com/a/b"])
    def test_rejects_bad_urls(self, job_manager, url):
        with pytest.raises(JobValidationError):
            job_manager.validate(url)

    def test_rejects_url_without_name(self, job_manager):
        with pytest.raises(JobValidationError):
            job_manager.validate("https://")

    def test_defaults(self, job_manager):
        job_input = job_manager.validate("https://example.com/a/b.git")

        assert job_input.project_name == "b"
        assert job_input.mode == "v2"
        assert job_input.description == ""

    def test_explicit_name_wins(self, job_manager):
        job_input = job_manager.validate("https://example.com/a/b", project_name="  My Project ")
        assert job_input.project_name == "My Project"

    @pytest.mark.parametrize("mode,expected", [("1", "v1"), ("2", "v2"), ("v1", "v1"), (None, "v2")])
    def test_mode_normalization(self, job_manager, mode, expected):
        assert job_manager.validate("https://example.com/a/b", mode=mode).mode == expected

    def test_numeric_mode(self, job_manager):
        assert job_manager.validate("https://example.com/a/b", mode=1).mode == "v1"

    @pytest.mark.parametrize("kwargs", [
        {"repo_url": 123},
        {"repo_url": "https://example.com/a/b", "project_name": ["b"]},
        {"repo_url": "https://example.com/a/b", "description": {"text": "x"}},
        {"repo_url": "https://example.com/a/b", "mode": 2.0},
    ])
    def test_rejects_non_text_fields(self, job_manager, kwargs):
        with pytest.raises(JobValidationError) as exc_info:
            job_manager.validate(**kwargs)
        assert "must be a string" in str(exc_info.value)

    def test_rejects_unknown_mode(self, job_manager):
        with pytest.raises(JobValidationError) as exc_info:
            job_manager.validate("https://example.com/a/b", mode="v3")
        assert "Invalid mode" in str(exc_info.value)

    def test_custom_schemes(self, make_manager):
        manager = make_manager(accepted_schemes=("http://",))

        assert manager.validate("http://example.com/a/b").repo_url == "http://example.com/a/b"
        with pytest.raises(JobValidationError):
            manager.validate("https://example.com/a/b")

    @pytest.mark.asyncio
    async def test_invalid_submit_creates_no_record(self, job_manager, job_store):
        with pytest.raises(JobValidationError):
            await job_manager.submit("not-a-url")

        assert len(job_store) == 0


class TestSubmit:
    """Test background job submission"""

    @pytest.mark.asyncio
    async def test_submit_returns_before_pipeline_finishes(self, make_pipeline, make_manager, job_store):
        manager = make_manager(pipeline=make_pipeline(vcs=FakeVersionControl(delay=0.2)))

        job_id = await manager.submit("https://example.com/a/b")

        record = job_store.get(job_id)
        assert record.status == QUEUED
        assert record.percentage < 100
        assert record.total_stages == 5
        assert manager.is_running(job_id)

        final = await manager.join(job_id)
        assert final.status == COMPLETED
        assert not manager.is_running(job_id)

    @pytest.mark.asyncio
    async def test_submit_returns_distinct_ids(self, job_manager):
        ids = [await job_manager.submit("https://example.com/a/b") for _ in range(5)]

        assert len(set(ids)) == 5
        await job_manager.drain()

    @pytest.mark.asyncio
    async def test_jobs_run_concurrently(self, make_pipeline, make_manager, job_store):
        manager = make_manager(pipeline=make_pipeline(vcs=FakeVersionControl(delay=0.3)))

        loop = asyncio.get_running_loop()
        started = loop.time()
        ids = [await manager.submit(f"https://example.com/a/repo{i}") for i in range(3)]
        await manager.drain()

        assert loop.time() - started < 0.8
        assert all(job_store.get(i).status == COMPLETED for i in ids)

    @pytest.mark.asyncio
    async def test_failed_job_is_terminal(self, make_pipeline, make_manager):
        manager = make_manager(pipeline=make_pipeline(vcs=FakeVersionControl(error=ValueError("nope"))))

        job_id = await manager.submit("https://example.com/a/b")
        record = await manager.join(job_id)

        assert record.status == FAILED
        assert record.error.stage == "acquire"

    @pytest.mark.asyncio
    async def test_pipeline_crash_is_recorded(self, job_manager, job_store):
        async def explode(job_id):
            raise RuntimeError("store unavailable")

        job_manager.pipeline.run = explode
        job_id = await job_manager.submit("https://example.com/a/b")
        record = await job_manager.join(job_id)

        assert record.status == FAILED
        assert record.error.stage == "initialize"
        assert record.error.cause == "store unavailable"

    @pytest.mark.asyncio
    async def test_concurrency_cap_keeps_jobs_queued(self, make_pipeline, make_manager, job_store):
        generator = BlockingGenerator()
        manager = make_manager(pipeline=make_pipeline(generator=generator), max_concurrent_jobs=1)

        first = await manager.submit("https://example.com/a/one")
        second = await manager.submit("https://example.com/a/two")
        for _ in range(100):
            if job_store.get(first).stage == "generate":
                break
            await asyncio.sleep(0.01)

        assert job_store.get(first).status == PROCESSING
        assert job_store.get(second).status == QUEUED

        generator.release.set()
        await manager.drain()
        assert job_store.get(first).status == COMPLETED
        assert job_store.get(second).status == COMPLETED
