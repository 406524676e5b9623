"""Tests for job trigger services and step summaries."""

from unittest.mock import AsyncMock

import pytest

from lexis.core.exceptions import JobStateError, RepositoryError
from lexis.github.client import GitHubAPIError
from lexis.models.job import Job, JobStats, JobStatus, LogEntry, LogLevel
from lexis.services.jobs import create_job, parse_repo_url, request_run, stop_job
from lexis.services.summary import get_step_summary


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://github.com/acme/site", ("acme", "site")),
        ("https://github.com/acme/site.git", ("acme", "site")),
        ("https://github.com/acme/site/", ("acme", "site")),
        ("git@github.com:acme/site.git", ("acme", "site")),
    ],
)
def test_parse_repo_url(url, expected):
    assert parse_repo_url(url) == expected


@pytest.mark.parametrize("url", ["https://gitlab.com/acme/site", "acme/site", ""])
def test_parse_repo_url_rejects_other_hosts(url):
    with pytest.raises(RepositoryError, match="Invalid GitHub repository URL."):
        parse_repo_url(url)


class TestCreateJob:
    @pytest.mark.asyncio
    async def test_creates_pending_job(self, store):
        job = await create_job(store, "https://github.com/acme/site", languages=["es", "es", "de"])

        stored = await store.get_by_id(job.id)
        assert stored.status == JobStatus.PENDING
        assert stored.repo_full_name == "acme/site"
        assert stored.languages == ["es", "de"]

    @pytest.mark.asyncio
    async def test_looks_up_username_from_token(self, store):
        github = AsyncMock()
        github.get_repo = AsyncMock(return_value={"private": False})
        github.get_current_user = AsyncMock(return_value={"login": "octocat"})

        job = await create_job(store, "https://github.com/acme/site", github=github)

        assert job.github_username == "octocat"

    @pytest.mark.asyncio
    async def test_private_repository_is_rejected(self, store):
        github = AsyncMock()
        github.get_repo = AsyncMock(return_value={"private": True})

        with pytest.raises(RepositoryError, match="Please use a public repository."):
            await create_job(store, "https://github.com/acme/secret", github=github)

    @pytest.mark.asyncio
    async def test_missing_repository_is_rejected(self, store):
        github = AsyncMock()
        github.get_repo = AsyncMock(side_effect=GitHubAPIError("Not Found", status_code=404))

        with pytest.raises(RepositoryError, match="Repository not found."):
            await create_job(store, "https://github.com/acme/gone", github=github)


class TestRequestRun:
    @pytest.mark.asyncio
    async def test_enqueues_pending_job(self, store, job):
        enqueue = AsyncMock()
        await request_run(store, job.id, enqueue)
        enqueue.assert_awaited_once()
        assert enqueue.await_args.args[0].id == job.id

    @pytest.mark.asyncio
    async def test_failed_job_is_reset_and_enqueued(self, store, job):
        await store.claim_run(job.id)
        await store.update_fields(job.id, status=JobStatus.FAILED, error="Clone failed")
        enqueue = AsyncMock()

        queued = await request_run(store, job.id, enqueue)

        assert queued.status == JobStatus.PENDING
        assert queued.error is None
        enqueue.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_running_job_is_refused(self, store, job):
        await store.claim_run(job.id)
        enqueue = AsyncMock()

        with pytest.raises(JobStateError, match="Job is already running, not starting again."):
            await request_run(store, job.id, enqueue)
        enqueue.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_job(self, store):
        with pytest.raises(JobStateError, match="Job not found."):
            await request_run(store, "missing", AsyncMock())


class TestStopJob:
    @pytest.mark.asyncio
    async def test_cancels_running_job(self, store, job):
        await store.claim_run(job.id)

        stopped = await stop_job(store, job.id)

        assert stopped.status == JobStatus.CANCELLED
        assert stopped.error == "Cancelled by user."

    @pytest.mark.asyncio
    async def test_pending_job_cannot_be_stopped(self, store, job):
        with pytest.raises(JobStateError, match="Job is pending, cannot stop."):
            await stop_job(store, job.id)

    @pytest.mark.asyncio
    async def test_unknown_job(self, store):
        with pytest.raises(JobStateError, match="Job not found."):
            await stop_job(store, "missing")


def make_job(logs=(), **overrides):
    return Job(
        repo_url="https://github.com/acme/site",
        repo_owner="acme",
        repo_name="site",
        logs=list(logs),
        **overrides,
    )


def entry(step, data=None, level=LogLevel.INFO):
    return LogEntry(step=step, level=level, message="m", data=data)


class TestStepSummary:
    def test_no_data_means_no_summary(self):
        assert get_step_summary(make_job(), "clone") is None
        assert get_step_summary(make_job(), "unknown-step") is None

    @pytest.mark.parametrize(
        "step,data,expected",
        [
            ("clone", {"repoPath": "/tmp/repo"}, "Cloned"),
            ("scan", {"filesWithStrings": 12, "totalStrings": 47}, "12 files, 47 strings"),
            ("setup-i18n", {"localesAdded": ["en", "es", "fr"]}, "Locales: en, es, fr"),
            (
                "transform",
                {"completedFiles": 5, "totalFiles": 12, "stringsExtracted": 30},
                "5/12 files (42%), 30 strings",
            ),
            ("transform", {"completedFiles": 1, "totalFiles": 8}, "1/8 files (13%)"),
            ("translate", {"languagesCount": 3}, "3 languages"),
            ("commit-push", {"branch": "feat/i18n-lingo-dev"}, "Branch: feat/i18n-lingo-dev"),
            ("open-pr", {"prUrl": "https://github.com/acme/site/pull/1"}, "PR opened"),
        ],
    )
    def test_summaries(self, step, data, expected):
        job = make_job([entry(step, data)])
        assert get_step_summary(job, step) == expected

    def test_uses_latest_entry_with_data(self):
        job = make_job(
            [
                entry("scan", {"filesWithStrings": 1, "totalStrings": 2}),
                entry("scan", {"filesWithStrings": 3, "totalStrings": 9}),
                entry("scan", None, level=LogLevel.SUCCESS),
            ]
        )
        assert get_step_summary(job, "scan") == "3 files, 9 strings"

    def test_transform_falls_back_to_stats_when_completed(self):
        job = make_job(
            status=JobStatus.COMPLETED,
            stats=JobStats(files_modified=8, strings_found=40, languages_added=2),
        )
        assert get_step_summary(job, "transform") == "8 files, 40 strings"

    def test_empty_locales_have_no_summary(self):
        job = make_job([entry("setup-i18n", {"localesAdded": []})])
        assert get_step_summary(job, "setup-i18n") is None
