"""Tests for the pipeline runner state machine."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from lexis.core.exceptions import ConfigurationError, JobStateError
from lexis.models.job import Job, JobStatus, LogLevel
from lexis.pipeline.context import Credentials
from lexis.pipeline.runner import PipelineRunner, create_runner
from lexis.pipeline.steps import STEP_ORDER


def mocked_steps(**overrides):
    steps = {name: AsyncMock() for name in STEP_ORDER}
    steps.update(overrides)
    return steps


@pytest.fixture
def github():
    return AsyncMock()


@pytest.fixture
def make_runner(store, settings, github):
    def _make(steps, llm=None):
        return PipelineRunner(
            store=store,
            settings=settings,
            github_factory=lambda token: github,
            llm=llm,
            git_factory=lambda repo_dir: MagicMock(),
            steps=steps,
        )

    return _make


@pytest.mark.asyncio
async def test_all_steps_succeed_in_order(store, job, make_runner, github):
    steps = mocked_steps()
    await make_runner(steps).run(job)

    final = await store.get_by_id(job.id)
    assert final.status == JobStatus.COMPLETED
    assert final.current_step is None
    assert final.error is None

    expected = []
    for name in STEP_ORDER:
        expected += [(name, LogLevel.INFO), (name, LogLevel.SUCCESS)]
    assert [(entry.step, entry.level) for entry in final.logs] == expected

    assert final.logs[0].message == "Starting step: clone"
    assert final.logs[1].message.startswith("Completed step: clone in ")
    assert final.logs[1].message.endswith("ms")

    for step in steps.values():
        step.assert_awaited_once()
    github.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_step_failure_marks_job_failed_and_stops(store, job, make_runner, github):
    steps = mocked_steps(clone=AsyncMock(side_effect=RuntimeError("Clone failed")))

    with pytest.raises(RuntimeError, match="Clone failed"):
        await make_runner(steps).run(job)

    final = await store.get_by_id(job.id)
    assert final.status == JobStatus.FAILED
    assert final.error == "Clone failed"
    assert final.current_step is None

    errors = [entry for entry in final.logs if entry.level == LogLevel.ERROR]
    assert len(errors) == 1
    assert errors[0].step == "pipeline"
    assert errors[0].message == "Clone failed"

    for name in STEP_ORDER[1:]:
        assert final.logs_for_step(name) == []
        steps[name].assert_not_awaited()
    github.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_exception_without_message_uses_fallback(store, job, make_runner):
    steps = mocked_steps(scan=AsyncMock(side_effect=RuntimeError()))

    with pytest.raises(RuntimeError):
        await make_runner(steps).run(job)

    final = await store.get_by_id(job.id)
    assert final.error == "Unknown error in pipeline."


@pytest.mark.asyncio
async def test_cancellation_between_steps(store, job, make_runner):
    async def cancel_after_scan(ctx):
        await store.cancel(job.id, "Cancelled by user.")

    steps = mocked_steps(scan=AsyncMock(side_effect=cancel_after_scan))
    await make_runner(steps).run(job)

    final = await store.get_by_id(job.id)
    assert final.status == JobStatus.CANCELLED
    assert final.error == "Cancelled by user."
    assert final.current_step is None

    later_steps = STEP_ORDER[STEP_ORDER.index("scan") + 1 :]
    for name in later_steps:
        assert final.logs_for_step(name) == []
        steps[name].assert_not_awaited()

    pipeline_logs = final.logs_for_step("pipeline")
    assert [(entry.level, entry.message) for entry in pipeline_logs] == [
        (LogLevel.INFO, "Pipeline cancelled by user.")
    ]


@pytest.mark.asyncio
async def test_refuses_to_start_a_running_job(store, job, make_runner):
    await store.claim_run(job.id)
    steps = mocked_steps()

    with pytest.raises(JobStateError, match="Job is already running, not starting again."):
        await make_runner(steps).run(job)

    final = await store.get_by_id(job.id)
    assert final.status == JobStatus.RUNNING
    assert final.logs == []
    steps["clone"].assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_job_is_reported(make_runner):
    orphan = Job(repo_url="https://github.com/a/b", repo_owner="a", repo_name="b")

    with pytest.raises(JobStateError, match="not found"):
        await make_runner(mocked_steps()).run(orphan)


@pytest.mark.asyncio
async def test_second_run_after_completion_is_refused(store, job, make_runner):
    runner = make_runner(mocked_steps())
    await runner.run(job)

    with pytest.raises(JobStateError, match="Job is already completed"):
        await runner.run(job)


def test_runner_requires_a_store(settings):
    with pytest.raises(ConfigurationError):
        PipelineRunner(store=None, settings=settings)


def test_create_runner_requires_a_store(settings):
    with pytest.raises(ConfigurationError, match="Job store is not configured"):
        create_runner(settings)


def test_create_runner_without_llm_key(settings, store):
    runner = create_runner(settings, store=store)
    assert runner.llm is None


class TestResolveCredentials:
    @pytest.fixture
    def runner(self, store, settings):
        return PipelineRunner(store=store, settings=settings)

    def test_explicit_credentials_win(self, runner):
        job = Job(repo_url="u", repo_owner="o", repo_name="r", github_username="stored")
        resolved = runner.resolve_credentials(job, Credentials("tok", "explicit"))
        assert resolved.github_token == "tok"
        assert resolved.github_username == "explicit"

    def test_job_username_used_when_not_given(self, runner):
        job = Job(repo_url="u", repo_owner="o", repo_name="r", github_username="stored")
        resolved = runner.resolve_credentials(job, Credentials("tok"))
        assert resolved.github_username == "stored"

    def test_fallback_token_uses_bot_identity(self, runner, settings):
        settings.github_token = "server-token"
        job = Job(repo_url="u", repo_owner="o", repo_name="r")
        resolved = runner.resolve_credentials(job, None)
        assert resolved.github_token == "server-token"
        assert resolved.github_username == "i18n-agent-bot"

    def test_explicit_token_without_identity_stays_anonymous(self, runner):
        job = Job(repo_url="u", repo_owner="o", repo_name="r")
        resolved = runner.resolve_credentials(job, Credentials("tok"))
        assert resolved.github_username is None

    def test_credentials_are_not_in_repr(self):
        assert "secret" not in repr(Credentials("secret", "octocat"))


@pytest.mark.asyncio
async def test_context_defaults_target_languages(store, settings, make_runner):
    job = Job(repo_url="https://github.com/a/b", repo_owner="a", repo_name="b")
    await store.create(job)
    seen = {}

    async def capture(ctx):
        seen["languages"] = ctx.target_languages
        seen["repo_dir"] = ctx.repo_dir

    await make_runner(mocked_steps(clone=AsyncMock(side_effect=capture))).run(job)

    assert seen["languages"] == ["es", "fr", "de", "ja", "zh"]
    assert seen["repo_dir"] == settings.job_work_dir(job.id) / "repo"


@pytest.mark.asyncio
async def test_client_setup_failure_leaves_job_pending(store, settings, job):
    def broken_github(token):
        raise FileNotFoundError("GitHub App private key not found")

    runner = PipelineRunner(
        store=store,
        settings=settings,
        github_factory=broken_github,
        git_factory=lambda repo_dir: MagicMock(),
        steps=mocked_steps(),
    )

    with pytest.raises(FileNotFoundError):
        await runner.run(job)

    stored = await store.get_by_id(job.id)
    assert stored.status == JobStatus.PENDING
    assert stored.error is None
    assert stored.logs == []


@pytest.mark.asyncio
async def test_cancel_during_last_step_is_not_overwritten(store, job, make_runner):
    async def cancelled_mid_step(ctx):
        await store.cancel(job.id, "Cancelled by user.")

    await make_runner(mocked_steps(**{"open-pr": AsyncMock(side_effect=cancelled_mid_step)})).run(job)

    final = await store.get_by_id(job.id)
    assert final.status == JobStatus.CANCELLED
    assert final.error == "Cancelled by user."
    assert final.current_step is None


@pytest.mark.asyncio
async def test_step_failing_after_cancel_keeps_job_cancelled(store, job, make_runner):
    async def cancel_then_fail(ctx):
        await store.cancel(job.id, "Cancelled by user.")
        raise RuntimeError("boom")

    steps = mocked_steps(transform=AsyncMock(side_effect=cancel_then_fail))
    await make_runner(steps).run(job)

    final = await store.get_by_id(job.id)
    assert final.status == JobStatus.CANCELLED
    assert final.error == "Cancelled by user."
    assert [entry.message for entry in final.logs_for_step("pipeline")] == ["boom"]
    steps["translate"].assert_not_awaited()


@pytest.mark.asyncio
async def test_completion_clears_a_stale_error(store, job, make_runner):
    async def leave_error(ctx):
        await store.update_fields(job.id, error="left over")

    await make_runner(mocked_steps(scan=AsyncMock(side_effect=leave_error))).run(job)

    final = await store.get_by_id(job.id)
    assert final.status == JobStatus.COMPLETED
    assert final.error is None
