"""Tests for the Redis Streams producer and consumer."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ResponseError

from lexis.core.exceptions import JobStateError
from lexis.queue.consumer import (
    CONSUMER_GROUP,
    consume_jobs,
    ensure_consumer_group,
    handle_entry,
    parse_message,
    process_message,
)
from lexis.queue.producer import STREAM_NAME, enqueue_job


@pytest.mark.asyncio
async def test_enqueue_job_writes_stream_entry():
    redis = AsyncMock()
    redis.xadd = AsyncMock(return_value="1-0")

    message_id = await enqueue_job(redis, "job-1", github_username="octocat")

    stream, fields = redis.xadd.await_args.args
    assert stream == STREAM_NAME
    assert fields["job_id"] == "job-1"
    payload = json.loads(fields["job_data"])
    assert payload["job_id"] == "job-1"
    assert payload["github_username"] == "octocat"
    assert payload["message_id"] == message_id
    assert redis.xadd.await_args.kwargs["approximate"] is True


@pytest.mark.asyncio
async def test_enqueue_failure_propagates():
    redis = AsyncMock()
    redis.xadd = AsyncMock(side_effect=ConnectionError("redis down"))

    with pytest.raises(ConnectionError):
        await enqueue_job(redis, "job-1")


def stream_fields(job_id, username=None):
    return {
        "job_data": json.dumps({"job_id": job_id, "github_username": username}),
        "job_id": job_id,
    }


@pytest.mark.asyncio
async def test_process_message_runs_job_with_queued_username(store, job):
    runner = AsyncMock()
    message = parse_message(stream_fields(job.id, "octocat"))

    assert await process_message(runner, store, message) is True

    run_job, credentials = runner.run.await_args.args
    assert run_job.id == job.id
    assert credentials.github_username == "octocat"
    assert credentials.github_token is None


@pytest.mark.asyncio
async def test_process_message_absorbs_pipeline_failures(store, job):
    runner = AsyncMock()
    runner.run = AsyncMock(side_effect=RuntimeError("Clone failed"))

    assert await process_message(runner, store, parse_message(stream_fields(job.id))) is False


@pytest.mark.asyncio
async def test_process_message_skips_jobs_already_claimed(store, job):
    runner = AsyncMock()
    runner.run = AsyncMock(side_effect=JobStateError("Job is already running", status="running"))

    assert await process_message(runner, store, parse_message(stream_fields(job.id))) is False


@pytest.mark.asyncio
async def test_process_message_unknown_job(store):
    runner = AsyncMock()
    assert await process_message(runner, store, parse_message(stream_fields("missing"))) is False
    runner.run.assert_not_awaited()


@pytest.mark.asyncio
async def test_entries_are_acknowledged_even_when_malformed(store):
    redis = AsyncMock()
    runner = AsyncMock()

    await handle_entry(redis, runner, store, "1-0", {"job_data": "{not json"})
    await handle_entry(redis, runner, store, "2-0", {"job_data": "{}"})

    assert [call.args for call in redis.xack.await_args_list] == [
        (STREAM_NAME, CONSUMER_GROUP, "1-0"),
        (STREAM_NAME, CONSUMER_GROUP, "2-0"),
    ]
    runner.run.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_job_is_acknowledged_not_retried(store, job):
    redis = AsyncMock()
    runner = AsyncMock()
    runner.run = AsyncMock(side_effect=RuntimeError("boom"))

    await handle_entry(redis, runner, store, "3-0", stream_fields(job.id))

    redis.xack.assert_awaited_once_with(STREAM_NAME, CONSUMER_GROUP, "3-0")
    redis.xadd.assert_not_called()


@pytest.mark.asyncio
async def test_existing_consumer_group_is_fine():
    redis = AsyncMock()
    redis.xgroup_create = AsyncMock(side_effect=ResponseError("BUSYGROUP Consumer Group name already exists"))
    await ensure_consumer_group(redis)


@pytest.mark.asyncio
async def test_consume_jobs_stops_on_shutdown(store, job):
    shutdown = asyncio.Event()
    redis = AsyncMock()
    runner = AsyncMock()

    async def run(run_job, credentials):
        shutdown.set()

    runner.run = AsyncMock(side_effect=run)
    redis.xreadgroup = AsyncMock(return_value=[(STREAM_NAME, [("1-0", stream_fields(job.id))])])

    await asyncio.wait_for(
        consume_jobs(redis, runner, store, shutdown, consumer_name="test-worker"), timeout=5
    )

    runner.run.assert_awaited_once()
    redis.xack.assert_awaited_once_with(STREAM_NAME, CONSUMER_GROUP, "1-0")
