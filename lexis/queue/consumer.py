"""Job consumer - run pipelines for jobs read from Redis Streams."""

import asyncio
import json
import os
import socket
from typing import Optional

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import ResponseError

from lexis.core.exceptions import JobStateError
from lexis.core.logging import get_logger
from lexis.db.job_store import JobStore
from lexis.models.job import JobMessage
from lexis.pipeline.context import Credentials
from lexis.pipeline.runner import PipelineRunner
from lexis.queue.producer import STREAM_NAME

logger = get_logger(__name__)

CONSUMER_GROUP = "lexis_workers"
BLOCK_TIME = 5000  # 5 seconds in milliseconds
PENDING_BATCH = 10


def default_consumer_name() -> str:
    return os.getenv("WORKER_NAME") or f"worker-{socket.gethostname()}-{os.getpid()}"


def parse_message(data: dict) -> JobMessage:
    """Decode a stream entry written by ``enqueue_job``."""
    return JobMessage.model_validate(json.loads(data.get("job_data", "{}")))


async def process_message(
    runner: PipelineRunner, store: JobStore, message: JobMessage
) -> bool:
    """
    Run the pipeline for one queued job.

    Failures are already recorded on the job by the runner, so nothing here is
    retried.

    Returns:
        True if the pipeline completed or was cancelled, False otherwise
    """
    job = await store.get_by_id(message.job_id)
    if job is None:
        logger.warning("Queued job not found, dropping message", job_id=message.job_id)
        return False

    logger.info(
        f"Processing job {job.id} for {job.repo_full_name}",
        job_id=job.id,
        message_id=message.message_id,
    )
    credentials = Credentials(github_username=message.github_username)

    try:
        await runner.run(job, credentials)
    except JobStateError as e:
        logger.warning(f"Skipping job {job.id}: {e}", job_id=job.id, status=e.status)
        return False
    except Exception as e:
        logger.error(f"Job {job.id} failed: {e}", job_id=job.id, exc_info=True)
        return False

    logger.info(f"Job {job.id} finished", job_id=job.id)
    return True


async def ensure_consumer_group(redis: Redis) -> None:
    try:
        await redis.xgroup_create(STREAM_NAME, CONSUMER_GROUP, id="0", mkstream=True)
        logger.info(f"Created consumer group {CONSUMER_GROUP}")
    except ResponseError as e:
        # Group might already exist, that's okay
        if "BUSYGROUP" not in str(e):
            raise


async def _claim_pending(redis: Redis, consumer_name: str) -> list:
    """Re-deliver messages this consumer read but never acknowledged."""
    pending = await redis.xpending_range(
        STREAM_NAME,
        CONSUMER_GROUP,
        min="-",
        max="+",
        count=PENDING_BATCH,
        consumername=consumer_name,
    )
    if not pending:
        return []

    logger.info(f"Found {len(pending)} pending messages, claiming them...")
    claimed = await redis.xclaim(
        STREAM_NAME,
        CONSUMER_GROUP,
        consumer_name,
        min_idle_time=0,
        message_ids=[msg["message_id"] for msg in pending],
    )
    return [(STREAM_NAME, claimed)] if claimed else []


async def handle_entry(
    redis: Redis,
    runner: PipelineRunner,
    store: JobStore,
    msg_id: str,
    data: dict,
) -> None:
    """Process one stream entry and acknowledge it whatever the outcome."""
    try:
        message = parse_message(data)
    except (ValueError, ValidationError) as e:
        logger.error(f"Discarding malformed message {msg_id}: {e}")
    else:
        await process_message(runner, store, message)
    finally:
        await redis.xack(STREAM_NAME, CONSUMER_GROUP, msg_id)
        logger.debug(f"Acknowledged message {msg_id}")


async def consume_jobs(
    redis: Redis,
    runner: PipelineRunner,
    store: JobStore,
    shutdown: asyncio.Event,
    consumer_name: Optional[str] = None,
) -> None:
    """Main consumer loop - reads job messages until ``shutdown`` is set."""
    consumer_name = consumer_name or default_consumer_name()
    await ensure_consumer_group(redis)

    logger.info(f"Starting consumer {consumer_name} in group {CONSUMER_GROUP}")

    while not shutdown.is_set():
        try:
            messages = await redis.xreadgroup(
                CONSUMER_GROUP,
                consumer_name,
                {STREAM_NAME: ">"},
                count=1,
                block=BLOCK_TIME,
            )
            if not messages:
                messages = await _claim_pending(redis, consumer_name)
            if not messages:
                continue

            for _stream, msg_list in messages:
                for msg_id, data in msg_list:
                    await handle_entry(redis, runner, store, msg_id, data)

        except asyncio.CancelledError:
            logger.info("Consumer loop cancelled")
            raise
        except Exception as e:
            logger.error(f"Error in consumer loop: {e}", exc_info=True)
            await asyncio.sleep(1)  # Brief pause before retrying

    logger.info("Consumer stopped")
