"""Job producer - enqueue pipeline runs to Redis Streams."""

import json
from typing import Optional

from redis.asyncio import Redis

from lexis.core.logging import get_logger
from lexis.models.job import JobMessage

logger = get_logger(__name__)

STREAM_NAME = "lexis_jobs"
MAX_STREAM_LENGTH = 10000  # Prevent unbounded growth


async def enqueue_job(
    redis: Redis,
    job_id: str,
    github_username: Optional[str] = None,
    metadata: dict | None = None,
) -> str:
    """
    Enqueue a pipeline run for an existing job.

    Only the job id and acting username travel through the stream; tokens
    never do.

    Args:
        redis: Connected Redis client
        job_id: ID of a pending job in the job store
        github_username: Acting GitHub identity, if known
        metadata: Optional metadata dictionary

    Returns:
        Queue message ID (UUID string)

    Raises:
        Exception: If the enqueue fails
    """
    message = JobMessage(
        job_id=job_id,
        github_username=github_username,
        metadata=metadata or {},
    )

    try:
        stream_id = await redis.xadd(
            STREAM_NAME,
            {
                "job_data": json.dumps(message.model_dump()),
                "job_id": job_id,
            },
            maxlen=MAX_STREAM_LENGTH,
            approximate=True,
        )
    except Exception as e:
        logger.error(f"Failed to enqueue job {job_id}: {e}", exc_info=True)
        raise

    logger.info(
        f"Enqueued job {job_id} (message_id: {message.message_id}, stream_id: {stream_id})"
    )
    return message.message_id
