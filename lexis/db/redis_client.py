"""Redis client connection."""

import asyncio

from redis.asyncio import Redis
from redis.asyncio.connection import ConnectionPool

from lexis.core.logging import get_logger

logger = get_logger(__name__)

MAX_RETRIES = 5
RETRY_DELAY = 2


async def create_redis(redis_url: str) -> Redis:
    """Create a Redis client with retry logic.

    The caller owns the client and must close it with ``close_redis``.
    """
    for attempt in range(MAX_RETRIES):
        pool = None
        try:
            logger.info(f"Connecting to Redis (attempt {attempt + 1}/{MAX_RETRIES})...")
            pool = ConnectionPool.from_url(redis_url, decode_responses=True)
            redis = Redis(connection_pool=pool)
            # Test connection
            await redis.ping()
            logger.info("Redis connection established successfully")
            return redis
        except Exception as e:
            logger.warning(f"Redis connection failed: {e}")
            if pool is not None:
                await pool.disconnect()
            if attempt < MAX_RETRIES - 1:
                logger.info(f"Retrying in {RETRY_DELAY} seconds...")
                await asyncio.sleep(RETRY_DELAY)
            else:
                logger.error("Failed to connect to Redis after all retries")
                raise


async def close_redis(redis: Redis | None) -> None:
    """Close Redis connection and its pool."""
    if redis:
        await redis.aclose()
        await redis.connection_pool.disconnect()
