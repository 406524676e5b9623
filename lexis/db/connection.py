"""PostgreSQL database connection."""

import asyncio

import asyncpg
from asyncpg import Pool

from lexis.core.exceptions import ConfigurationError
from lexis.core.logging import get_logger

logger = get_logger(__name__)

MAX_RETRIES = 5
RETRY_DELAY = 2


async def create_db_pool(database_url: str) -> Pool:
    """Create a database connection pool with retry logic.

    The caller owns the pool and must close it with ``close_db_pool``.
    """
    if not database_url:
        raise ConfigurationError("DATABASE_URL is not configured for the job store.")

    for attempt in range(MAX_RETRIES):
        try:
            logger.info(f"Connecting to database (attempt {attempt + 1}/{MAX_RETRIES})...")
            pool = await asyncpg.create_pool(
                database_url,
                min_size=2,
                max_size=10,
                command_timeout=60,
            )
            # Test connection
            async with pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            logger.info("Database connection pool created successfully")
            return pool
        except Exception as e:
            logger.warning(f"Database connection failed: {e}")
            if attempt < MAX_RETRIES - 1:
                logger.info(f"Retrying in {RETRY_DELAY} seconds...")
                await asyncio.sleep(RETRY_DELAY)
            else:
                logger.error("Failed to connect to database after all retries")
                raise


async def close_db_pool(pool: Pool | None) -> None:
    """Close database connection pool."""
    if pool:
        await pool.close()
