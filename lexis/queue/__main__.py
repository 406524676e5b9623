"""Entry point for running the worker as a module: python -m lexis.queue"""

import asyncio
import os
import signal
import sys

from aiohttp import web

from lexis.core.config import Settings, get_settings
from lexis.core.logging import get_logger, setup_logging
from lexis.db.connection import close_db_pool, create_db_pool
from lexis.db.job_store import PostgresJobStore
from lexis.db.migrations import run_migrations
from lexis.db.redis_client import close_redis, create_redis
from lexis.pipeline.runner import create_runner
from lexis.queue.consumer import consume_jobs

logger = get_logger(__name__)


async def health_check(request: web.Request) -> web.Response:
    return web.Response(text="OK", status=200)


async def start_health_server() -> web.AppRunner | None:
    """Start minimal HTTP server for health checks when PORT is set."""
    port_str = os.getenv("PORT")
    if not port_str:
        logger.info("PORT not set, skipping health check server")
        return None

    port = int(port_str)
    app = web.Application()
    app.router.add_get("/health", health_check)
    app.router.add_get("/", health_check)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    await site.start()

    logger.info("Health check server started", port=port)
    return runner


def install_signal_handlers(shutdown: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def request_shutdown(signum: int) -> None:
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        shutdown.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, request_shutdown, signum)


async def run_worker(settings: Settings) -> None:
    """Run the worker process until a shutdown signal arrives."""
    shutdown = asyncio.Event()
    install_signal_handlers(shutdown)

    health_runner = await start_health_server()
    pool = None
    redis = None
    runner = None

    try:
        pool = await create_db_pool(settings.database_url)
        await run_migrations(pool)
        redis = await create_redis(settings.redis_url)

        store = PostgresJobStore(pool)
        runner = create_runner(settings, store=store)

        logger.info("Starting i18n worker...")
        await consume_jobs(redis, runner, store, shutdown)
    finally:
        if runner is not None and runner.llm is not None:
            await runner.llm.close()
        if health_runner:
            await health_runner.cleanup()
            logger.info("Health check server stopped")
        await close_redis(redis)
        await close_db_pool(pool)
        logger.info("Worker stopped")


def main() -> int:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    try:
        asyncio.run(run_worker(settings))
    except KeyboardInterrupt:
        logger.info("Worker interrupted by user")
    except Exception as e:
        logger.error(f"Fatal error in worker: {e}", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
