#!/usr/bin/env python3
"""Manual job trigger script - create a globalization job and run it."""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from lexis.core.config import get_settings
from lexis.core.logging import setup_logging
from lexis.db.connection import close_db_pool, create_db_pool
from lexis.db.job_store import PostgresJobStore
from lexis.db.migrations import run_migrations
from lexis.db.redis_client import close_redis, create_redis
from lexis.github.client import GitHubClient
from lexis.pipeline.context import Credentials
from lexis.pipeline.runner import create_runner
from lexis.pipeline.steps import STEP_ORDER
from lexis.queue.producer import enqueue_job
from lexis.services.jobs import create_job, request_run
from lexis.services.summary import get_step_summary


async def trigger_job(repo_url: str, languages: list[str], inline: bool) -> bool:
    """Create a job for ``repo_url`` and enqueue it (or run it in this process)."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    print(f"\n{'='*60}")
    print(f"🚀 Manual Job Trigger: {repo_url}")
    print(f"{'='*60}\n")

    pool = None
    redis = None
    try:
        print("Step 1: Connecting to database...")
        pool = await create_db_pool(settings.database_url)
        await run_migrations(pool)
        store = PostgresJobStore(pool)
        print("  ✅ Connected to database")

        print("\nStep 2: Creating job record...")
        github = GitHubClient.from_settings(settings) if settings.github_token else None
        try:
            job = await create_job(store, repo_url, languages=languages, github=github)
        finally:
            if github:
                await github.close()
        print(f"  ✅ Job {job.id} for {job.repo_full_name} ({job.status.value})")

        if inline:
            print("\nStep 3: Running pipeline in this process...")
            runner = create_runner(settings, store=store)
            try:
                await runner.run(job, Credentials(github_username=job.github_username))
            finally:
                if runner.llm is not None:
                    await runner.llm.close()
                final = await store.get_by_id(job.id)
                for step in STEP_ORDER:
                    summary = get_step_summary(final, step)
                    print(f"   - {step}: {summary or '-'}")
                print(f"\n📋 Status: {final.status.value}")
                if final.pr_url:
                    print(f"   PR: {final.pr_url}")
        else:
            print("\nStep 3: Enqueueing job to Redis Streams...")
            redis = await create_redis(settings.redis_url)
            await request_run(
                store,
                job.id,
                lambda queued: enqueue_job(
                    redis,
                    queued.id,
                    github_username=queued.github_username,
                    metadata={"triggered_by": "manual_script"},
                ),
            )
            print(f"  ✅ Job enqueued: {job.id}")
            print("\n⏳ Worker will process this job automatically.")
            print(f"   Check progress with: python scripts/job_status.py {job.id}\n")

        return True

    except Exception as e:
        print(f"\n❌ Failed to trigger job: {e}")
        return False

    finally:
        await close_redis(redis)
        await close_db_pool(pool)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create and start an i18n job.")
    parser.add_argument("repo_url", help="e.g. https://github.com/owner/repo")
    parser.add_argument(
        "--languages",
        default="",
        help="Comma-separated target locales (default: settings.default_languages)",
    )
    parser.add_argument(
        "--inline",
        action="store_true",
        help="Run the pipeline in this process instead of enqueueing it",
    )
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args(sys.argv[1:])
    languages = [code.strip() for code in args.languages.split(",") if code.strip()]
    success = asyncio.run(trigger_job(args.repo_url, languages, args.inline))
    sys.exit(0 if success else 1)
