#!/usr/bin/env python3
"""Print a job's status, per-step summaries and recent log entries."""

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
from lexis.db.migrations import check_migration_status
from lexis.pipeline.steps import STEP_ORDER
from lexis.services.summary import get_step_summary

RECENT_LOGS = 20


async def show_status(job_id: str) -> bool:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    pool = None
    try:
        pool = await create_db_pool(settings.database_url)
        if not await check_migration_status(pool):
            print("❌ jobs table does not exist. Run the worker or trigger_job.py first.")
            return False

        job = await PostgresJobStore(pool).get_by_id(job_id)
        if job is None:
            print(f"❌ Job {job_id} not found")
            return False

        print(f"\n{'='*60}")
        print(f"📋 Job {job.id}: {job.repo_full_name}")
        print(f"{'='*60}")
        print(f"Status:       {job.status.value}")
        print(f"Current step: {job.current_step or '-'}")
        print(f"Languages:    {', '.join(job.languages) or '(defaults)'}")
        if job.error:
            print(f"Error:        {job.error}")
        if job.pr_url:
            print(f"PR:           {job.pr_url}")

        print("\nSteps:")
        for step in STEP_ORDER:
            marker = "▶" if step == job.current_step else " "
            print(f" {marker} {step:<12} {get_step_summary(job, step) or ''}")

        print(f"\nLast {RECENT_LOGS} log entries:")
        for entry in job.logs[-RECENT_LOGS:]:
            print(f"  {entry.ts:%H:%M:%S} [{entry.level.value:<7}] {entry.step}: {entry.message}")
        print()
        return True
    finally:
        await close_db_pool(pool)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts/job_status.py <job_id>")
        sys.exit(1)

    success = asyncio.run(show_status(sys.argv[1]))
    sys.exit(0 if success else 1)
