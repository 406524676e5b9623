"""Job log and state mutators used by the runner and its steps."""

from typing import Any, Optional

from lexis.core.logging import get_logger
from lexis.db.job_store import JobStore
from lexis.models.job import JobStats, JobStatus, LogEntry, LogLevel

logger = get_logger(__name__)

PIPELINE_STEP = "pipeline"


class JobStateWriter:
    """Append-only job log plus status/step/stats writes for one job."""

    def __init__(self, store: JobStore, job_id: str):
        self.store = store
        self.job_id = job_id

    async def log(
        self,
        step: str,
        level: LogLevel | str,
        message: str,
        data: Optional[dict[str, Any]] = None,
    ) -> LogEntry:
        entry = LogEntry(step=step, level=LogLevel(level), message=message, data=data)
        await self.store.append_log(self.job_id, entry)

        log_method = {
            LogLevel.WARNING: logger.warning,
            LogLevel.ERROR: logger.error,
        }.get(entry.level, logger.info)
        log_method(message, job_id=self.job_id, step=step, level=entry.level.value)
        return entry

    async def info(self, step: str, message: str, data: Optional[dict] = None) -> LogEntry:
        return await self.log(step, LogLevel.INFO, message, data)

    async def success(self, step: str, message: str, data: Optional[dict] = None) -> LogEntry:
        return await self.log(step, LogLevel.SUCCESS, message, data)

    async def warning(self, step: str, message: str, data: Optional[dict] = None) -> LogEntry:
        return await self.log(step, LogLevel.WARNING, message, data)

    async def error(self, step: str, message: str, data: Optional[dict] = None) -> LogEntry:
        return await self.log(step, LogLevel.ERROR, message, data)

    async def finish(self, status: JobStatus, error: Optional[str] = None) -> bool:
        """Record the run outcome unless the job already left ``running``."""
        return await self.store.finish_run(self.job_id, status, error)

    async def set_current_step(self, step: Optional[str]) -> None:
        await self.store.update_fields(self.job_id, current_step=step)

    async def update_stats(self, stats: JobStats) -> JobStats:
        """Persist counters, keeping whichever value is higher per counter."""
        job = await self.store.get_by_id(self.job_id)
        merged = job.stats.merged_max(stats) if job else stats
        await self.store.update_fields(self.job_id, stats=merged)
        return merged

    async def set_pr_url(self, pr_url: str) -> None:
        await self.store.update_fields(self.job_id, pr_url=pr_url)
