"""Job store - persisted job records and the cancellation signal channel."""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from asyncpg import Pool, Record

from lexis.core.logging import get_logger
from lexis.models.job import Job, JobStats, JobStatus, LogEntry, utcnow

logger = get_logger(__name__)

UPDATABLE_FIELDS = frozenset(
    {"status", "current_step", "error", "pr_url", "stats", "github_username", "languages"}
)


def _normalize(fields: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update job fields: {', '.join(sorted(unknown))}")
    normalized = dict(fields)
    if isinstance(normalized.get("status"), JobStatus):
        normalized["status"] = normalized["status"].value
    return normalized


class JobStore(ABC):
    """Persistence contract the pipeline relies on.

    Every method is atomic per call. Nothing spans a transaction across calls;
    read-your-writes is the only ordering guarantee.
    """

    @abstractmethod
    async def create(self, job: Job) -> Job:
        """Insert a new job row."""

    @abstractmethod
    async def get_by_id(self, job_id: str) -> Optional[Job]:
        """Point query; ``None`` when the job does not exist."""

    @abstractmethod
    async def update_fields(self, job_id: str, **fields: Any) -> None:
        """Update a subset of columns and bump ``updated_at``."""

    @abstractmethod
    async def append_log(self, job_id: str, entry: LogEntry) -> None:
        """Append one entry to the job's log stream."""

    @abstractmethod
    async def claim_run(self, job_id: str) -> bool:
        """Transition ``pending -> running``; False if the job was not pending."""

    @abstractmethod
    async def cancel(self, job_id: str, reason: str) -> bool:
        """Transition ``running -> cancelled``; False if the job was not running."""

    @abstractmethod
    async def reset_for_retry(self, job_id: str) -> bool:
        """Transition ``failed|cancelled -> pending``; False otherwise."""

    @abstractmethod
    async def finish_run(
        self, job_id: str, status: JobStatus, error: Optional[str] = None
    ) -> bool:
        """Transition ``running -> status``; False if the job is no longer running."""

    async def is_cancelled(self, job_id: str) -> bool:
        job = await self.get_by_id(job_id)
        return job is not None and job.status == JobStatus.CANCELLED


class InMemoryJobStore(JobStore):
    """Process-local store used by tests and dry runs."""

    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}

    async def create(self, job: Job) -> Job:
        self._jobs[job.id] = job.model_copy(deep=True)
        return job

    async def get_by_id(self, job_id: str) -> Optional[Job]:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    def _require(self, job_id: str) -> Job:
        if job_id not in self._jobs:
            raise KeyError(f"Job {job_id} not found")
        return self._jobs[job_id]

    def _apply(self, job_id: str, fields: Dict[str, Any]) -> None:
        job = self._require(job_id)
        update = _normalize(fields)
        if "status" in update:
            update["status"] = JobStatus(update["status"])
        if "stats" in update and not isinstance(update["stats"], JobStats):
            update["stats"] = JobStats.model_validate(update["stats"])
        update["updated_at"] = utcnow()
        self._jobs[job_id] = job.model_copy(update=update)

    async def update_fields(self, job_id: str, **fields: Any) -> None:
        self._apply(job_id, fields)

    async def append_log(self, job_id: str, entry: LogEntry) -> None:
        job = self._require(job_id)
        self._jobs[job_id] = job.model_copy(
            update={"logs": [*job.logs, entry], "updated_at": utcnow()}
        )

    async def _transition(
        self, job_id: str, allowed: tuple[JobStatus, ...], fields: Dict[str, Any]
    ) -> bool:
        job = self._jobs.get(job_id)
        if job is None or job.status not in allowed:
            return False
        self._apply(job_id, fields)
        return True

    async def claim_run(self, job_id: str) -> bool:
        return await self._transition(
            job_id,
            (JobStatus.PENDING,),
            {"status": JobStatus.RUNNING, "error": None, "current_step": None},
        )

    async def cancel(self, job_id: str, reason: str) -> bool:
        return await self._transition(
            job_id,
            (JobStatus.RUNNING,),
            {"status": JobStatus.CANCELLED, "error": reason, "current_step": None},
        )

    async def reset_for_retry(self, job_id: str) -> bool:
        return await self._transition(
            job_id,
            (JobStatus.FAILED, JobStatus.CANCELLED),
            {"status": JobStatus.PENDING, "error": None, "current_step": None},
        )

    async def finish_run(
        self, job_id: str, status: JobStatus, error: Optional[str] = None
    ) -> bool:
        return await self._transition(
            job_id,
            (JobStatus.RUNNING,),
            {"status": status, "error": error, "current_step": None},
        )


class PostgresJobStore(JobStore):
    """Job store backed by the ``jobs`` table."""

    def __init__(self, pool: Pool):
        self.pool = pool

    @staticmethod
    def _row_to_job(row: Record) -> Job:
        data = dict(row)
        for column in ("stats", "logs"):
            if isinstance(data.get(column), str):
                data[column] = json.loads(data[column])
        data["languages"] = list(data.get("languages") or [])
        return Job.model_validate(data)

    async def create(self, job: Job) -> Job:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO jobs (
                    id, user_id, github_username, repo_url, repo_owner, repo_name,
                    languages, status, stats, logs, created_at, updated_at
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9::jsonb, $10::jsonb, $11, $12)
                """,
                job.id,
                job.user_id,
                job.github_username,
                job.repo_url,
                job.repo_owner,
                job.repo_name,
                job.languages,
                job.status.value,
                json.dumps(job.stats.model_dump(by_alias=True)),
                json.dumps([entry.to_wire() for entry in job.logs]),
                job.created_at,
                job.updated_at,
            )
        return job

    async def get_by_id(self, job_id: str) -> Optional[Job]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM jobs WHERE id = $1", job_id)
        return self._row_to_job(row) if row else None

    async def update_fields(self, job_id: str, **fields: Any) -> None:
        update = _normalize(fields)

        # Build dynamic UPDATE query
        update_fields = ["updated_at = NOW()"]
        params: list = []
        for column, value in update.items():
            params.append(value)
            if column == "stats":
                if isinstance(value, JobStats):
                    value = value.model_dump(by_alias=True)
                params[-1] = json.dumps(value)
                update_fields.append(f"stats = ${len(params)}::jsonb")
            else:
                update_fields.append(f"{column} = ${len(params)}")

        params.append(job_id)
        query = f"""
            UPDATE jobs
            SET {', '.join(update_fields)}
            WHERE id = ${len(params)}
        """

        async with self.pool.acquire() as conn:
            await conn.execute(query, *params)

    async def append_log(self, job_id: str, entry: LogEntry) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE jobs
                SET logs = logs || jsonb_build_array($1::jsonb), updated_at = NOW()
                WHERE id = $2
                """,
                json.dumps(entry.to_wire()),
                job_id,
            )

    async def is_cancelled(self, job_id: str) -> bool:
        async with self.pool.acquire() as conn:
            status = await conn.fetchval("SELECT status FROM jobs WHERE id = $1", job_id)
        return status == JobStatus.CANCELLED.value

    async def _transition(
        self, job_id: str, allowed: tuple[JobStatus, ...], status: JobStatus, error: str | None
    ) -> bool:
        async with self.pool.acquire() as conn:
            row_id = await conn.fetchval(
                """
                UPDATE jobs
                SET status = $1, error = $2, current_step = NULL, updated_at = NOW()
                WHERE id = $3 AND status = ANY($4::text[])
                RETURNING id
                """,
                status.value,
                error,
                job_id,
                [s.value for s in allowed],
            )
        return row_id is not None

    async def claim_run(self, job_id: str) -> bool:
        return await self._transition(job_id, (JobStatus.PENDING,), JobStatus.RUNNING, None)

    async def cancel(self, job_id: str, reason: str) -> bool:
        return await self._transition(job_id, (JobStatus.RUNNING,), JobStatus.CANCELLED, reason)

    async def reset_for_retry(self, job_id: str) -> bool:
        return await self._transition(
            job_id, (JobStatus.FAILED, JobStatus.CANCELLED), JobStatus.PENDING, None
        )

    async def finish_run(
        self, job_id: str, status: JobStatus, error: Optional[str] = None
    ) -> bool:
        return await self._transition(job_id, (JobStatus.RUNNING,), status, error)
