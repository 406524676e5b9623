"""Job data models."""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(UTC)


class JobStatus(str, Enum):
    """Lifecycle status of a globalization job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class LogLevel(str, Enum):
    """Severity of a job log entry."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class JobStats(BaseModel):
    """Counters accumulated while a job runs (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    files_modified: int = Field(default=0, alias="filesModified")
    strings_found: int = Field(default=0, alias="stringsFound")
    languages_added: int = Field(default=0, alias="languagesAdded")

    def merged_max(self, other: "JobStats") -> "JobStats":
        """Combine two snapshots without ever lowering a counter."""
        return JobStats(
            files_modified=max(self.files_modified, other.files_modified),
            strings_found=max(self.strings_found, other.strings_found),
            languages_added=max(self.languages_added, other.languages_added),
        )


class LogEntry(BaseModel):
    """One append-only entry in a job's log stream."""

    model_config = ConfigDict(frozen=True)

    step: str
    level: LogLevel
    message: str
    ts: datetime = Field(default_factory=utcnow)
    data: Optional[dict[str, Any]] = None

    def to_wire(self) -> dict:
        """Serialize for storage, omitting ``data`` when absent."""
        return self.model_dump(mode="json", exclude_none=True)


class Job(BaseModel):
    """Persisted globalization request."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: Optional[str] = None
    github_username: Optional[str] = None
    repo_url: str
    repo_owner: str
    repo_name: str
    languages: List[str] = Field(default_factory=list)
    status: JobStatus = JobStatus.PENDING
    current_step: Optional[str] = None
    pr_url: Optional[str] = None
    stats: JobStats = Field(default_factory=JobStats)
    logs: List[LogEntry] = Field(default_factory=list)
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def repo_full_name(self) -> str:
        return f"{self.repo_owner}/{self.repo_name}"

    def logs_for_step(self, step: str) -> List[LogEntry]:
        return [entry for entry in self.logs if entry.step == step]


class JobMessage(BaseModel):
    """Queue payload asking a worker to run a job's pipeline."""

    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    job_id: str
    github_username: Optional[str] = None
    enqueued_at: str = Field(default_factory=lambda: utcnow().isoformat())
    metadata: dict = Field(default_factory=dict)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message_id": "550e8400-e29b-41d4-a716-446655440000",
                "job_id": "0b7c2f0e-9d7a-4d55-b1f6-0e0d1c3a1d11",
                "github_username": "octocat",
                "enqueued_at": "2025-11-03T23:00:00Z",
                "metadata": {"triggered_by": "manual_script"},
            }
        }
    )
