"""Run-scoped state threaded through every pipeline step."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional

from lexis.models.job import Job, JobStats
from lexis.models.schemas import DetectedFramework, StringHit

if TYPE_CHECKING:
    from lexis.core.config import Settings
    from lexis.github.client import GitHubClient
    from lexis.llm.base import BaseLLMProvider
    from lexis.pipeline.frameworks import FrameworkAdapter
    from lexis.pipeline.git import Git
    from lexis.pipeline.state import JobStateWriter

StringHitsByFile = Dict[Path, List[StringHit]]


@dataclass(frozen=True)
class Credentials:
    """Short-lived credentials for one run. Never logged."""

    github_token: Optional[str] = field(default=None, repr=False)
    github_username: Optional[str] = None


@dataclass
class PushTarget:
    remote: str
    owner: str
    repo: str
    branch: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass
class PipelineContext:
    """Mutable state owned by exactly one runner invocation."""

    job: Job
    settings: Settings
    state: JobStateWriter
    github: GitHubClient
    git: Git
    work_dir: Path
    repo_dir: Path
    target_languages: List[str]
    llm: Optional[BaseLLMProvider] = None
    github_token: Optional[str] = field(default=None, repr=False)
    github_username: Optional[str] = None
    stats: JobStats = field(default_factory=JobStats)
    string_hits_by_file: StringHitsByFile = field(default_factory=dict)
    source_messages: Dict[str, str] = field(default_factory=dict)
    detected_framework: Optional[DetectedFramework] = None
    framework_adapter: Optional[FrameworkAdapter] = None
    push_target: Optional[PushTarget] = None

    @property
    def job_id(self) -> str:
        return self.job.id

    @property
    def source_locale(self) -> str:
        return self.settings.source_locale

    @property
    def messages_dir(self) -> Path:
        return self.repo_dir / "messages"

    @property
    def source_catalog_path(self) -> Path:
        return self.messages_dir / f"{self.source_locale}.json"

    def relocate_file(self, old_path: Path, new_path: Path) -> None:
        """Keep recorded string hits attached to a file that was moved."""
        if old_path not in self.string_hits_by_file:
            return
        self.string_hits_by_file = {
            (new_path if path == old_path else path): hits
            for path, hits in self.string_hits_by_file.items()
        }

    def relative(self, path: Path) -> str:
        return path.relative_to(self.repo_dir).as_posix()
