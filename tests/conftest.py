"""Shared fixtures: settings, in-memory job store and a pipeline context factory."""

from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from lexis.core.config import Settings
from lexis.db.job_store import InMemoryJobStore
from lexis.llm.base import BaseLLMProvider
from lexis.models.job import Job, JobStats
from lexis.pipeline.context import PipelineContext
from lexis.pipeline.state import JobStateWriter


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        database_url="",
        github_token="",
        github_bot_username="i18n-agent-bot",
        lingodotdev_api_key="",
        gemini_api_key="",
        anthropic_api_key="",
        openai_api_key="",
        zhipu_api_key="",
        work_root=str(tmp_path / "work"),
    )


@pytest.fixture
def store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest_asyncio.fixture
async def job(store: InMemoryJobStore) -> Job:
    job = Job(
        repo_url="https://github.com/acme/site",
        repo_owner="acme",
        repo_name="site",
        languages=["es", "fr"],
    )
    await store.create(job)
    return job


@pytest.fixture
def make_context(settings: Settings, store: InMemoryJobStore, tmp_path: Path):
    """Build a PipelineContext around ``job`` with mock git/GitHub collaborators."""

    def _make(
        job: Job,
        llm: Optional[BaseLLMProvider] = None,
        github_token: Optional[str] = None,
        github_username: Optional[str] = None,
    ) -> PipelineContext:
        work_dir = tmp_path / "work" / job.id
        repo_dir = work_dir / "repo"
        repo_dir.mkdir(parents=True, exist_ok=True)
        git = MagicMock()
        for name in (
            "version",
            "clone",
            "set_remote",
            "add_all",
            "set_config",
            "commit",
            "push",
        ):
            setattr(git, name, AsyncMock())
        git.get_remotes = AsyncMock(return_value={})
        return PipelineContext(
            job=job,
            settings=settings,
            state=JobStateWriter(store, job.id),
            github=AsyncMock(),
            git=git,
            work_dir=work_dir,
            repo_dir=repo_dir,
            target_languages=list(job.languages or settings.default_languages),
            llm=llm,
            github_token=github_token,
            github_username=github_username,
            stats=JobStats(),
        )

    return _make

