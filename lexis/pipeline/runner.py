"""Pipeline runner - drives one job through the fixed step sequence."""

import time
from typing import Callable, Mapping, Optional

from lexis.core.config import Settings
from lexis.core.exceptions import ConfigurationError, JobStateError
from lexis.core.logging import get_logger
from lexis.db.job_store import JobStore
from lexis.github.client import GitHubClient
from lexis.llm.base import BaseLLMProvider
from lexis.llm.factory import create_llm_provider
from lexis.models.job import Job, JobStats, JobStatus
from lexis.pipeline.context import Credentials, PipelineContext
from lexis.pipeline.git import Git
from lexis.pipeline.state import PIPELINE_STEP, JobStateWriter
from lexis.pipeline.steps import STEP_ORDER, STEPS, Step

logger = get_logger(__name__)

GitHubFactory = Callable[[Optional[str]], GitHubClient]
GitFactory = Callable[..., Git]

UNKNOWN_ERROR = "Unknown error in pipeline."


class PipelineRunner:
    """
    Runs the pipeline for a job with explicitly injected collaborators.

    The start transition is a conditional ``pending -> running`` update, so two
    invocations for the same job cannot both run. Cancellation is polled from the
    store before each step; a step in flight always finishes.
    """

    def __init__(
        self,
        store: Optional[JobStore],
        settings: Settings,
        github_factory: Optional[GitHubFactory] = None,
        llm: Optional[BaseLLMProvider] = None,
        git_factory: GitFactory = Git,
        steps: Optional[Mapping[str, Step]] = None,
    ):
        if store is None:
            raise ConfigurationError("Job store is not configured.")
        self.store = store
        self.settings = settings
        self.github_factory = github_factory or (
            lambda token: GitHubClient.from_settings(settings, token)
        )
        self.llm = llm
        self.git_factory = git_factory
        self.steps = {**STEPS, **(steps or {})}

    def resolve_credentials(self, job: Job, credentials: Optional[Credentials]) -> Credentials:
        """Per-call credentials first, then the job's username, then process fallbacks."""
        credentials = credentials or Credentials()
        token = credentials.github_token or self.settings.github_token or None
        username = credentials.github_username or job.github_username
        if not username and token and not credentials.github_token:
            username = self.settings.github_bot_username
        return Credentials(github_token=token, github_username=username)

    def build_context(self, job: Job, credentials: Credentials) -> PipelineContext:
        work_dir = self.settings.job_work_dir(job.id)
        repo_dir = work_dir / "repo"
        return PipelineContext(
            job=job,
            settings=self.settings,
            state=JobStateWriter(self.store, job.id),
            github=self.github_factory(credentials.github_token),
            git=self.git_factory(repo_dir),
            work_dir=work_dir,
            repo_dir=repo_dir,
            target_languages=list(job.languages or self.settings.default_languages),
            llm=self.llm,
            github_token=credentials.github_token,
            github_username=credentials.github_username,
            stats=JobStats(),
        )

    async def _claim(self, job: Job) -> None:
        if await self.store.claim_run(job.id):
            return
        current = await self.store.get_by_id(job.id)
        if current is None:
            raise JobStateError(f"Job {job.id} not found.")
        status = current.status.value
        raise JobStateError(f"Job is already {status}, not starting again.", status=status)

    async def run(self, job: Job, credentials: Optional[Credentials] = None) -> None:
        """
        Run every step for ``job``.

        Returns normally on completion or when the job is cancelled, whether the
        cancellation is seen between steps or lands while a step is running.
        Collaborators are built before the job is claimed, so a misconfigured
        client raises without touching the job.

        Raises:
            JobStateError: If the job is not pending
            Exception: Whatever a step raised, after the job is marked failed
        """
        ctx = self.build_context(job, self.resolve_credentials(job, credentials))
        try:
            await self._claim(job)
            logger.info(
                "Pipeline started",
                job_id=job.id,
                repo=job.repo_full_name,
                languages=ctx.target_languages,
            )
            await self._run_steps(ctx)
        finally:
            await ctx.github.close()

    async def _run_steps(self, ctx: PipelineContext) -> None:
        job_id = ctx.job_id
        state = ctx.state
        try:
            for step_name in STEP_ORDER:
                if await self.store.is_cancelled(job_id):
                    await state.info(PIPELINE_STEP, "Pipeline cancelled by user.")
                    await state.set_current_step(None)
                    logger.info("Pipeline cancelled", job_id=job_id, before_step=step_name)
                    return

                step = self.steps[step_name]
                started = time.monotonic()

                await state.set_current_step(step_name)
                await state.info(step_name, f"Starting step: {step_name}")

                await step(ctx)

                duration_ms = int((time.monotonic() - started) * 1000)
                await state.success(step_name, f"Completed step: {step_name} in {duration_ms}ms")
        except Exception as e:
            message = str(e) or UNKNOWN_ERROR
            logger.error("Pipeline failed", job_id=job_id, error=message, exc_info=True)
            await state.error(PIPELINE_STEP, message)
            if await state.finish(JobStatus.FAILED, message):
                raise
            # cancelled while the step was running
            logger.info("Pipeline cancelled", job_id=job_id, after_error=message)
            return

        if await state.finish(JobStatus.COMPLETED):
            logger.info("Pipeline completed", job_id=job_id, stats=ctx.stats.model_dump(by_alias=True))
        else:
            logger.info("Pipeline cancelled", job_id=job_id, after_step=STEP_ORDER[-1])


def create_runner(
    settings: Settings,
    store: Optional[JobStore] = None,
    llm: Optional[BaseLLMProvider] = None,
) -> PipelineRunner:
    """
    Build a runner with the LLM provider selected by ``settings``.

    Raises:
        ConfigurationError: If no job store is available
    """
    if store is None:
        raise ConfigurationError(
            "Job store is not configured. Set DATABASE_URL and connect a PostgresJobStore."
        )
    if llm is None:
        llm = create_llm_provider(settings)
    return PipelineRunner(store=store, settings=settings, llm=llm)
