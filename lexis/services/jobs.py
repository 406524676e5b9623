"""Job trigger service - create, start and stop globalization jobs."""

import re
from typing import Awaitable, Callable, List, Optional, Tuple

from lexis.core.exceptions import JobStateError, RepositoryError
from lexis.core.logging import get_logger
from lexis.db.job_store import JobStore
from lexis.github.client import GitHubAPIError, GitHubClient
from lexis.models.job import Job, JobStatus

logger = get_logger(__name__)

GITHUB_REPO_URL = re.compile(r"github\.com[/:]([^/]+)/([^/]+?)(?:\.git)?/?$")

CANCEL_REASON = "Cancelled by user."

Enqueue = Callable[[Job], Awaitable[object]]


def parse_repo_url(repo_url: str) -> Tuple[str, str]:
    """
    Extract ``(owner, repo)`` from a GitHub HTTPS or SSH URL.

    Raises:
        RepositoryError: If the URL does not point at a GitHub repository
    """
    match = GITHUB_REPO_URL.search(repo_url.strip())
    if not match:
        raise RepositoryError("Invalid GitHub repository URL.")
    return match.group(1), match.group(2)


async def _check_public_repo(github: GitHubClient, owner: str, repo: str) -> None:
    try:
        data = await github.get_repo(owner, repo)
    except GitHubAPIError as e:
        if e.status_code == 404:
            raise RepositoryError("Repository not found.") from e
        raise
    if data.get("private"):
        raise RepositoryError("Please use a public repository.")


async def create_job(
    store: JobStore,
    repo_url: str,
    languages: Optional[List[str]] = None,
    user_id: Optional[str] = None,
    github_username: Optional[str] = None,
    github: Optional[GitHubClient] = None,
) -> Job:
    """
    Persist a new pending job for ``repo_url``.

    When a GitHub client is given, the repository must exist and be public, and
    the acting username is looked up from the client's credential if not supplied.
    """
    owner, repo = parse_repo_url(repo_url)

    if github is not None:
        await _check_public_repo(github, owner, repo)
        if not github_username:
            try:
                user = await github.get_current_user()
                github_username = user.get("login")
            except GitHubAPIError as e:
                logger.warning("Could not resolve GitHub username", error=str(e))

    job = Job(
        repo_url=repo_url,
        repo_owner=owner,
        repo_name=repo,
        languages=list(dict.fromkeys(languages or [])),
        user_id=user_id,
        github_username=github_username,
    )
    await store.create(job)
    logger.info("Job created", job_id=job.id, repo=job.repo_full_name)
    return job


async def request_run(store: JobStore, job_id: str, enqueue: Enqueue) -> Job:
    """
    Make ``job_id`` runnable and hand it to ``enqueue``.

    Failed and cancelled jobs are reset to pending first. The runner's own
    conditional claim still guards against two workers picking up one job.

    Raises:
        JobStateError: If the job does not exist or is not startable
    """
    job = await store.get_by_id(job_id)
    if job is None:
        raise JobStateError("Job not found.")

    if job.status in (JobStatus.FAILED, JobStatus.CANCELLED):
        if await store.reset_for_retry(job_id):
            logger.info("Job reset for retry", job_id=job_id, previous_status=job.status.value)
        job = await store.get_by_id(job_id)

    if job.status != JobStatus.PENDING:
        status = job.status.value
        raise JobStateError(f"Job is already {status}, not starting again.", status=status)

    await enqueue(job)
    return job


async def stop_job(store: JobStore, job_id: str) -> Job:
    """
    Cancel a running job. The runner stops before its next step.

    Raises:
        JobStateError: If the job does not exist or is not running
    """
    if await store.cancel(job_id, CANCEL_REASON):
        logger.info("Job cancellation requested", job_id=job_id)
        return await store.get_by_id(job_id)

    job = await store.get_by_id(job_id)
    if job is None:
        raise JobStateError("Job not found.")
    status = job.status.value
    raise JobStateError(f"Job is {status}, cannot stop.", status=status)
