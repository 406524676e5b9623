"""Commit the changes and force-push the i18n branch (fork if needed)."""

import asyncio

from lexis.core.exceptions import GitCommandError, GitHubIdentityError, PushError
from lexis.core.logging import get_logger
from lexis.github.client import GitHubAPIError
from lexis.pipeline.context import PipelineContext, PushTarget
from lexis.pipeline.git import authenticated_url

logger = get_logger(__name__)

STEP = "commit-push"

# GitHub creates forks asynchronously
FORK_POLL_ATTEMPTS = 15
FORK_POLL_INTERVAL = 2.0

BOT_EMAIL = "agent@lexis.app"


def commit_author(username: str | None, push_owner: str) -> str:
    if username:
        return f"{username} <{username}@users.noreply.github.com>"
    return f"{push_owner}[bot] <bot@example.com>"


async def _fork_ready(ctx: PipelineContext, fork_owner: str, repo: str) -> bool:
    try:
        return await ctx.github.repo_exists(fork_owner, repo)
    except GitHubAPIError as e:
        logger.debug("Fork readiness check failed", error=str(e))
        return False


async def ensure_fork(ctx: PipelineContext, owner: str, repo: str, fork_owner: str) -> None:
    """Make sure ``fork_owner/repo`` exists, creating the fork when it does not."""
    if await _fork_ready(ctx, fork_owner, repo):
        await ctx.state.info(STEP, f"Fork {fork_owner}/{repo} already exists.")
        return

    await ctx.state.info(STEP, "Creating fork...")
    try:
        await ctx.github.create_fork(owner, repo)
    except GitHubAPIError as e:
        if e.status_code == 422:
            await ctx.state.info(
                STEP, "Fork may already exist or cannot be created. Continuing..."
            )
            return
        await ctx.state.error(STEP, f"Failed to create fork: {e}")
        raise

    await ctx.state.info(STEP, "Fork creation initiated. Waiting for fork to be ready...")
    for _ in range(FORK_POLL_ATTEMPTS):
        await asyncio.sleep(FORK_POLL_INTERVAL)
        if await _fork_ready(ctx, fork_owner, repo):
            await ctx.state.info(STEP, f"Fork {fork_owner}/{repo} is ready.")
            return

    await ctx.state.warning(
        STEP,
        f"Fork {fork_owner}/{repo} not visible after {FORK_POLL_ATTEMPTS} checks. Pushing anyway.",
    )


async def commit_push_step(ctx: PipelineContext) -> None:
    owner = ctx.job.repo_owner
    repo = ctx.job.repo_name
    token = ctx.github_token
    username = ctx.github_username
    branch = ctx.settings.pr_branch

    if token and not username:
        await ctx.state.error(STEP, "GitHub identity required for push. Sign in with GitHub.")
        raise GitHubIdentityError("GitHub identity required for push.")

    push_owner = username or ctx.settings.github_bot_username
    is_own_repo = push_owner.lower() == owner.lower()

    if is_own_repo:
        await ctx.state.info(
            STEP,
            f"Repository is owned by {push_owner}. "
            "Will push directly to new branch (no fork needed).",
        )
        await ctx.state.info(
            STEP,
            f"Updating origin remote URL (token {'present' if token else 'missing'})...",
        )
        await ctx.git.set_remote("origin", authenticated_url(owner, repo, token))
        target = PushTarget(remote="origin", owner=owner, repo=repo, branch=branch)
    else:
        await ctx.state.info(STEP, f"Creating fork {owner}/{repo} → {push_owner}/{repo}...")
        await ensure_fork(ctx, owner, repo, push_owner)
        await ctx.git.set_remote("fork", authenticated_url(push_owner, repo, token))
        target = PushTarget(remote="fork", owner=push_owner, repo=repo, branch=branch)

    await ctx.git.add_all()
    await ctx.git.set_config("user.name", username or push_owner)
    await ctx.git.set_config(
        "user.email", f"{username}@users.noreply.github.com" if username else BOT_EMAIL
    )
    await ctx.git.commit(ctx.settings.commit_message, commit_author(username, push_owner))

    remotes = await ctx.git.get_remotes()
    details = {
        "remote": target.remote,
        "remoteUrl": remotes.get(target.remote, "not found"),
        "targetRepo": target.full_name,
        "branch": branch,
        "hasToken": bool(token),
    }
    await ctx.state.info(STEP, f"Pushing to {target.remote}:{branch}...", data=details)

    try:
        await ctx.git.push(target.remote, f"HEAD:{branch}", force=True)
    except GitCommandError as e:
        await ctx.state.error(
            STEP,
            f"Push failed: {e}",
            data={**details, "error": str(e), "isOwnRepo": is_own_repo},
        )
        await ctx.state.error(
            STEP,
            f"Diagnostics: remote={target.remote}, repo={target.full_name}, "
            f"token={'present' if token else 'missing'}, ownRepo={is_own_repo}",
        )
        raise PushError(f"Failed to push: {e}") from e

    ctx.push_target = target
    await ctx.state.info(
        STEP,
        f"Pushed changes to {target.full_name} on branch {branch}.",
        data={"branch": branch, "repo": target.full_name},
    )
