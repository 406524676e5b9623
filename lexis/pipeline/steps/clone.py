"""Clone the repository and resolve its framework adapter."""

import shutil
import time
from typing import Optional

from lexis.core.logging import get_logger
from lexis.github.client import GitHubAPIError
from lexis.github.detector import detect_frameworks
from lexis.pipeline.context import PipelineContext
from lexis.pipeline.frameworks import (
    FrameworkAdapter,
    adapter_key_for,
    get_adapter,
    validate_next_app_router,
)

logger = get_logger(__name__)

STEP = "clone"
GITHUB_HTTPS_PREFIX = "https://github.com/"


def clone_url(repo_url: str, token: Optional[str]) -> str:
    """Embed ``token`` into a github.com HTTPS URL; other URLs are used as-is."""
    if token and repo_url.startswith(GITHUB_HTTPS_PREFIX):
        return repo_url.replace("https://", f"https://{token}@", 1)
    return repo_url


async def _detect_adapter(ctx: PipelineContext) -> Optional[FrameworkAdapter]:
    if not ctx.github_token:
        return None

    frameworks = await detect_frameworks(ctx.github, ctx.job.repo_owner, ctx.job.repo_name)
    supported = next((framework for framework in frameworks if framework.supported), None)
    if supported is None:
        return None

    ctx.detected_framework = supported
    return get_adapter(adapter_key_for(supported.name, supported.type))


async def clone_step(ctx: PipelineContext) -> None:
    started = time.monotonic()
    ctx.work_dir.mkdir(parents=True, exist_ok=True)

    await ctx.git.version()

    # a reset job re-runs into the same work dir
    if ctx.repo_dir.exists():
        shutil.rmtree(ctx.repo_dir)

    repo_url = ctx.job.repo_url
    await ctx.state.info(STEP, f"Cloning {repo_url} into {ctx.repo_dir}")
    await ctx.git.clone(clone_url(repo_url, ctx.github_token), depth=1)

    try:
        adapter = await _detect_adapter(ctx)
    except GitHubAPIError as e:
        await ctx.state.warning(
            STEP,
            "Framework detection failed; falling back to Next.js App Router checks.",
            data={"error": str(e)},
        )
        adapter = None

    if adapter is not None:
        ctx.framework_adapter = adapter
        await adapter.validate(ctx.repo_dir)
    else:
        validate_next_app_router(ctx.repo_dir)

    duration_ms = int((time.monotonic() - started) * 1000)
    framework = ctx.detected_framework.name if ctx.detected_framework else None
    await ctx.state.info(
        STEP,
        f"Cloned repository and validated framework in {duration_ms}ms",
        data={"repoPath": str(ctx.repo_dir), "framework": framework},
    )
