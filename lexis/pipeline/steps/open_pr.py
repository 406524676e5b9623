"""Open (or reuse) the pull request for the pushed i18n branch."""

from lexis.core.exceptions import LexisError
from lexis.core.logging import get_logger
from lexis.github.client import GitHubAPIError
from lexis.pipeline.context import PipelineContext

logger = get_logger(__name__)

STEP = "open-pr"
PR_TITLE = "feat: add i18n support via Lingo.dev"


def build_pr_body(ctx: PipelineContext) -> str:
    languages = ", ".join(ctx.target_languages)
    return "\n".join(
        [
            "This pull request adds internationalization support using "
            "[next-intl](https://next-intl.dev) and [Lingo.dev](https://lingo.dev).",
            "",
            "## Changes",
            "",
            "- `i18n.json` Lingo.dev configuration",
            f"- `messages/{ctx.source_locale}.json` source catalog plus translated catalogs",
            "- next-intl request config (`lib/i18n.ts`) and routing middleware",
            f"- {ctx.stats.files_modified} files rewritten to use translation keys "
            f"({ctx.stats.strings_found} strings)",
            "",
            f"**Target languages:** {languages}",
            "",
        ]
    )


async def open_pr_step(ctx: PipelineContext) -> None:
    target = ctx.push_target
    if target is None:
        raise LexisError("No branch was pushed; cannot open a pull request.")

    owner = ctx.job.repo_owner
    repo = ctx.job.repo_name
    base_repo = await ctx.github.get_repo(owner, repo)
    base = base_repo.get("default_branch") or "main"

    is_fork = target.owner.lower() != owner.lower()
    head = f"{target.owner}:{target.branch}" if is_fork else target.branch

    await ctx.state.info(STEP, f"Opening pull request {head} → {owner}/{repo}:{base}")

    try:
        pr = await ctx.github.create_pull_request(
            owner, repo, title=PR_TITLE, head=head, base=base, body=build_pr_body(ctx)
        )
    except GitHubAPIError as e:
        if e.status_code != 422 or "already exists" not in str(e).lower():
            raise
        existing = await ctx.github.list_pull_requests(
            owner, repo, head=f"{target.owner}:{target.branch}"
        )
        if not existing:
            raise
        pr = existing[0]
        await ctx.state.info(STEP, f"A pull request for {head} is already open; reusing it.")

    pr_url = pr["html_url"]
    await ctx.state.set_pr_url(pr_url)
    await ctx.state.info(STEP, f"Opened pull request: {pr_url}", data={"prUrl": pr_url})
