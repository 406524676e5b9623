"""Scaffold next-intl and Lingo.dev configuration."""

from lexis.pipeline.context import PipelineContext
from lexis.pipeline.scaffolding import (
    DEFAULT_MIDDLEWARE_MATCHER,
    NEXT_CONFIG_TS,
    write_base_scaffolding,
)

STEP = "setup-i18n"
LOCALE_SEGMENT = "[locale]"
RELOCATED_ROUTE_FILES = ("layout.tsx", "page.tsx")


async def setup_i18n_step(ctx: PipelineContext) -> None:
    if ctx.framework_adapter is not None:
        await ctx.framework_adapter.setup_i18n(ctx)
        return

    repo_dir = ctx.repo_dir
    write_base_scaffolding(
        repo_dir, ctx.source_locale, ctx.target_languages, DEFAULT_MIDDLEWARE_MATCHER
    )
    (repo_dir / "next.config.ts").write_text(NEXT_CONFIG_TS, encoding="utf-8")

    # app/layout.tsx, app/page.tsx -> app/[locale]/
    app_dir = repo_dir / "app"
    locale_dir = app_dir / LOCALE_SEGMENT
    locale_dir.mkdir(parents=True, exist_ok=True)
    for name in RELOCATED_ROUTE_FILES:
        source = app_dir / name
        if not source.exists():
            continue
        destination = locale_dir / name
        destination.write_text(source.read_text(encoding="utf-8"), encoding="utf-8")
        source.unlink()
        ctx.relocate_file(source, destination)

    await ctx.state.info(
        STEP,
        f"i18n infrastructure scaffolded (i18n.json, messages/{ctx.source_locale}.json, next-intl config).",
        data={"localesAdded": [ctx.source_locale, *ctx.target_languages]},
    )
