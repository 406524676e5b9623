"""Next.js App Router adapter."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, List

from lexis.core.exceptions import FrameworkNotSupportedError
from lexis.core.logging import get_logger
from lexis.pipeline.frameworks.base import FrameworkAdapter, TransformRule
from lexis.pipeline.scaffolding import (
    ADAPTER_MIDDLEWARE_MATCHER,
    wrap_layout_with_provider,
    write_base_scaffolding,
)

if TYPE_CHECKING:
    from lexis.pipeline.context import PipelineContext

logger = get_logger(__name__)

APP_ROUTER_ONLY = "Currently supports Next.js App Router projects only."
NO_NEXT_DEPENDENCY = "No Next.js dependency found in package.json."


def validate_next_app_router(repo_dir: Path) -> None:
    """
    Structural check: an ``app/`` directory and ``next`` in dependencies.

    Raises:
        FrameworkNotSupportedError: With the user-facing reason
    """
    package_json = repo_dir / "package.json"
    if not (repo_dir / "app").exists() or not package_json.exists():
        raise FrameworkNotSupportedError(APP_ROUTER_ONLY)

    try:
        pkg = json.loads(package_json.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.warning("package.json is not valid JSON", path=str(package_json), error=str(e))
        raise FrameworkNotSupportedError(NO_NEXT_DEPENDENCY) from e

    dependencies = pkg.get("dependencies") if isinstance(pkg, dict) else None
    if not dependencies or not dependencies.get("next"):
        raise FrameworkNotSupportedError(NO_NEXT_DEPENDENCY)


class NextjsAppRouterAdapter(FrameworkAdapter):
    """next-intl scaffolding for projects using the ``app/`` router."""

    name = "Next.js App Router"

    async def validate(self, repo_dir: Path) -> None:
        validate_next_app_router(repo_dir)

    async def setup_i18n(self, ctx: PipelineContext) -> None:
        write_base_scaffolding(
            ctx.repo_dir,
            ctx.source_locale,
            ctx.target_languages,
            ADAPTER_MIDDLEWARE_MATCHER,
        )

        layout_path = ctx.repo_dir / "app" / "layout.tsx"
        if layout_path.exists():
            layout = layout_path.read_text(encoding="utf-8")
            layout_path.write_text(wrap_layout_with_provider(layout), encoding="utf-8")

        await ctx.state.info(
            "setup-i18n",
            f"Set up i18n infrastructure for {self.name} "
            f"with {len(ctx.target_languages)} target languages",
            data={"localesAdded": [ctx.source_locale, *ctx.target_languages]},
        )

    def get_transform_rules(self) -> List[TransformRule]:
        return [
            *super().get_transform_rules(),
            TransformRule(
                name="client-boundary",
                instruction=(
                    "Treat files starting with 'use client' as client components; "
                    "all other files under app/ are server components."
                ),
            ),
        ]
