"""Rewrite source files to use translation keys and build the source catalog."""

import json
from pathlib import Path
from typing import Dict

from lexis.core.logging import get_logger
from lexis.llm.base import TRANSFORM_SYSTEM_PROMPT
from lexis.llm.errors import InvalidResponseError
from lexis.llm.parser import parse_transform_response
from lexis.models.job import JobStats
from lexis.pipeline.context import PipelineContext
from lexis.pipeline.frameworks import DEFAULT_TRANSFORM_RULES
from lexis.pipeline.scaffolding import write_json

logger = get_logger(__name__)

STEP = "transform"
PREVIEW_CHARS = 200


def load_catalog(path: Path) -> Dict[str, str]:
    """Existing message catalog on disk, or an empty one."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning("Existing message catalog is not valid JSON; starting empty", path=str(path))
        return {}
    return data if isinstance(data, dict) else {}


def merge_messages(catalog: Dict[str, str], messages: Dict[str, str]) -> int:
    """
    Add new keys to ``catalog`` without touching existing ones.

    Returns:
        Number of keys added
    """
    added = 0
    for key, value in messages.items():
        if key not in catalog:
            catalog[key] = value
            added += 1
    return added


async def transform_step(ctx: PipelineContext) -> None:
    if ctx.llm is None:
        await ctx.state.warning(
            STEP,
            "No code-rewriting API key is set; skipping automatic string wrapping and extraction.",
        )
        return

    catalog = load_catalog(ctx.source_catalog_path)
    merge_messages(catalog, ctx.source_messages)
    ctx.source_messages = catalog

    rules = (
        ctx.framework_adapter.get_transform_rules()
        if ctx.framework_adapter
        else DEFAULT_TRANSFORM_RULES
    )

    total_files = len(ctx.string_hits_by_file)
    files_modified = 0
    total_strings = 0

    for path, hits in ctx.string_hits_by_file.items():
        relative_path = ctx.relative(path)
        code = path.read_text(encoding="utf-8")
        total_strings += len(hits)

        prompt = ctx.llm.build_prompt(relative_path, code, hits, rules)
        completion = await ctx.llm.generate_content(prompt, TRANSFORM_SYSTEM_PROMPT)

        try:
            parsed = parse_transform_response(completion.text)
        except InvalidResponseError as e:
            await ctx.state.warning(
                STEP,
                f"Failed to parse rewriting response for {relative_path} "
                "after multiple attempts. Skipping file.",
                data={
                    "error": str(e),
                    "jsonPreview": (e.raw_response or "")[:PREVIEW_CHARS],
                },
            )
            continue

        path.write_text(parsed.file_content, encoding="utf-8")
        files_modified += 1
        merge_messages(ctx.source_messages, parsed.messages)

        await ctx.state.info(
            STEP,
            f"Transformed {files_modified}/{total_files} files.",
            data={
                "completedFiles": files_modified,
                "totalFiles": total_files,
                "stringsExtracted": total_strings,
            },
        )

    write_json(ctx.source_catalog_path, ctx.source_messages)

    ctx.stats = JobStats(
        files_modified=ctx.stats.files_modified + files_modified,
        strings_found=ctx.stats.strings_found + total_strings,
        languages_added=ctx.stats.languages_added,
    )
    await ctx.state.update_stats(ctx.stats)

    await ctx.state.info(
        STEP,
        f"Transformed {files_modified} files and extracted {total_strings} translation keys.",
        data={
            "completedFiles": files_modified,
            "totalFiles": total_files,
            "stringsExtracted": total_strings,
        },
    )
