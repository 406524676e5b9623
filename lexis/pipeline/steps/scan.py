"""Find hardcoded user-facing strings in the project's source files."""

from lexis.core.logging import get_logger
from lexis.pipeline.context import PipelineContext
from lexis.pipeline.frameworks import DEFAULT_FILE_PATTERNS, DEFAULT_SOURCE_DIRS
from lexis.pipeline.scanner import collect_source_files, grammar_for, scan_source

logger = get_logger(__name__)

STEP = "scan"


async def scan_step(ctx: PipelineContext) -> None:
    adapter = ctx.framework_adapter
    source_dirs = adapter.get_source_dirs() if adapter else DEFAULT_SOURCE_DIRS
    patterns = adapter.get_file_patterns() if adapter else DEFAULT_FILE_PATTERNS

    total_strings = 0
    for path in collect_source_files(ctx.repo_dir, source_dirs, patterns):
        try:
            code = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            logger.debug("Skipping non-UTF-8 file", path=ctx.relative(path))
            continue

        hits = scan_source(code, grammar_for(path))
        if hits is None:
            logger.debug("Skipping unparseable file", path=ctx.relative(path))
            continue

        if hits:
            ctx.string_hits_by_file[path] = hits
            total_strings += len(hits)

    files_with_strings = len(ctx.string_hits_by_file)
    await ctx.state.info(
        STEP,
        f"Found {total_strings} hardcoded strings across {files_with_strings} files.",
        data={"filesWithStrings": files_with_strings, "totalStrings": total_strings},
    )
