"""Generate target-locale catalogs with the Lingo.dev CLI."""

import asyncio
import os
import shlex
from pathlib import Path
from typing import Dict, List, Tuple

from lexis.core.exceptions import TranslationCLIError
from lexis.core.logging import get_logger
from lexis.pipeline.context import PipelineContext

logger = get_logger(__name__)

STEP = "translate"
ERROR_OUTPUT_CHARS = 2000


async def _pump(stream: asyncio.StreamReader, sink: List[str], stream_name: str) -> None:
    while True:
        line = await stream.readline()
        if not line:
            break
        text = line.decode("utf-8", errors="replace")
        sink.append(text)
        logger.debug("translate output", stream=stream_name, line=text.rstrip())


async def run_streaming(command: List[str], cwd: Path, env: Dict[str, str]) -> Tuple[int, str, str]:
    """
    Run ``command``, streaming its output to the process log.

    Returns:
        (exit code, captured stdout, captured stderr)

    Raises:
        TranslationCLIError: If the executable cannot be found
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            cwd=str(cwd),
            env=env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise TranslationCLIError(f"Translation command not found: {command[0]}") from e

    stdout: List[str] = []
    stderr: List[str] = []
    await asyncio.gather(
        _pump(process.stdout, stdout, "stdout"),
        _pump(process.stderr, stderr, "stderr"),
    )
    exit_code = await process.wait()
    return exit_code, "".join(stdout), "".join(stderr)


async def translate_step(ctx: PipelineContext) -> None:
    api_key = ctx.settings.lingodotdev_api_key
    if not api_key:
        await ctx.state.warning(
            STEP,
            "LINGODOTDEV_API_KEY is not set; skipping Lingo.dev CLI translation step.",
        )
        return

    await ctx.state.info(STEP, "Running Lingo.dev CLI to generate translated locale files.")

    env = {**os.environ, "LINGODOTDEV_API_KEY": api_key}
    command = shlex.split(ctx.settings.translate_command)
    exit_code, stdout, stderr = await run_streaming(command, ctx.repo_dir, env)

    if exit_code != 0:
        output = (stderr or stdout).strip()
        raise TranslationCLIError(
            f"Lingo.dev CLI failed with code {exit_code}: {output[-ERROR_OUTPUT_CHARS:]}",
            exit_code=exit_code,
            output=stderr or stdout,
        )

    # counts requested locales, not files produced
    languages = len(ctx.target_languages)
    ctx.stats = ctx.stats.model_copy(
        update={"languages_added": ctx.stats.languages_added + languages}
    )
    await ctx.state.update_stats(ctx.stats)

    await ctx.state.info(
        STEP,
        f"Translated locale files for {languages} languages via Lingo.dev.",
        data={"languagesCount": languages},
    )
