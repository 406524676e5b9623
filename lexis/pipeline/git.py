"""Async wrapper around the git command line."""

import asyncio
import os
import re
from pathlib import Path
from typing import Dict, Optional

from lexis.core.exceptions import GitCommandError, GitNotAvailableError
from lexis.core.logging import get_logger

logger = get_logger(__name__)

GIT_REQUIRED_MESSAGE = (
    "Git is not installed in this environment. The pipeline needs Git to clone and push "
    "repositories. Deploy to a platform that includes Git (e.g. Railway, Fly.io, Render, "
    "or a Docker image with git installed). Serverless runtimes do not include Git by default."
)

# https://<token>@github.com/... and https://user:<token>@github.com/...
CREDENTIALS_IN_URL = re.compile(r"(https?://)[^/@\s]+@")


def redact(text: str) -> str:
    """Strip credentials embedded in remote URLs."""
    return CREDENTIALS_IN_URL.sub(r"\1***@", text)


def authenticated_url(owner: str, repo: str, token: Optional[str]) -> str:
    """GitHub HTTPS remote URL, with the token embedded when present."""
    if token:
        return f"https://{token}@github.com/{owner}/{repo}.git"
    return f"https://github.com/{owner}/{repo}.git"


class Git:
    """Runs git commands against one working copy."""

    def __init__(self, repo_dir: Path):
        self.repo_dir = Path(repo_dir)
        self.env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}

    async def _run(self, *args: str, cwd: Optional[Path] = None) -> str:
        cwd = cwd or self.repo_dir
        logger.debug("Running git command", args=redact(" ".join(args)), cwd=str(cwd))
        try:
            process = await asyncio.create_subprocess_exec(
                "git",
                *args,
                cwd=str(cwd),
                env=self.env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise GitNotAvailableError(GIT_REQUIRED_MESSAGE) from e

        stdout, stderr = await process.communicate()
        output = redact(stdout.decode("utf-8", errors="replace"))
        errors = redact(stderr.decode("utf-8", errors="replace"))

        if process.returncode != 0:
            command = redact(" ".join(args[:2]))
            raise GitCommandError(
                f"git {command} failed with code {process.returncode}: "
                f"{(errors or output).strip()}",
                returncode=process.returncode,
                output=errors or output,
            )
        return output

    async def version(self) -> str:
        return (await self._run("--version", cwd=Path.cwd())).strip()

    async def clone(self, url: str, depth: int = 1) -> None:
        self.repo_dir.parent.mkdir(parents=True, exist_ok=True)
        await self._run(
            "clone", "--depth", str(depth), url, str(self.repo_dir), cwd=self.repo_dir.parent
        )

    async def get_remotes(self) -> Dict[str, str]:
        """Map remote name to fetch URL (credentials redacted)."""
        remotes: Dict[str, str] = {}
        for line in (await self._run("remote", "-v")).splitlines():
            parts = line.split()
            if len(parts) >= 3 and parts[2] == "(fetch)":
                remotes[parts[0]] = parts[1]
        return remotes

    async def add_remote(self, name: str, url: str) -> None:
        await self._run("remote", "add", name, url)

    async def remove_remote(self, name: str) -> None:
        await self._run("remote", "remove", name)

    async def set_remote(self, name: str, url: str) -> None:
        """Point ``name`` at ``url``, replacing any existing remote."""
        if name in await self.get_remotes():
            await self.remove_remote(name)
        await self.add_remote(name, url)

    async def set_config(self, key: str, value: str) -> None:
        await self._run("config", key, value)

    async def add_all(self) -> None:
        await self._run("add", ".")

    async def commit(self, message: str, author: str) -> None:
        await self._run("commit", "-m", message, f"--author={author}")

    async def push(self, remote: str, refspec: str, force: bool = False) -> None:
        args = ["push", remote, refspec]
        if force:
            args.append("--force")
        await self._run(*args)
