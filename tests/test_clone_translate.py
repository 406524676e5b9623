"""Tests for the clone and translate steps."""

import sys
from unittest.mock import AsyncMock, patch

import pytest

from helpers import NEXT_PACKAGE_JSON, write_file
from lexis.core.exceptions import FrameworkNotSupportedError, TranslationCLIError
from lexis.github.client import GitHubAPIError
from lexis.models.schemas import DetectedFramework
from lexis.pipeline.frameworks import NextjsAppRouterAdapter
from lexis.pipeline.steps.clone import clone_step, clone_url
from lexis.pipeline.steps.translate import run_streaming, translate_step

NEXT_APP_ROUTER = DetectedFramework(
    name="Next.js", version="14.2.0", type="app-router", supported=True, support_level="full"
)


def fake_clone(ctx, package_json=NEXT_PACKAGE_JSON, with_app_dir=True):
    async def _clone(url, depth=1):
        write_file(ctx.repo_dir, "package.json", package_json)
        if with_app_dir:
            write_file(ctx.repo_dir, "app/page.tsx", "export default function Page() {}")

    return AsyncMock(side_effect=_clone)


class TestClone:
    def test_clone_url_embeds_token_for_github_only(self):
        assert clone_url("https://github.com/a/b", "tok") == "https://tok@github.com/a/b"
        assert clone_url("https://github.com/a/b", None) == "https://github.com/a/b"
        assert clone_url("https://gitlab.com/a/b", "tok") == "https://gitlab.com/a/b"

    @pytest.mark.asyncio
    async def test_clone_without_token_uses_structural_check(self, store, job, make_context):
        ctx = make_context(job)
        stale = write_file(ctx.repo_dir, "stale.txt", "left over")
        ctx.git.clone = fake_clone(ctx)

        await clone_step(ctx)

        ctx.git.version.assert_awaited_once()
        ctx.git.clone.assert_awaited_once_with("https://github.com/acme/site", depth=1)
        ctx.github.get_file_text.assert_not_called()
        assert not stale.exists()
        assert ctx.framework_adapter is None

        logs = (await store.get_by_id(job.id)).logs_for_step("clone")
        assert logs[-1].data == {"repoPath": str(ctx.repo_dir), "framework": None}
        assert logs[-1].message.startswith("Cloned repository and validated framework in ")

    @pytest.mark.asyncio
    async def test_detected_framework_selects_adapter(self, store, job, make_context):
        ctx = make_context(job, github_token="ghp_secret", github_username="octocat")
        ctx.git.clone = fake_clone(ctx)

        with patch(
            "lexis.pipeline.steps.clone.detect_frameworks",
            AsyncMock(return_value=[NEXT_APP_ROUTER]),
        ):
            await clone_step(ctx)

        ctx.git.clone.assert_awaited_once_with("https://ghp_secret@github.com/acme/site", depth=1)
        assert isinstance(ctx.framework_adapter, NextjsAppRouterAdapter)
        assert ctx.detected_framework.name == "Next.js"

        logs = (await store.get_by_id(job.id)).logs
        assert all("ghp_secret" not in entry.message for entry in logs)
        assert logs[-1].data["framework"] == "Next.js"

    @pytest.mark.asyncio
    async def test_detection_failure_falls_back(self, store, job, make_context):
        ctx = make_context(job, github_token="tok", github_username="octocat")
        ctx.git.clone = fake_clone(ctx)

        with patch(
            "lexis.pipeline.steps.clone.detect_frameworks",
            AsyncMock(side_effect=GitHubAPIError("rate limited", status_code=403)),
        ):
            await clone_step(ctx)

        assert ctx.framework_adapter is None
        levels = [entry.level.value for entry in (await store.get_by_id(job.id)).logs]
        assert "warning" in levels

    @pytest.mark.asyncio
    async def test_missing_next_dependency_is_rejected(self, job, make_context):
        ctx = make_context(job)
        ctx.git.clone = fake_clone(ctx, package_json='{"dependencies": {"react": "18.2.0"}}')

        with pytest.raises(FrameworkNotSupportedError) as exc_info:
            await clone_step(ctx)
        assert str(exc_info.value) == "No Next.js dependency found in package.json."

    @pytest.mark.asyncio
    async def test_missing_app_dir_is_rejected(self, job, make_context):
        ctx = make_context(job)
        ctx.git.clone = fake_clone(ctx, with_app_dir=False)

        with pytest.raises(FrameworkNotSupportedError) as exc_info:
            await clone_step(ctx)
        assert str(exc_info.value) == "Currently supports Next.js App Router projects only."


class TestTranslate:
    @pytest.mark.asyncio
    async def test_skipped_without_api_key(self, store, job, make_context):
        ctx = make_context(job)

        with patch("lexis.pipeline.steps.translate.run_streaming", AsyncMock()) as run:
            await translate_step(ctx)

        run.assert_not_awaited()
        logs = (await store.get_by_id(job.id)).logs_for_step("translate")
        assert [(entry.level.value, entry.message) for entry in logs] == [
            ("warning", "LINGODOTDEV_API_KEY is not set; skipping Lingo.dev CLI translation step.")
        ]

    @pytest.mark.asyncio
    async def test_runs_cli_and_counts_languages(self, store, job, make_context, settings):
        settings.lingodotdev_api_key = "lingo-key"
        ctx = make_context(job)

        with patch(
            "lexis.pipeline.steps.translate.run_streaming",
            AsyncMock(return_value=(0, "done", "")),
        ) as run:
            await translate_step(ctx)

        command, cwd, env = run.await_args.args
        assert command == ["npx", "lingo.dev@latest", "i18n"]
        assert cwd == ctx.repo_dir
        assert env["LINGODOTDEV_API_KEY"] == "lingo-key"

        stored = await store.get_by_id(job.id)
        assert stored.stats.languages_added == 2
        assert stored.logs_for_step("translate")[-1].data == {"languagesCount": 2}
        assert all("lingo-key" not in entry.message for entry in stored.logs)

    @pytest.mark.asyncio
    async def test_non_zero_exit_raises_with_output(self, job, make_context, settings):
        settings.lingodotdev_api_key = "lingo-key"
        ctx = make_context(job)

        with patch(
            "lexis.pipeline.steps.translate.run_streaming",
            AsyncMock(return_value=(2, "", "Error: invalid bucket\n")),
        ):
            with pytest.raises(TranslationCLIError) as exc_info:
                await translate_step(ctx)

        assert str(exc_info.value) == "Lingo.dev CLI failed with code 2: Error: invalid bucket"
        assert exc_info.value.exit_code == 2
        assert ctx.stats.languages_added == 0

    @pytest.mark.asyncio
    async def test_run_streaming_captures_both_streams(self, tmp_path):
        code = "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"
        exit_code, stdout, stderr = await run_streaming(
            [sys.executable, "-c", code], tmp_path, {}
        )
        assert exit_code == 3
        assert stdout.strip() == "out"
        assert stderr.strip() == "err"

    @pytest.mark.asyncio
    async def test_run_streaming_missing_executable(self, tmp_path):
        with pytest.raises(TranslationCLIError, match="not found"):
            await run_streaming(["definitely-not-a-real-binary-xyz"], tmp_path, {})
