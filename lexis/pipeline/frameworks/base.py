"""Base abstract class for framework adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from lexis.pipeline.context import PipelineContext


@dataclass(frozen=True)
class TransformRule:
    """One instruction handed to the code-rewriting model."""

    name: str
    instruction: str


DEFAULT_SOURCE_DIRS = ["app", "components"]
DEFAULT_FILE_PATTERNS = ["*.tsx", "*.ts", "*.jsx", "*.js"]

DEFAULT_TRANSFORM_RULES = [
    TransformRule(
        name="import",
        instruction=(
            "Add the appropriate import from 'next-intl':\n"
            "  - For client components: \"import { useTranslations } from 'next-intl';\"\n"
            "  - For server components: \"import { getTranslations } from 'next-intl/server';\""
        ),
    ),
    TransformRule(
        name="helper",
        instruction=(
            "Introduce a translation helper:\n"
            "  - Client: \"const t = useTranslations('<namespace>');\"\n"
            "  - Server: \"const t = await getTranslations('<namespace>');\"\n"
            '  - Use a simple namespace like "common" unless another is clearly better from context.'
        ),
    ),
    TransformRule(
        name="replace",
        instruction=(
            "Replace the listed hardcoded strings with calls to t('<key>').\n"
            "  - Keys should be lowercase, dot-separated, and derived from the English string, "
            'e.g. "hero.title", "button.submit".'
        ),
    ),
    TransformRule(
        name="scope",
        instruction=(
            "Do NOT modify any code outside these string replacements and necessary "
            "imports/translation helper."
        ),
    ),
]


class FrameworkAdapter(ABC):
    """Framework-specific validation, scaffolding and scan rules."""

    name: str = ""

    @abstractmethod
    async def validate(self, repo_dir: Path) -> None:
        """
        Check the cloned repository matches this framework.

        Raises:
            FrameworkNotSupportedError: With a user-facing message
        """
        pass

    @abstractmethod
    async def setup_i18n(self, ctx: PipelineContext) -> None:
        """Write i18n scaffolding into the working copy."""
        pass

    def get_source_dirs(self) -> List[str]:
        return list(DEFAULT_SOURCE_DIRS)

    def get_file_patterns(self) -> List[str]:
        return list(DEFAULT_FILE_PATTERNS)

    def get_transform_rules(self) -> List[TransformRule]:
        return list(DEFAULT_TRANSFORM_RULES)
