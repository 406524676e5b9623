"""Base abstract class for LLM providers."""

import time
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from lexis.core.logging import get_logger
from lexis.llm.models import CompletionResult
from lexis.models.schemas import StringHit
from lexis.pipeline.frameworks.base import DEFAULT_TRANSFORM_RULES, TransformRule

logger = get_logger(__name__)

TRANSFORM_SYSTEM_PROMPT = (
    "You are a code transformation assistant that updates Next.js App Router React "
    "components to use next-intl translations."
)


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers."""

    def __init__(self, model: str, api_key: str):
        """
        Initialize LLM provider.

        Args:
            model: Model identifier (e.g., "gemini-2.5-flash")
            api_key: API key for the provider
        """
        self.model = model
        self.api_key = api_key
        self.provider_name = self.__class__.__name__.replace("Provider", "").lower()

    @abstractmethod
    async def generate_content(
        self, prompt: str, system_prompt: Optional[str] = None
    ) -> CompletionResult:
        """
        Send one prompt and return the raw completion text.

        Args:
            prompt: User prompt
            system_prompt: Optional system instruction

        Returns:
            CompletionResult with text and usage metadata

        Raises:
            LLMProviderError: If the call fails
        """
        pass

    @abstractmethod
    def get_cost_estimate(self, input_tokens: int, output_tokens: int) -> float:
        """
        Calculate estimated cost for token usage.

        Args:
            input_tokens: Number of input tokens
            output_tokens: Number of output tokens

        Returns:
            Estimated cost in USD
        """
        pass

    def build_prompt(
        self,
        file_path: str,
        code: str,
        hits: List[StringHit],
        rules: Optional[Iterable[TransformRule]] = None,
    ) -> str:
        """
        Build the rewriting prompt for one source file.

        Args:
            file_path: Path relative to the repository root
            code: Current file contents
            hits: Strings to replace, as found by the scan step
            rules: Framework transform rules (defaults apply when omitted)

        Returns:
            Formatted prompt string
        """
        rules = list(rules) if rules is not None else DEFAULT_TRANSFORM_RULES

        prompt_parts = [
            "You are given a TypeScript/TSX or JavaScript/JSX file from a Next.js App Router project.",
            "",
            "Your task:",
        ]
        prompt_parts.extend(f"- {rule.instruction}" for rule in rules)
        prompt_parts.extend(
            [
                "",
                "Return your response as strict JSON with this shape, and nothing else. "
                "CRITICAL REQUIREMENTS:",
                "- Return ONLY valid JSON, no comments, no trailing commas, no extra text "
                "before or after the JSON object",
                '- The "fileContent" value must be a single string with ALL newlines escaped '
                "as \\n (do not use literal newline characters inside the JSON string)",
                '- Ensure proper JSON escaping: quotes inside strings must be escaped as \\"',
                "- No trailing commas before } or ]",
                "",
                "Expected JSON format:",
                "{",
                '  "fileContent": "<the full updated file text, with \\n for newlines>",',
                '  "messages": {',
                '    "common.keyOne": "Original text one",',
                '    "common.keyTwo": "Original text two"',
                "  }",
                "}",
                "",
                f"File path: {file_path}",
                "",
                "Original file contents:",
                "----------------",
                code,
                "----------------",
                "",
                "Hardcoded string hits (line:column - text):",
            ]
        )
        prompt_parts.extend(f"- {hit.describe()}" for hit in hits)
        prompt_parts.append("")

        return "\n".join(prompt_parts)

    async def _time_execution(self, coro):
        """
        Execute a coroutine and measure execution time.

        Args:
            coro: Coroutine to execute

        Returns:
            Tuple of (result, execution_time_in_seconds)
        """
        start_time = time.time()
        result = await coro
        execution_time = time.time() - start_time
        return result, execution_time

    async def close(self) -> None:
        """Release network resources held by the provider."""
        return None
