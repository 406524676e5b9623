"""Anthropic Claude provider implementation."""

import asyncio
from typing import Optional

from anthropic import Anthropic
from anthropic import APIError as AnthropicAPIError
from anthropic import RateLimitError as AnthropicRateLimitError

from lexis.core.logging import get_logger
from lexis.llm.base import BaseLLMProvider
from lexis.llm.errors import APIError, InvalidResponseError, QuotaExceededError, RateLimitError
from lexis.llm.models import CompletionResult

logger = get_logger(__name__)

# Claude Sonnet 4.5: $3 per 1M input tokens, $15 per 1M output tokens
CLAUDE_INPUT_COST_PER_1M = 3.0
CLAUDE_OUTPUT_COST_PER_1M = 15.0

# Rewritten files are returned whole
MAX_OUTPUT_TOKENS = 16384


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude provider for code rewriting."""

    def __init__(self, model: str, api_key: str):
        """
        Initialize Anthropic provider.

        Args:
            model: Model identifier (e.g., "claude-sonnet-4-5-20250929")
            api_key: Anthropic API key
        """
        super().__init__(model, api_key)
        self.client = Anthropic(api_key=api_key)
        self.provider_name = "anthropic"

    async def generate_content(
        self, prompt: str, system_prompt: Optional[str] = None
    ) -> CompletionResult:
        """
        Generate a completion with Claude.

        Raises:
            RateLimitError: If rate limit is exceeded
            QuotaExceededError: If quota is exceeded
            APIError: If API call fails
            InvalidResponseError: If the response has no text
        """
        try:
            logger.info(
                f"Calling Claude API with model {self.model}, "
                f"prompt length: {len(prompt)} chars"
            )

            result, execution_time = await self._time_execution(
                self._call_claude(prompt, system_prompt)
            )

            input_tokens = result.usage.input_tokens
            output_tokens = result.usage.output_tokens
            cost = self.get_cost_estimate(input_tokens, output_tokens)

            logger.info(
                f"Claude API call completed: {input_tokens + output_tokens} tokens, "
                f"cost: ${cost:.4f}, time: {execution_time:.2f}s"
            )

            text = "".join(
                block.text for block in result.content if getattr(block, "type", "") == "text"
            )
            if not text:
                raise InvalidResponseError("Empty response from Claude")

            return CompletionResult(
                text=text,
                model_used=self.model,
                provider=self.provider_name,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                cost=cost,
                processing_time=execution_time,
            )

        except AnthropicRateLimitError as e:
            logger.error(f"Claude rate limit exceeded: {e}")
            retry_after = getattr(e, "retry_after", None)
            raise RateLimitError(
                f"Claude rate limit exceeded: {e}",
                retry_after=retry_after,
            ) from e
        except AnthropicAPIError as e:
            logger.error(f"Claude API error: {e}")
            status_code = getattr(e, "status_code", None)
            if status_code == 429:
                raise RateLimitError(f"Claude rate limit: {e}") from e
            elif status_code == 402:
                raise QuotaExceededError(f"Claude quota exceeded: {e}") from e
            else:
                raise APIError(f"Claude API error: {e}", status_code=status_code) from e
        except InvalidResponseError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error in Claude provider: {e}", exc_info=True)
            raise APIError(f"Unexpected error: {e}") from e

    async def _call_claude(self, prompt: str, system_prompt: Optional[str]):
        """Run the sync client call in an executor."""

        def _sync_call():
            kwargs = {}
            if system_prompt:
                kwargs["system"] = system_prompt
            return self.client.messages.create(
                model=self.model,
                max_tokens=MAX_OUTPUT_TOKENS,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _sync_call)

    def get_cost_estimate(self, input_tokens: int, output_tokens: int) -> float:
        input_cost = (input_tokens / 1_000_000) * CLAUDE_INPUT_COST_PER_1M
        output_cost = (output_tokens / 1_000_000) * CLAUDE_OUTPUT_COST_PER_1M
        return input_cost + output_cost
