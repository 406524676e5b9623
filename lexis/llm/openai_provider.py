"""OpenAI GPT provider implementation."""

import asyncio
from typing import Optional

from openai import APIError as OpenAIAPIError
from openai import OpenAI
from openai import RateLimitError as OpenAIRateLimitError

from lexis.core.logging import get_logger
from lexis.llm.base import BaseLLMProvider
from lexis.llm.errors import APIError, InvalidResponseError, QuotaExceededError, RateLimitError
from lexis.llm.models import CompletionResult

logger = get_logger(__name__)

# Per 1M tokens, USD
OPENAI_PRICING = {
    "gpt-4o": {"input": 2.50, "output": 10.0},
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "gpt-4-turbo": {"input": 10.0, "output": 30.0},
    "gpt-4": {"input": 30.0, "output": 60.0},
}


class OpenAIProvider(BaseLLMProvider):
    """OpenAI GPT provider for code rewriting."""

    def __init__(self, model: str, api_key: str):
        """
        Initialize OpenAI provider.

        Args:
            model: Model identifier (e.g., "gpt-4o-mini")
            api_key: OpenAI API key
        """
        super().__init__(model, api_key)
        self.client = OpenAI(api_key=api_key)
        self.provider_name = "openai"

    async def generate_content(
        self, prompt: str, system_prompt: Optional[str] = None
    ) -> CompletionResult:
        try:
            logger.info(
                f"Calling OpenAI API with model {self.model}, "
                f"prompt length: {len(prompt)} chars"
            )

            result, execution_time = await self._time_execution(
                self._call_openai(prompt, system_prompt)
            )

            input_tokens = result.usage.prompt_tokens
            output_tokens = result.usage.completion_tokens
            cost = self.get_cost_estimate(input_tokens, output_tokens)

            logger.info(
                f"OpenAI API call completed: {input_tokens + output_tokens} tokens, "
                f"cost: ${cost:.4f}, time: {execution_time:.2f}s"
            )

            response_text = result.choices[0].message.content
            if not response_text:
                raise InvalidResponseError("Empty response from OpenAI")

            return CompletionResult(
                text=response_text,
                model_used=self.model,
                provider=self.provider_name,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                cost=cost,
                processing_time=execution_time,
            )

        except OpenAIRateLimitError as e:
            logger.error(f"OpenAI rate limit exceeded: {e}")
            raise RateLimitError(f"OpenAI rate limit exceeded: {e}") from e
        except OpenAIAPIError as e:
            logger.error(f"OpenAI API error: {e}")
            status_code = getattr(e, "status_code", None)
            if "quota" in str(e).lower() or "insufficient" in str(e).lower():
                raise QuotaExceededError(f"OpenAI quota exceeded: {e}") from e
            elif status_code == 429:
                raise RateLimitError(f"OpenAI rate limit: {e}") from e
            else:
                raise APIError(f"OpenAI API error: {e}", status_code=status_code) from e
        except InvalidResponseError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error in OpenAI provider: {e}", exc_info=True)
            raise APIError(f"Unexpected error: {e}") from e

    async def _call_openai(self, prompt: str, system_prompt: Optional[str]):
        """Run the sync client call in an executor."""

        def _sync_call():
            messages = []
            if system_prompt:
                messages.append({"role": "system", "content": system_prompt})
            messages.append({"role": "user", "content": prompt})
            return self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=0.2,
                response_format={"type": "json_object"},
            )

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _sync_call)

    def get_cost_estimate(self, input_tokens: int, output_tokens: int) -> float:
        # Unknown models are priced as gpt-4o
        pricing = OPENAI_PRICING.get(self.model, OPENAI_PRICING["gpt-4o"])

        input_cost = (input_tokens / 1_000_000) * pricing["input"]
        output_cost = (output_tokens / 1_000_000) * pricing["output"]
        return input_cost + output_cost
