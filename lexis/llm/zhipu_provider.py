"""Zhipu GLM provider implementation (for development/testing)."""

from typing import Optional

import httpx

from lexis.core.logging import get_logger
from lexis.llm.base import BaseLLMProvider
from lexis.llm.errors import APIError, InvalidResponseError, RateLimitError
from lexis.llm.models import CompletionResult

logger = get_logger(__name__)

# Approximately $0.10 per 1M input tokens, $0.40 per 1M output tokens
ZHIPU_INPUT_COST_PER_1M = 0.10
ZHIPU_OUTPUT_COST_PER_1M = 0.40

ZHIPU_API_BASE = "https://open.bigmodel.cn/api/paas/v4/chat/completions"


class ZhipuProvider(BaseLLMProvider):
    """Zhipu GLM provider (development/testing)."""

    def __init__(self, model: str, api_key: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(model, api_key)
        self.provider_name = "zhipu"
        self.client = httpx.AsyncClient(timeout=120.0, transport=transport)

    async def generate_content(
        self, prompt: str, system_prompt: Optional[str] = None
    ) -> CompletionResult:
        try:
            logger.info(
                f"Calling Zhipu API with model {self.model}, "
                f"prompt length: {len(prompt)} chars"
            )

            result, execution_time = await self._time_execution(
                self._call_zhipu(prompt, system_prompt)
            )

            usage = result.get("usage", {})
            input_tokens = usage.get("prompt_tokens", 0)
            output_tokens = usage.get("completion_tokens", 0)
            cost = self.get_cost_estimate(input_tokens, output_tokens)

            logger.info(
                f"Zhipu API call completed: {input_tokens + output_tokens} tokens, "
                f"cost: ${cost:.4f}, time: {execution_time:.2f}s"
            )

            choices = result.get("choices", [])
            if not choices:
                raise InvalidResponseError("Empty response from Zhipu")

            response_text = choices[0].get("message", {}).get("content", "")
            if not response_text:
                raise InvalidResponseError("Empty content in Zhipu response")

            return CompletionResult(
                text=response_text,
                model_used=self.model,
                provider=self.provider_name,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                cost=cost,
                processing_time=execution_time,
            )

        except httpx.HTTPStatusError as e:
            logger.error(f"Zhipu API HTTP error: {e}")
            if e.response.status_code == 429:
                raise RateLimitError(f"Zhipu rate limit: {e}") from e
            raise APIError(f"Zhipu API error: {e}", status_code=e.response.status_code) from e
        except httpx.RequestError as e:
            logger.error(f"Zhipu API request error: {e}")
            raise APIError(f"Zhipu request error: {e}") from e
        except InvalidResponseError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error in Zhipu provider: {e}", exc_info=True)
            raise APIError(f"Unexpected error: {e}") from e

    async def _call_zhipu(self, prompt: str, system_prompt: Optional[str]) -> dict:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": 0.2,
        }

        response = await self.client.post(ZHIPU_API_BASE, headers=headers, json=payload)
        response.raise_for_status()
        return response.json()

    def get_cost_estimate(self, input_tokens: int, output_tokens: int) -> float:
        input_cost = (input_tokens / 1_000_000) * ZHIPU_INPUT_COST_PER_1M
        output_cost = (output_tokens / 1_000_000) * ZHIPU_OUTPUT_COST_PER_1M
        return input_cost + output_cost

    async def close(self) -> None:
        await self.client.aclose()
