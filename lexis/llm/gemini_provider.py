"""Google Gemini provider implementation (REST generateContent)."""

from typing import Optional

import httpx

from lexis.core.logging import get_logger
from lexis.llm.base import BaseLLMProvider
from lexis.llm.errors import APIError, InvalidResponseError, QuotaExceededError, RateLimitError
from lexis.llm.models import CompletionResult

logger = get_logger(__name__)

# Gemini 2.5 Flash: $0.30 per 1M input tokens, $2.50 per 1M output tokens
GEMINI_INPUT_COST_PER_1M = 0.30
GEMINI_OUTPUT_COST_PER_1M = 2.50

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"


class GeminiProvider(BaseLLMProvider):
    """Gemini provider, the default code-rewriting service."""

    def __init__(self, model: str, api_key: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize Gemini provider.

        Args:
            model: Model identifier (e.g., "gemini-2.5-flash")
            api_key: Google AI Studio API key
            transport: Optional httpx transport (tests)
        """
        super().__init__(model, api_key)
        self.provider_name = "gemini"
        self.client = httpx.AsyncClient(timeout=180.0, transport=transport)

    async def generate_content(
        self, prompt: str, system_prompt: Optional[str] = None
    ) -> CompletionResult:
        try:
            logger.info(
                f"Calling Gemini API with model {self.model}, "
                f"prompt length: {len(prompt)} chars"
            )

            result, execution_time = await self._time_execution(
                self._call_gemini(prompt, system_prompt)
            )

            usage = result.get("usageMetadata", {})
            input_tokens = usage.get("promptTokenCount", 0)
            output_tokens = usage.get("candidatesTokenCount", 0)
            cost = self.get_cost_estimate(input_tokens, output_tokens)

            logger.info(
                f"Gemini API call completed: {input_tokens + output_tokens} tokens, "
                f"cost: ${cost:.4f}, time: {execution_time:.2f}s"
            )

            candidates = result.get("candidates", [])
            if not candidates:
                raise InvalidResponseError("Empty response from Gemini")

            parts = candidates[0].get("content", {}).get("parts", [])
            response_text = "".join(part.get("text", "") for part in parts)
            if not response_text:
                raise InvalidResponseError(
                    "Empty content in Gemini response",
                    raw_response=str(candidates[0].get("finishReason")),
                )

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
            status_code = e.response.status_code
            logger.error(f"Gemini API HTTP error: {status_code}")
            if status_code == 429:
                if "quota" in e.response.text.lower():
                    raise QuotaExceededError(f"Gemini quota exceeded: {status_code}") from e
                raise RateLimitError(f"Gemini rate limit: {status_code}") from e
            raise APIError(f"Gemini API error: {status_code}", status_code=status_code) from e
        except httpx.RequestError as e:
            logger.error(f"Gemini API request error: {e}")
            raise APIError(f"Gemini request error: {e}") from e
        except InvalidResponseError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error in Gemini provider: {e}", exc_info=True)
            raise APIError(f"Unexpected error: {e}") from e

    async def _call_gemini(self, prompt: str, system_prompt: Optional[str]) -> dict:
        # key in a header, never in the URL
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

        payload: dict = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0.2},
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        response = await self.client.post(
            f"{GEMINI_API_BASE}/{self.model}:generateContent",
            headers=headers,
            json=payload,
        )
        response.raise_for_status()
        return response.json()

    def get_cost_estimate(self, input_tokens: int, output_tokens: int) -> float:
        input_cost = (input_tokens / 1_000_000) * GEMINI_INPUT_COST_PER_1M
        output_cost = (output_tokens / 1_000_000) * GEMINI_OUTPUT_COST_PER_1M
        return input_cost + output_cost

    async def close(self) -> None:
        await self.client.aclose()
