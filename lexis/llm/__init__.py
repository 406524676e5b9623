"""LLM provider abstraction for code rewriting."""

from lexis.llm.base import TRANSFORM_SYSTEM_PROMPT, BaseLLMProvider
from lexis.llm.errors import (
    APIError,
    InvalidResponseError,
    LLMProviderError,
    QuotaExceededError,
    RateLimitError,
)
from lexis.llm.factory import create_llm_provider
from lexis.llm.models import CompletionResult
from lexis.llm.parser import parse_transform_response

__all__ = [
    "APIError",
    "BaseLLMProvider",
    "CompletionResult",
    "InvalidResponseError",
    "LLMProviderError",
    "QuotaExceededError",
    "RateLimitError",
    "TRANSFORM_SYSTEM_PROMPT",
    "create_llm_provider",
    "parse_transform_response",
]
