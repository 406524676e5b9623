"""Factory for creating LLM provider instances."""

from typing import TYPE_CHECKING, Optional

from lexis.core.config import Settings
from lexis.core.logging import get_logger
from lexis.llm.errors import LLMProviderError

if TYPE_CHECKING:
    from lexis.llm.base import BaseLLMProvider

logger = get_logger(__name__)


def create_llm_provider(settings: Settings) -> Optional["BaseLLMProvider"]:
    """
    Build the provider selected by ``settings.llm_provider``.

    Returns:
        Provider instance, or None when the selected provider has no API key

    Raises:
        LLMProviderError: If the provider name is unknown
    """
    if not settings.has_llm_credentials():
        logger.warning(
            "No API key configured for LLM provider",
            provider=settings.llm_provider,
        )
        return None

    try:
        config = settings.get_llm_config()
    except ValueError as e:
        logger.error(f"LLM provider configuration error: {e}")
        raise LLMProviderError(f"Configuration error: {e}") from e

    provider_name = config["provider"]
    model = config["model"]
    api_key = config["api_key"]

    logger.info(f"Initializing LLM provider: {provider_name} with model: {model}")

    if provider_name == "gemini":
        from lexis.llm.gemini_provider import GeminiProvider

        return GeminiProvider(model=model, api_key=api_key)
    elif provider_name == "anthropic":
        from lexis.llm.anthropic_provider import AnthropicProvider

        return AnthropicProvider(model=model, api_key=api_key)
    elif provider_name == "openai":
        from lexis.llm.openai_provider import OpenAIProvider

        return OpenAIProvider(model=model, api_key=api_key)
    elif provider_name == "zhipu":
        from lexis.llm.zhipu_provider import ZhipuProvider

        return ZhipuProvider(model=model, api_key=api_key)

    raise LLMProviderError(f"Unknown provider: {provider_name}")
