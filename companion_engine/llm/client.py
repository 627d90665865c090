"""Text provider factory."""

import logging
from typing import TYPE_CHECKING, Optional

import httpx

from .base import BaseLLMClient
from .huggingface import HuggingFaceLLMClient
from .openai import OpenAILLMClient

if TYPE_CHECKING:
    from companion_engine.config.models import TextGenerationConfig, TextProviderConfig

logger = logging.getLogger(__name__)


def create_llm_client(
    config: "TextProviderConfig",
    client: Optional[httpx.AsyncClient] = None,
) -> BaseLLMClient:
    """
    Factory function to create appropriate LLM client based on provider.

    Args:
        config: Provider configuration with provider type and settings
        client: Optional shared HTTP client

    Returns:
        Provider-specific LLM client instance

    Raises:
        ValueError: If provider is unknown
    """
    provider = config.provider.lower()

    if provider == "openai":
        cls = OpenAILLMClient
    elif provider == "huggingface":
        cls = HuggingFaceLLMClient
    else:
        raise ValueError(
            f"Unknown LLM provider: {provider}. "
            f"Supported providers: openai, huggingface"
        )

    return cls(
        base_url=config.base_url,
        model=config.model,
        api_key=config.resolve_api_key(),
        timeout=config.retry.timeout_seconds,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        history_window=config.history_window,
        min_response_chars=config.min_response_chars,
        retry_policy=config.retry,
        client=client,
    )


def create_text_providers(
    config: "TextGenerationConfig",
    client: Optional[httpx.AsyncClient] = None,
) -> list[BaseLLMClient]:
    """Build the enabled text providers in priority order."""
    providers = []
    for provider_config in config.providers:
        if not provider_config.enabled:
            logger.info(f"[CHAT] Provider {provider_config.provider} disabled in config")
            continue
        provider = create_llm_client(provider_config, client=client)
        logger.info(
            f"[CHAT] Provider {provider.provider_id} ready "
            f"(model={provider.model}, configured={provider.is_configured()})"
        )
        providers.append(provider)
    return providers
