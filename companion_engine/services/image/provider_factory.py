"""
Image Provider Factory

Builds the configured portrait providers in priority order.
"""

import logging
from typing import Optional

import httpx

from companion_engine.config.models import ImageGenerationConfig, ImageProviderConfig
from .base_provider import BaseImageProvider
from .huggingface_provider import HuggingFaceImageProvider
from .replicate_provider import ReplicateImageProvider
from .stability_provider import StabilityImageProvider

logger = logging.getLogger(__name__)

_PROVIDER_CLASSES = {
    "stability": StabilityImageProvider,
    "huggingface": HuggingFaceImageProvider,
    "replicate": ReplicateImageProvider,
}


def create_image_provider(
    config: ImageProviderConfig,
    client: Optional[httpx.AsyncClient] = None,
) -> BaseImageProvider:
    """
    Create a provider instance from its configuration.

    Raises:
        ValueError: If provider is unknown
    """
    cls = _PROVIDER_CLASSES.get(config.provider)
    if cls is None:
        raise ValueError(
            f"Unknown image provider: {config.provider}. "
            f"Supported providers: {', '.join(_PROVIDER_CLASSES)}"
        )
    return cls(config=config, api_key=config.resolve_api_key(), client=client)


def create_image_providers(
    config: ImageGenerationConfig,
    client: Optional[httpx.AsyncClient] = None,
) -> list[BaseImageProvider]:
    """Build the enabled image providers in priority order."""
    providers = []
    for provider_config in config.providers:
        if not provider_config.enabled:
            continue
        provider = create_image_provider(provider_config, client=client)
        logger.info(
            f"[IMAGE] Provider {provider.provider_id} ready (configured={provider.is_configured()})"
        )
        providers.append(provider)
    return providers
