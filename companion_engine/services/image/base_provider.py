"""
Base Image Provider Interface

All portrait generation providers must implement this interface.
"""

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from companion_engine.config.models import ImageProviderConfig, RetrySettings


@dataclass
class ImageRequest:
    """Portrait generation request."""
    prompt: str
    negative_prompt: str
    style_preset: Optional[str] = None   # Only honored by providers with presets


@dataclass
class ImageResult:
    """Portrait generation result."""
    image_url: str                        # data: URL or remote URL
    provider_id: str
    content_type: Optional[str] = None


def to_data_url(content: bytes, content_type: Optional[str]) -> str:
    """Encode raw image bytes as a ``data:`` URL."""
    mime = (content_type or "image/png").split(";")[0].strip() or "image/png"
    return f"data:{mime};base64,{base64.b64encode(content).decode('ascii')}"


class BaseImageProvider(ABC):
    """
    Base class for hosted image providers.

    Providers must implement:
    - attempt() - One generation call, raising ProviderError subclasses
    """

    provider_id: str = "unknown"
    display_name: str = "Unknown"

    def __init__(
        self,
        config: ImageProviderConfig,
        api_key: Optional[str],
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self.api_key = api_key
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=config.retry.timeout_seconds)

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def retry_policy(self) -> RetrySettings:
        return self.config.retry

    def is_configured(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    async def attempt(self, request: ImageRequest) -> ImageResult:
        """
        Generate one portrait.

        Args:
            request: Prompt, negative prompt and optional style preset

        Returns:
            ImageResult with a displayable URL

        Raises:
            ProviderError: Any classified failure
        """
        pass

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
