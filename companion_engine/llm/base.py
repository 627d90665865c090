"""Base abstract class for remote text-generation providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

import httpx
from pydantic import BaseModel

from companion_engine.config.models import RetrySettings
from companion_engine.services.provider_errors import TransientProviderError


class LLMResponse(BaseModel):
    """LLM response model."""
    content: str
    model: str
    finish_reason: Optional[str] = None


class LLMError(TransientProviderError):
    """Transport-level failure talking to a text provider."""
    pass


@dataclass
class TextGenerationRequest:
    """Provider-agnostic input for one chat turn."""
    system_prompt: str
    message: str
    character_name: str
    history: list[dict] = field(default_factory=list)  # [{"role": ..., "content": ...}]


class BaseLLMClient(ABC):
    """
    Abstract base class for hosted text-generation provider adapters.

    Each adapter owns its request building and response parsing; the
    chat orchestrator only sees ``attempt()`` and the error taxonomy.
    """

    provider_id: str = "unknown"
    display_name: str = "Unknown"

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: Optional[str],
        timeout: float,
        temperature: float,
        max_tokens: int,
        history_window: int = 6,
        min_response_chars: int = 5,
        retry_policy: Optional[RetrySettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize provider client.

        Args:
            base_url: Base URL for the provider API
            model: Model identifier
            api_key: Credential; None marks the provider as unconfigured
            timeout: HTTP timeout in seconds
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            history_window: Number of recent turns sent with each request
            min_response_chars: Shorter output is treated as malformed
            retry_policy: Timeout/backoff policy applied by the orchestrator
            client: Shared HTTP client (one is created when omitted)
        """
        self.base_url = base_url.rstrip('/')
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.history_window = history_window
        self.min_response_chars = min_response_chars
        self.retry_policy = retry_policy or RetrySettings(timeout_seconds=timeout)
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def model_label(self) -> str:
        """Identifier reported as ``model_used`` in responses."""
        return self.provider_id

    def is_configured(self) -> bool:
        """True when credentials are present."""
        return bool(self.api_key)

    def recent_history(self, history: list[dict]) -> list[dict]:
        """Bounded window of the latest turns."""
        if self.history_window <= 0:
            return []
        return [
            {"role": turn["role"], "content": turn["content"]}
            for turn in history[-self.history_window:]
        ]

    @abstractmethod
    async def attempt(self, request: TextGenerationRequest) -> LLMResponse:
        """
        Make a single generation attempt.

        Args:
            request: System prompt, user message, history and character name

        Returns:
            LLMResponse with cleaned content

        Raises:
            ProviderError: Any classified failure (see provider_errors)
        """
        pass

    async def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            await self.client.aclose()
