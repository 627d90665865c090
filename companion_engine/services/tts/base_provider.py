"""
Base TTS Provider Interface

All speech providers must implement this interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from companion_engine.services.provider_errors import ProviderError


@dataclass
class TTSRequest:
    """TTS generation request."""
    text: str                          # Already truncated to the provider limit
    voice_id: str


class SpeechErrorCategory(str, Enum):
    """User-actionable speech failure categories."""
    NOT_CONFIGURED = "not_configured"
    INVALID_INPUT = "invalid_input"
    UNSUPPORTED_VOICE = "unsupported_voice"
    UNAUTHENTICATED = "unauthenticated"
    QUOTA_EXHAUSTED = "quota_exhausted"
    RATE_LIMITED = "rate_limited"
    INVALID_VOICE = "invalid_voice"
    UPSTREAM_ERROR = "upstream_error"
    EMPTY_PAYLOAD = "empty_payload"
    UNEXPECTED = "unexpected"


USER_MESSAGES = {
    SpeechErrorCategory.NOT_CONFIGURED: "Text-to-speech service is not configured. Please contact support.",
    SpeechErrorCategory.INVALID_INPUT: "Text is required for speech generation",
    SpeechErrorCategory.UNSUPPORTED_VOICE: "Text-to-speech not available for this voice",
    SpeechErrorCategory.UNAUTHENTICATED: "Voice service authentication failed. Please check your API key.",
    SpeechErrorCategory.QUOTA_EXHAUSTED: "Voice service quota exceeded. Please check your account credits.",
    SpeechErrorCategory.RATE_LIMITED: "Voice service rate limit exceeded. Please try again in a few minutes.",
    SpeechErrorCategory.INVALID_VOICE: "Invalid voice or text for speech generation. Please try a different voice.",
    SpeechErrorCategory.UPSTREAM_ERROR: "Text-to-speech temporarily unavailable. Please try again later.",
    SpeechErrorCategory.EMPTY_PAYLOAD: (
        "Voice service returned empty audio. This usually indicates insufficient "
        "account credits or an invalid voice. Please check your account."
    ),
    SpeechErrorCategory.UNEXPECTED: "Failed to generate speech. Please try again later.",
}

STATUS_CATEGORIES = {
    401: SpeechErrorCategory.UNAUTHENTICATED,
    402: SpeechErrorCategory.QUOTA_EXHAUSTED,
    429: SpeechErrorCategory.RATE_LIMITED,
    422: SpeechErrorCategory.INVALID_VOICE,
}

# Failures that indicate a broken response rather than a bad request
SERVER_SIDE_CATEGORIES = {SpeechErrorCategory.EMPTY_PAYLOAD, SpeechErrorCategory.UNEXPECTED}


class SpeechSynthesisError(ProviderError):
    """Classified speech failure carrying a user-facing message."""

    retryable = False

    def __init__(
        self,
        category: SpeechErrorCategory,
        user_message: Optional[str] = None,
        debug_info: Optional[str] = None,
        provider_id: Optional[str] = None,
    ):
        self.category = category
        self.user_message = user_message or USER_MESSAGES[category]
        self.debug_info = debug_info
        super().__init__(self.user_message, provider_id)

    @property
    def http_status(self) -> int:
        return 500 if self.category in SERVER_SIDE_CATEGORIES else 400

    @classmethod
    def from_status(cls, status_code: int, debug_info: Optional[str] = None, provider_id: Optional[str] = None):
        category = STATUS_CATEGORIES.get(status_code, SpeechErrorCategory.UPSTREAM_ERROR)
        return cls(category, debug_info=debug_info, provider_id=provider_id)


class BaseTTSProvider(ABC):
    """
    Base class for all TTS providers.

    Providers must implement:
    - synthesize() - Core generation method returning validated audio bytes
    - fetch_voices() - Raw voice listing from the provider
    - validate_config() - Check if provider is properly configured
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique provider identifier (e.g., 'elevenlabs')."""
        pass

    @property
    def content_type(self) -> str:
        return "audio/mpeg"

    @abstractmethod
    async def synthesize(self, request: TTSRequest) -> bytes:
        """
        Generate audio from text.

        Args:
            request: TTSRequest with text and voice id

        Returns:
            Audio bytes (non-empty, above the minimum size)

        Raises:
            SpeechSynthesisError: Classified failure
        """
        pass

    @abstractmethod
    async def fetch_voices(self) -> list[dict]:
        """
        List voices from the provider in its raw shape.

        Raises:
            ProviderError: On any upstream failure
        """
        pass

    @abstractmethod
    def validate_config(self) -> tuple[bool, Optional[str]]:
        """
        Validate provider configuration.

        Returns:
            (is_valid, error_message)
        """
        pass

    async def close(self) -> None:
        pass
