"""Configuration loading and validation."""

from .models import (
    SystemConfig,
    CharacterConfig,
    AppearanceConfig,
    RetrySettings,
    TextProviderConfig,
    TextGenerationConfig,
    ImageProviderConfig,
    ImageGenerationConfig,
    SpeechConfig,
    CacheConfig,
    ChatConfig,
)
from .loader import ConfigLoader, ConfigLoadError, ConfigValidationError

__all__ = [
    "SystemConfig",
    "CharacterConfig",
    "AppearanceConfig",
    "RetrySettings",
    "TextProviderConfig",
    "TextGenerationConfig",
    "ImageProviderConfig",
    "ImageGenerationConfig",
    "SpeechConfig",
    "CacheConfig",
    "ChatConfig",
    "ConfigLoader",
    "ConfigLoadError",
    "ConfigValidationError",
]
