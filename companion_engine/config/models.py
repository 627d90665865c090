"""Pydantic models for configuration validation."""

import os
from datetime import datetime
from typing import Optional, Literal
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict


class RetrySettings(BaseModel):
    """Timeout and exponential backoff policy for one provider."""

    timeout_seconds: float = Field(default=15.0, gt=0)
    max_retries: int = Field(default=3, ge=0, le=10)
    base_delay_seconds: float = Field(default=1.0, ge=0.0)


def _validate_base_url(v: str) -> str:
    if not v.startswith(('http://', 'https://')):
        raise ValueError('base_url must start with http:// or https://')
    return v.rstrip('/')


class TextProviderConfig(BaseModel):
    """Remote text-generation provider configuration."""

    provider: Literal["openai", "huggingface"]
    enabled: bool = True
    base_url: str
    model: str
    api_key_env: str = Field(description="Name of the environment variable holding the API key")
    temperature: float = Field(default=0.8, ge=0.0, le=2.0)
    max_tokens: int = Field(default=150, gt=0, le=4096)
    history_window: int = Field(default=6, ge=0, le=10, description="Recent turns sent to the provider")
    min_response_chars: int = Field(default=5, ge=1)
    retry: RetrySettings = Field(default_factory=RetrySettings)

    @field_validator('base_url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Ensure URL is properly formatted."""
        return _validate_base_url(v)

    def resolve_api_key(self) -> Optional[str]:
        """Read the API key from the environment (None when unset or blank)."""
        value = os.getenv(self.api_key_env)
        if value and value.strip():
            return value.strip()
        return None


def _default_text_providers() -> list[TextProviderConfig]:
    return [
        TextProviderConfig(
            provider="openai",
            base_url="https://api.openai.com",
            model="gpt-3.5-turbo",
            api_key_env="OPENAI_API_KEY",
            max_tokens=150,
            history_window=6,
        ),
        TextProviderConfig(
            provider="huggingface",
            base_url="https://api-inference.huggingface.co",
            model="microsoft/DialoGPT-medium",
            api_key_env="HUGGING_FACE_API_KEY",
            max_tokens=100,
            history_window=4,
        ),
    ]


class TextGenerationConfig(BaseModel):
    """Text fallback chain configuration (providers in priority order)."""

    providers: list[TextProviderConfig] = Field(default_factory=_default_text_providers)
    local_fallback_id: str = "local-fallback"
    detection_history_window: int = Field(default=6, ge=0, le=10)


class ImageProviderConfig(BaseModel):
    """Remote image-generation provider configuration."""

    provider: Literal["stability", "huggingface", "replicate"]
    enabled: bool = True
    base_url: str
    model: str
    api_key_env: str
    width: int = Field(default=512, gt=0, le=2048)
    height: int = Field(default=512, gt=0, le=2048)
    num_inference_steps: int = Field(default=30, gt=0, le=150)
    guidance_scale: float = Field(default=7.5, gt=0)
    retry: RetrySettings = Field(default_factory=lambda: RetrySettings(timeout_seconds=30.0))

    @field_validator('base_url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Ensure URL is properly formatted."""
        return _validate_base_url(v)

    def resolve_api_key(self) -> Optional[str]:
        """Read the API key from the environment (None when unset or blank)."""
        value = os.getenv(self.api_key_env)
        if value and value.strip():
            return value.strip()
        return None


def _default_image_providers() -> list[ImageProviderConfig]:
    return [
        ImageProviderConfig(
            provider="stability",
            base_url="https://api.stability.ai",
            model="stable-image/generate/core",
            api_key_env="STABILITY_AI_API_KEY",
        ),
        ImageProviderConfig(
            provider="huggingface",
            base_url="https://api-inference.huggingface.co",
            model="runwayml/stable-diffusion-v1-5",
            api_key_env="HUGGING_FACE_API_KEY",
        ),
        ImageProviderConfig(
            provider="replicate",
            base_url="https://api.replicate.com",
            model="ac732df83cea7fff18b8472768c88ad041fa750ff7682a21affe81863cbe77e4",
            api_key_env="REPLICATE_API_KEY",
        ),
    ]


_MALE_PORTRAIT = "https://images.pexels.com/photos/2379004/pexels-photo-2379004.jpeg?auto=compress&cs=tinysrgb&w=1260&h=750&dpr=1"
_FEMALE_ANIME_PORTRAIT = "https://images.pexels.com/photos/3992656/pexels-photo-3992656.png?auto=compress&cs=tinysrgb&w=1260&h=750&dpr=1"


def _default_fallback_images() -> dict[str, dict[str, str]]:
    return {
        "male": {
            "anime": "/art-styles/male anime.jpg",
            "3d": "/art-styles/male 3d.jpg",
            "comic": "/art-styles/male comicbook.jpg",
            "realistic": _MALE_PORTRAIT,
            "default": "/art-styles/male anime.jpg",
        },
        "female": {
            "anime": _FEMALE_ANIME_PORTRAIT,
            "3d": "/art-styles/female 3d.jpg",
            "comic": "/art-styles/female comicbook.jpg",
            "realistic": "/art-styles/female realistic.jpg",
            "default": "/art-styles/female 3d.jpg",
        },
        "nonbinary": {
            "anime": "/art-styles/male anime.jpg",
            "3d": "/art-styles/male 3d.jpg",
            "comic": "/art-styles/male comicbook.jpg",
            "realistic": _MALE_PORTRAIT,
            "default": "/art-styles/male anime.jpg",
        },
    }


class ImageGenerationConfig(BaseModel):
    """Portrait fallback chain configuration."""

    providers: list[ImageProviderConfig] = Field(default_factory=_default_image_providers)
    fallback_images: dict[str, dict[str, str]] = Field(default_factory=_default_fallback_images)
    default_gender: str = "nonbinary"

    @field_validator('fallback_images')
    @classmethod
    def validate_fallback_images(cls, v: dict[str, dict[str, str]]) -> dict[str, dict[str, str]]:
        """Every gender row needs a default path."""
        for gender, styles in v.items():
            if "default" not in styles:
                raise ValueError(f"fallback_images['{gender}'] must define a 'default' image")
        return v

    @model_validator(mode="after")
    def validate_default_gender(self) -> "ImageGenerationConfig":
        """The default gender row must exist for unknown genders."""
        if self.default_gender not in self.fallback_images:
            raise ValueError(f"default_gender '{self.default_gender}' has no fallback_images entry")
        return self


class SpeechConfig(BaseModel):
    """Speech synthesis (ElevenLabs) configuration."""

    provider: Literal["elevenlabs"] = "elevenlabs"
    base_url: str = "https://api.elevenlabs.io"
    api_key_env: str = "ELEVENLABS_API_KEY"
    model_id: str = "eleven_multilingual_v2"
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_text_length: int = Field(default=4500, gt=0)
    min_audio_bytes: int = Field(default=100, ge=1)
    min_voice_id_length: int = Field(default=10, ge=1)
    voice_settings: dict = Field(default_factory=lambda: {
        "stability": 0.6,
        "similarity_boost": 0.7,
        "style": 0.3,
        "use_speaker_boost": True,
    })
    preview_text: str = "Hi there! It's so nice to finally hear my own voice. I can't wait to talk with you."
    voices_cache_ttl_seconds: float = Field(default=1800.0, gt=0)
    audio_cache_ttl_seconds: float = Field(default=600.0, gt=0)
    audio_cache_key_chars: int = Field(default=100, gt=0)

    @field_validator('base_url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Ensure URL is properly formatted."""
        return _validate_base_url(v)

    def resolve_api_key(self) -> Optional[str]:
        """Read the API key from the environment (None when unset or blank)."""
        value = os.getenv(self.api_key_env)
        if value and value.strip():
            return value.strip()
        return None


class CacheConfig(BaseModel):
    """Chat response cache settings."""

    response_ttl_seconds: float = Field(default=300.0, gt=0)
    response_max_entries: int = Field(default=50, gt=0)
    response_key_message_chars: int = Field(default=50, gt=0)


class ChatConfig(BaseModel):
    """Chat turn side effects kept by the store."""

    love_meter_chance: float = Field(default=0.3, ge=0.0, le=1.0)
    love_meter_max: int = Field(default=100, gt=0)
    history_limit: int = Field(default=10, gt=0, le=50, description="Stored turns loaded per chat turn")


class SystemConfig(BaseModel):
    """Top-level system configuration."""

    model_config = ConfigDict(extra='ignore')

    text_generation: TextGenerationConfig = Field(default_factory=TextGenerationConfig)
    image_generation: ImageGenerationConfig = Field(default_factory=ImageGenerationConfig)
    speech: SpeechConfig = Field(default_factory=SpeechConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    debug: bool = False
    api_host: str = "localhost"
    api_port: int = Field(default=8080, gt=0, le=65535)


# Character configuration models

class AppearanceConfig(BaseModel):
    """Physical description used for portrait prompts."""

    height: str = "average"
    build: str = "slim"
    eye_color: str = "brown"
    hair_color: str = "brown"
    skin_tone: str = "fair"


class CharacterConfig(BaseModel):
    """Validated view of a companion character."""

    model_config = ConfigDict(extra='ignore')

    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=100)
    gender: str = "nonbinary"
    personality_traits: list[str] = Field(default_factory=list)
    backstory: Optional[str] = None
    meet_cute: Optional[str] = None
    art_style: str = "anime"
    appearance: AppearanceConfig = Field(default_factory=AppearanceConfig)
    voice_id: Optional[str] = None
    image_url: Optional[str] = None

    created_at: Optional[datetime] = None

    @field_validator('personality_traits')
    @classmethod
    def normalize_traits(cls, v: list[str]) -> list[str]:
        """Trim, lower-case and de-duplicate traits keeping first occurrence."""
        seen = []
        for trait in v:
            tag = trait.strip().lower()
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @field_validator('gender', 'art_style')
    @classmethod
    def normalize_tag(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator('backstory', 'meet_cute')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Whitespace-only text counts as absent."""
        if v is None or not v.strip():
            return None
        return v.strip()
