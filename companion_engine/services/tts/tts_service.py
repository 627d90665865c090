"""
Unified TTS Service

Facade over the speech provider with input validation, the voice catalog
cache and the generated audio cache.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from companion_engine.config.models import SpeechConfig
from companion_engine.services.audio_storage import AudioHandle, AudioStorageService
from companion_engine.services.provider_errors import ProviderError, ProviderTimeoutError
from companion_engine.services.resilience import call_with_timeout
from companion_engine.utils.ttl_cache import BoundedTTLCache
from .base_provider import BaseTTSProvider, SpeechErrorCategory, SpeechSynthesisError, TTSRequest
from .voice_catalog import FALLBACK_VOICES, format_voices, is_unsupported_voice

logger = logging.getLogger(__name__)

_VOICES_KEY = "voices"


@dataclass
class VoiceCatalog:
    """Voices offered to the caller."""
    voices: list[dict] = field(default_factory=list)
    fallback: bool = False
    message: Optional[str] = None


class TTSService:
    """
    Unified TTS service.

    Speech synthesis is a single-provider call (no chain). The audio cache
    is pure TTL; its entries own files on disk and are released on expiry,
    replacement and clear.
    """

    def __init__(
        self,
        config: SpeechConfig,
        provider: Optional[BaseTTSProvider],
        storage: AudioStorageService,
        voice_cache: Optional[BoundedTTLCache] = None,
        audio_cache: Optional[BoundedTTLCache] = None,
    ):
        """
        Initialize TTS service.

        Args:
            config: Speech configuration
            provider: Speech provider (None when speech is disabled)
            storage: Scratch storage for generated audio
            voice_cache: Voice catalog cache (defaults to config TTL)
            audio_cache: Generated audio cache (defaults to config TTL)
        """
        self.config = config
        self.provider = provider
        self.storage = storage
        if voice_cache is None:
            voice_cache = BoundedTTLCache(config.voices_cache_ttl_seconds)
        if audio_cache is None:
            audio_cache = BoundedTTLCache(
                config.audio_cache_ttl_seconds,
                on_evict=lambda _key, handle: handle.release(),
            )
        self.voice_cache = voice_cache
        self.audio_cache = audio_cache

    def is_configured(self) -> bool:
        if self.provider is None:
            return False
        is_valid, _ = self.provider.validate_config()
        return is_valid

    def audio_cache_key(self, voice_id: str, text: str) -> str:
        return f"{voice_id}:{text[:self.config.audio_cache_key_chars]}"

    def validate(self, voice_id: str, text: str) -> None:
        """
        Reject requests that must never reach the provider.

        Raises:
            SpeechSynthesisError: Not configured, unsupported voice,
                missing text or malformed voice id
        """
        if not self.is_configured():
            raise SpeechSynthesisError(SpeechErrorCategory.NOT_CONFIGURED)
        if voice_id and is_unsupported_voice(voice_id):
            raise SpeechSynthesisError(SpeechErrorCategory.UNSUPPORTED_VOICE)
        if not text or not text.strip():
            raise SpeechSynthesisError(SpeechErrorCategory.INVALID_INPUT)
        if not voice_id or len(voice_id) < self.config.min_voice_id_length:
            raise SpeechSynthesisError(
                SpeechErrorCategory.INVALID_VOICE, user_message="Invalid voice ID provided"
            )

    async def synthesize(self, voice_id: str, text: str) -> AudioHandle:
        """
        Generate (or reuse) speech audio.

        Args:
            voice_id: Provider voice id
            text: Text to speak; truncated to the provider maximum

        Returns:
            AudioHandle owned by the audio cache

        Raises:
            SpeechSynthesisError: Classified failure
        """
        self.validate(voice_id, text)
        text = text[:self.config.max_text_length]

        key = self.audio_cache_key(voice_id, text)
        cached = self.audio_cache.get(key)
        if cached is not None:
            logger.debug(f"[TTS] Audio cache hit for voice {voice_id}")
            return cached

        request = TTSRequest(text=text, voice_id=voice_id)
        try:
            audio = await call_with_timeout(
                lambda: self.provider.synthesize(request),
                self.config.timeout_seconds,
                self.provider.provider_name,
            )
        except SpeechSynthesisError:
            raise
        except ProviderTimeoutError as e:
            raise SpeechSynthesisError(
                SpeechErrorCategory.UNEXPECTED, debug_info=str(e), provider_id=self.provider.provider_name
            )
        except Exception as e:
            logger.error(f"[TTS] Unexpected synthesis failure: {e}", exc_info=True)
            raise SpeechSynthesisError(
                SpeechErrorCategory.UNEXPECTED, debug_info=str(e), provider_id=self.provider.provider_name
            )

        try:
            handle = self.storage.save_audio(audio, key, content_type=self.provider.content_type)
        except OSError as e:
            logger.error(f"[TTS] Failed to store generated audio: {e}")
            raise SpeechSynthesisError(SpeechErrorCategory.UNEXPECTED, debug_info=str(e))
        self.audio_cache.set(key, handle)
        logger.info(f"[TTS] Generated {handle.size_bytes} bytes for voice {voice_id}")
        return handle

    async def preview(self, voice_id: str, text: Optional[str] = None) -> AudioHandle:
        """Short sample of a voice, using the configured preview line by default."""
        return await self.synthesize(voice_id, text or self.config.preview_text)

    async def list_voices(self) -> VoiceCatalog:
        """
        Provider voices, or the built-in fallback list.

        Never raises; upstream failures return the fallback catalog.
        """
        cached = self.voice_cache.get(_VOICES_KEY)
        if cached is not None:
            return cached

        if not self.is_configured():
            logger.info("[TTS] Speech provider not configured, using fallback voices")
            return VoiceCatalog(
                voices=list(FALLBACK_VOICES),
                fallback=True,
                message=f"Using fallback voices. Configure {self.config.api_key_env} for full voice selection.",
            )

        try:
            raw = await call_with_timeout(
                self.provider.fetch_voices,
                self.config.timeout_seconds,
                self.provider.provider_name,
            )
        except ProviderError as e:
            logger.warning(f"[TTS] Voice listing failed, using fallback voices: {e}")
            return VoiceCatalog(
                voices=list(FALLBACK_VOICES),
                fallback=True,
                message="Voice provider unavailable. Using fallback voices.",
            )

        catalog = VoiceCatalog(voices=format_voices(raw), fallback=False)
        self.voice_cache.set(_VOICES_KEY, catalog)
        return catalog

    def clear_caches(self) -> None:
        """Drop cached voices and release every cached audio file."""
        self.voice_cache.clear()
        self.audio_cache.clear()

    async def close(self) -> None:
        self.clear_caches()
        if self.provider is not None:
            await self.provider.close()
