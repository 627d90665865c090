"""
ElevenLabs TTS Provider

Hosted text-to-speech over the ElevenLabs REST API.
"""

import logging
from typing import Optional

import httpx

from companion_engine.config.models import SpeechConfig
from companion_engine.services.provider_errors import TransientProviderError
from .base_provider import BaseTTSProvider, SpeechErrorCategory, SpeechSynthesisError, TTSRequest

logger = logging.getLogger(__name__)


class ElevenLabsTTSProvider(BaseTTSProvider):
    """
    ElevenLabs provider.

    A 2xx response is only accepted when the body holds at least
    ``min_audio_bytes``; anything smaller is classified as an empty payload.
    """

    def __init__(
        self,
        config: SpeechConfig,
        api_key: Optional[str],
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self.api_key = api_key
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=config.timeout_seconds)

    @property
    def provider_name(self) -> str:
        return "elevenlabs"

    def validate_config(self) -> tuple[bool, Optional[str]]:
        if not self.api_key:
            return False, f"{self.config.api_key_env} is not set"
        return True, None

    def _headers(self) -> dict:
        return {"xi-api-key": self.api_key or "", "Content-Type": "application/json"}

    async def synthesize(self, request: TTSRequest) -> bytes:
        payload = {
            "text": request.text,
            "model_id": self.config.model_id,
            "voice_settings": dict(self.config.voice_settings),
        }
        logger.info(f"[TTS] Generating speech for voice {request.voice_id} with {len(request.text)} characters")

        try:
            response = await self.client.post(
                f"{self.config.base_url}/v1/text-to-speech/{request.voice_id}",
                json=payload,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            raise SpeechSynthesisError(
                SpeechErrorCategory.UNEXPECTED, debug_info=str(e), provider_id=self.provider_name
            )

        if response.is_error:
            logger.error(f"[TTS] ElevenLabs API error: {response.status_code} - {response.text[:300]}")
            raise SpeechSynthesisError.from_status(
                response.status_code,
                debug_info=f"API returned {response.status_code}: {response.reason_phrase}",
                provider_id=self.provider_name,
            )

        audio = response.content
        if not audio:
            logger.error("[TTS] ElevenLabs returned empty audio despite 2xx status")
            raise SpeechSynthesisError(
                SpeechErrorCategory.EMPTY_PAYLOAD,
                debug_info=f"Empty audio buffer received from API despite {response.status_code} status",
                provider_id=self.provider_name,
            )
        if len(audio) < self.config.min_audio_bytes:
            logger.error(f"[TTS] Audio buffer too small: {len(audio)} bytes")
            raise SpeechSynthesisError(
                SpeechErrorCategory.EMPTY_PAYLOAD,
                user_message="Voice service returned invalid audio data. Please check your account status.",
                debug_info=f"Audio buffer too small: {len(audio)} bytes",
                provider_id=self.provider_name,
            )

        return audio

    async def fetch_voices(self) -> list[dict]:
        try:
            response = await self.client.get(f"{self.config.base_url}/v1/voices", headers=self._headers())
        except httpx.HTTPError as e:
            raise TransientProviderError(f"ElevenLabs voices request failed: {e}", self.provider_name)

        if response.is_error:
            raise TransientProviderError(
                f"ElevenLabs voices returned {response.status_code}", self.provider_name
            )

        try:
            data = response.json()
        except ValueError:
            raise TransientProviderError("ElevenLabs voices returned a non-JSON body", self.provider_name)
        return data.get("voices") or []

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
