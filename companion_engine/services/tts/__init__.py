"""
TTS Provider System

Speech synthesis behind a provider interface, with voice and audio caches.
"""

from .base_provider import (
    BaseTTSProvider,
    SpeechErrorCategory,
    SpeechSynthesisError,
    TTSRequest,
)
from .elevenlabs_provider import ElevenLabsTTSProvider
from .tts_service import TTSService, VoiceCatalog

__all__ = [
    'BaseTTSProvider',
    'ElevenLabsTTSProvider',
    'SpeechErrorCategory',
    'SpeechSynthesisError',
    'TTSRequest',
    'TTSService',
    'VoiceCatalog',
]
