"""
Chat turn orchestration: personality profile, system prompt, and the text
provider fallback chain ending in the local template generator.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from companion_engine.config.models import CharacterConfig
from companion_engine.llm.base import BaseLLMClient, TextGenerationRequest
from companion_engine.utils.ttl_cache import BoundedTTLCache
from .personality_profile import PersonalityProfile, PersonalityProfileEngine
from .provider_errors import ContentPolicyError, ProviderError
from .resilience import Sleeper, with_retry
from .system_prompt_generator import SystemPromptGenerator
from .template_responses import TemplateResponseGenerator

logger = logging.getLogger(__name__)


class ProviderAttempt(BaseModel):
    """Outcome of one stage of the chain."""
    provider_id: str
    elapsed_ms: int
    success: bool
    error: Optional[str] = None


class ChatResponseEnvelope(BaseModel):
    """Result of a chat turn, returned to the caller."""
    success: bool = True
    response: str
    model_used: str
    fallback: bool = False
    fallback_reason: Optional[str] = None
    response_time_ms: int
    total_time_ms: int
    personality_profile: dict
    timestamp: str
    attempts: list[ProviderAttempt] = Field(default_factory=list)
    cached: bool = False
    content_policy_flagged: bool = False


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChatOrchestrator:
    """
    Runs one chat turn through the provider chain.

    Providers are tried strictly in order. A provider without credentials
    is skipped; a configured provider is retried with backoff and, once
    exhausted, its error is appended to the fallback reason. The local
    template generator always produces the final answer if nobody else did.
    ``generate`` never raises.
    """

    def __init__(
        self,
        providers: list[BaseLLMClient],
        profile_engine: Optional[PersonalityProfileEngine] = None,
        prompt_generator: Optional[SystemPromptGenerator] = None,
        template_generator: Optional[TemplateResponseGenerator] = None,
        response_cache: Optional[BoundedTTLCache] = None,
        cache_key_chars: int = 50,
        detection_history_window: int = 6,
        local_fallback_id: str = "local-fallback",
        sleep: Sleeper = asyncio.sleep,
    ):
        self.providers = providers
        self.profile_engine = profile_engine or PersonalityProfileEngine()
        self.prompt_generator = prompt_generator or SystemPromptGenerator()
        self.template_generator = template_generator or TemplateResponseGenerator()
        self.response_cache = response_cache
        self.cache_key_chars = cache_key_chars
        self.detection_history_window = detection_history_window
        self.local_fallback_id = local_fallback_id
        self.sleep = sleep

    def cache_key(self, character: CharacterConfig, message: str) -> str:
        traits = ",".join(character.personality_traits)
        return f"chat_{character.id}_{message[:self.cache_key_chars]}_{traits}"

    @staticmethod
    def _normalize_history(history: Iterable) -> list[dict]:
        turns = []
        for turn in history:
            if isinstance(turn, dict):
                role, content = turn.get("role"), turn.get("content")
            else:
                role, content = turn.role, turn.content
            if role in ("user", "assistant") and content:
                turns.append({"role": role, "content": content})
        return turns

    async def generate(
        self,
        message: str,
        character: CharacterConfig,
        history: Iterable = (),
    ) -> ChatResponseEnvelope:
        """
        Produce a reply envelope for one user message.

        Args:
            message: User message text
            character: Character being voiced
            history: Recent turns ({"role", "content"} dicts or objects)

        Returns:
            ChatResponseEnvelope; ``fallback`` is True when the local
            generator produced the reply
        """
        started = time.perf_counter()
        turns = self._normalize_history(history)
        detection_turns = turns[-self.detection_history_window:] if self.detection_history_window else []

        profile = self.profile_engine.derive(character, message, detection_turns)

        key = self.cache_key(character, message)
        if self.response_cache is not None:
            cached = self.response_cache.get(key)
            if cached is not None:
                logger.info(f"[CHAT] Cache hit for {character.id} ({cached.model_used})")
                return cached.model_copy(update={
                    "cached": True,
                    "personality_profile": profile.summary(),
                    "total_time_ms": _elapsed_ms(started),
                    "timestamp": _now_iso(),
                })

        system_prompt = self.prompt_generator.compose(character, profile)
        request = TextGenerationRequest(
            system_prompt=system_prompt,
            message=message,
            character_name=character.name,
            history=turns,
        )

        reasons: list[str] = []
        attempts: list[ProviderAttempt] = []
        flagged = False

        for provider in self.providers:
            if not provider.is_configured():
                reason = f"{provider.display_name} API key not configured"
                logger.info(f"[CHAT] Skipping {provider.provider_id}: {reason}")
                reasons.append(reason)
                attempts.append(ProviderAttempt(
                    provider_id=provider.provider_id, elapsed_ms=0, success=False, error=reason
                ))
                continue

            stage_started = time.perf_counter()
            try:
                result = await with_retry(
                    lambda: provider.attempt(request),
                    provider.retry_policy,
                    provider.provider_id,
                    sleep=self.sleep,
                )
            except ContentPolicyError as e:
                flagged = True
                reason = f"{provider.display_name} content policy: {e}"
                logger.warning(f"[CHAT] {reason}")
            except ProviderError as e:
                reason = f"{provider.display_name} API error: {e}"
                logger.warning(f"[CHAT] {reason}")
            except Exception as e:
                reason = f"{provider.display_name} API error: {e}"
                logger.error(f"[CHAT] Unexpected failure in {provider.provider_id}: {e}", exc_info=True)
            else:
                elapsed = _elapsed_ms(stage_started)
                attempts.append(ProviderAttempt(
                    provider_id=provider.provider_id, elapsed_ms=elapsed, success=True
                ))
                envelope = ChatResponseEnvelope(
                    response=result.content,
                    model_used=provider.model_label,
                    fallback=False,
                    fallback_reason="; ".join(reasons) or None,
                    response_time_ms=elapsed,
                    total_time_ms=_elapsed_ms(started),
                    personality_profile=profile.summary(),
                    timestamp=_now_iso(),
                    attempts=attempts,
                    content_policy_flagged=flagged,
                )
                logger.info(
                    f"[CHAT] {provider.provider_id} answered for {character.id} in {elapsed}ms"
                )
                if self.response_cache is not None:
                    self.response_cache.set(key, envelope)
                return envelope

            reasons.append(reason)
            attempts.append(ProviderAttempt(
                provider_id=provider.provider_id,
                elapsed_ms=_elapsed_ms(stage_started),
                success=False,
                error=str(reason),
            ))

        return self._local_fallback(message, character, profile, reasons, attempts, flagged, started)

    def _local_fallback(
        self,
        message: str,
        character: CharacterConfig,
        profile: PersonalityProfile,
        reasons: list[str],
        attempts: list[ProviderAttempt],
        flagged: bool,
        started: float,
    ) -> ChatResponseEnvelope:
        stage_started = time.perf_counter()
        text = self.template_generator.synthesize(message, character, profile)
        elapsed = _elapsed_ms(stage_started)

        reasons.append("Using local fallback response")
        attempts.append(ProviderAttempt(
            provider_id=self.local_fallback_id, elapsed_ms=elapsed, success=True
        ))
        logger.info(f"[CHAT] Local fallback used for {character.id}: {'; '.join(reasons)}")

        return ChatResponseEnvelope(
            response=text,
            model_used=self.local_fallback_id,
            fallback=True,
            fallback_reason="; ".join(reasons),
            response_time_ms=elapsed,
            total_time_ms=_elapsed_ms(started),
            personality_profile=profile.summary(),
            timestamp=_now_iso(),
            attempts=attempts,
            content_policy_flagged=flagged,
        )

    async def close(self) -> None:
        for provider in self.providers:
            await provider.close()
