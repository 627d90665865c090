"""
Tests for the chat fallback chain.

Tests cover:
- Short-circuit on the first successful provider
- Skip reasons for unconfigured providers, in chain order
- Retry with exponential backoff, then fallback
- Content policy refusals (no retry, flagged)
- Response caching
"""

import asyncio

from companion_engine.config.models import RetrySettings
from companion_engine.services.chat_orchestrator import ChatOrchestrator
from companion_engine.services.provider_errors import ContentPolicyError, TransientProviderError
from companion_engine.services.template_responses import TemplateResponseGenerator
from companion_engine.utils.ttl_cache import BoundedTTLCache

from conftest import FakeLLM, StubRandom


def _orchestrator(providers, sleep_recorder, cache=None):
    return ChatOrchestrator(
        providers=providers,
        template_generator=TemplateResponseGenerator(rng=StubRandom(0.99)),
        response_cache=cache,
        sleep=sleep_recorder,
    )


class TestChatOrchestrator:

    def test_first_success_short_circuits(self, shy_character, sleep_recorder):
        first = FakeLLM("openai", ["Oh, hello... nice to meet you."], display_name="OpenAI")
        second = FakeLLM("huggingface", ["unused reply"], display_name="Hugging Face")
        orchestrator = _orchestrator([first, second], sleep_recorder)

        envelope = asyncio.run(orchestrator.generate("Hello!", shy_character))

        assert envelope.success is True
        assert envelope.response == "Oh, hello... nice to meet you."
        assert envelope.model_used == "openai"
        assert envelope.fallback is False
        assert envelope.fallback_reason is None
        assert first.calls == 1
        assert second.calls == 0

    def test_all_failing_chain_uses_local_fallback(self, shy_character, sleep_recorder):
        unconfigured = FakeLLM("openai", ["unused"], configured=False, display_name="OpenAI")
        failing = FakeLLM("huggingface", [TransientProviderError("boom")], display_name="Hugging Face")
        orchestrator = _orchestrator([unconfigured, failing], sleep_recorder)

        envelope = asyncio.run(orchestrator.generate("Hello!", shy_character))

        assert envelope.success is True
        assert envelope.fallback is True
        assert envelope.model_used == "local-fallback"
        assert envelope.response.startswith("H-hi there... I'm Mika.")
        assert envelope.fallback_reason == (
            "OpenAI API key not configured; "
            "Hugging Face API error: boom; "
            "Using local fallback response"
        )
        assert unconfigured.calls == 0
        assert failing.calls == 2  # one retry
        assert [a.provider_id for a in envelope.attempts] == ["openai", "huggingface", "local-fallback"]

    def test_no_providers(self, shy_character, sleep_recorder):
        envelope = asyncio.run(_orchestrator([], sleep_recorder).generate("Hello!", shy_character))
        assert envelope.fallback is True
        assert envelope.fallback_reason == "Using local fallback response"

    def test_retry_with_backoff_then_success(self, shy_character, sleep_recorder):
        policy = RetrySettings(timeout_seconds=1.0, max_retries=3, base_delay_seconds=0.5)
        flaky = FakeLLM(
            "openai",
            [TransientProviderError("503"), TransientProviderError("503"), "Finally, a reply!"],
            retry_policy=policy,
        )
        envelope = asyncio.run(_orchestrator([flaky], sleep_recorder).generate("Hello!", shy_character))

        assert envelope.response == "Finally, a reply!"
        assert flaky.calls == 3
        assert sleep_recorder.delays == [0.5, 1.0]

    def test_unexpected_exception_is_contained(self, shy_character, sleep_recorder):
        broken = FakeLLM("openai", [RuntimeError("socket closed")], display_name="OpenAI")
        envelope = asyncio.run(_orchestrator([broken], sleep_recorder).generate("Hello!", shy_character))

        assert envelope.fallback is True
        assert envelope.fallback_reason.startswith("OpenAI API error: socket closed")

    def test_content_policy_is_not_retried(self, shy_character, sleep_recorder):
        refusing = FakeLLM("openai", [ContentPolicyError("refused")], display_name="OpenAI")
        backup = FakeLLM("huggingface", ["Hi! Good to see you."], display_name="Hugging Face")
        envelope = asyncio.run(_orchestrator([refusing, backup], sleep_recorder).generate("Hello!", shy_character))

        assert refusing.calls == 1
        assert sleep_recorder.delays == []
        assert envelope.content_policy_flagged is True
        assert envelope.model_used == "huggingface"
        assert envelope.fallback_reason == "OpenAI content policy: refused"

    def test_system_prompt_reaches_provider(self, shy_character, sleep_recorder):
        provider = FakeLLM("openai", ["Hello to you too!"])
        history = [
            {"role": "user", "content": "hey"},
            {"role": "assistant", "content": "Oh! Hi..."},
        ]
        asyncio.run(_orchestrator([provider], sleep_recorder).generate("How are you?", shy_character, history))

        request = provider.requests[0]
        assert request.character_name == "Mika"
        assert request.message == "How are you?"
        assert request.history == history
        assert "PERSONALITY PROFILE:" in request.system_prompt
        assert "Keep responses under 150 words" in request.system_prompt

    def test_cached_response(self, shy_character, sleep_recorder):
        provider = FakeLLM("openai", ["Nice to meet you!"])
        cache = BoundedTTLCache(300, max_entries=50)
        orchestrator = _orchestrator([provider], sleep_recorder, cache=cache)

        first = asyncio.run(orchestrator.generate("Hello!", shy_character))
        second = asyncio.run(orchestrator.generate("Hello!", shy_character))

        assert provider.calls == 1
        assert first.cached is False
        assert second.cached is True
        assert second.response == first.response
        assert len(cache) == 1

    def test_fallback_replies_are_not_cached(self, shy_character, sleep_recorder):
        cache = BoundedTTLCache(300, max_entries=50)
        asyncio.run(_orchestrator([], sleep_recorder, cache=cache).generate("Hello!", shy_character))
        assert len(cache) == 0

    def test_cache_key(self, shy_character, sleep_recorder):
        orchestrator = _orchestrator([], sleep_recorder)
        key = orchestrator.cache_key(shy_character, "x" * 80)
        assert key == f"chat_mika_{'x' * 50}_shy,caring,creative"

    def test_personality_profile_summary(self, shy_character, sleep_recorder):
        envelope = asyncio.run(_orchestrator([], sleep_recorder).generate("Hello!", shy_character))
        assert set(envelope.personality_profile) == {
            "communication_style",
            "current_mood",
            "adaptation_context",
        }

    def test_reasons_accumulate_in_chain_order(self, shy_character, sleep_recorder):
        policy = RetrySettings(timeout_seconds=1.0, max_retries=0)
        first = FakeLLM("openai", [TransientProviderError("rate limited")], display_name="OpenAI", retry_policy=policy)
        second = FakeLLM("huggingface", [TransientProviderError("model loading")],
                         display_name="Hugging Face", retry_policy=policy)
        envelope = asyncio.run(_orchestrator([first, second], sleep_recorder).generate("Hello!", shy_character))

        assert envelope.fallback is True
        assert envelope.response
        assert envelope.fallback_reason.split("; ") == [
            "OpenAI API error: rate limited",
            "Hugging Face API error: model loading",
            "Using local fallback response",
        ]
