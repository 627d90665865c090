"""
Tests for the hosted text provider adapters.

HTTP is served by httpx.MockTransport; no network access.
"""

import asyncio
import json

import httpx
import pytest

from companion_engine.config.models import TextGenerationConfig, TextProviderConfig
from companion_engine.llm import (
    HuggingFaceLLMClient,
    OpenAILLMClient,
    TextGenerationRequest,
    create_text_providers,
)
from companion_engine.llm.text_normalization import clean_generated_text, normalize_mojibake
from companion_engine.services.provider_errors import (
    ConfigurationError,
    ContentPolicyError,
    MalformedOutputError,
    TransientProviderError,
)


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _request(history=None):
    return TextGenerationRequest(
        system_prompt="You are Mika.",
        message="How was your day?",
        character_name="Mika",
        history=history or [],
    )


def _openai(handler, **kwargs):
    return OpenAILLMClient(
        base_url="https://api.openai.test",
        model="gpt-3.5-turbo",
        api_key="sk-test",
        timeout=5.0,
        temperature=0.8,
        max_tokens=150,
        client=_client(handler),
        **kwargs,
    )


def _huggingface(handler):
    return HuggingFaceLLMClient(
        base_url="https://hf.test",
        model="microsoft/DialoGPT-medium",
        api_key="hf-test",
        timeout=5.0,
        temperature=0.8,
        max_tokens=100,
        history_window=4,
        client=_client(handler),
    )


class TestOpenAILLMClient:

    def test_successful_completion(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "model": "gpt-3.5-turbo",
                "choices": [{"message": {"content": " It was lovely, thanks! "}, "finish_reason": "stop"}],
            })

        history = [{"role": "user", "content": f"turn {i}"} for i in range(8)]
        client = _openai(handler, history_window=6)
        response = asyncio.run(client.attempt(_request(history)))

        assert response.content == "It was lovely, thanks!"
        assert client.model_label == "openai-gpt-3.5-turbo"
        assert seen["url"] == "https://api.openai.test/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"

        messages = seen["body"]["messages"]
        assert messages[0] == {"role": "system", "content": "You are Mika."}
        assert messages[-1] == {"role": "user", "content": "How was your day?"}
        assert len(messages) == 8  # system + 6 history turns + message
        assert seen["body"]["presence_penalty"] == 0.6
        assert seen["body"]["frequency_penalty"] == 0.3

    def test_unauthorized(self):
        client = _openai(lambda request: httpx.Response(401, json={"error": "invalid key"}))
        with pytest.raises(ConfigurationError):
            asyncio.run(client.attempt(_request()))

    def test_content_filter(self):
        client = _openai(lambda request: httpx.Response(200, json={
            "choices": [{"message": {"content": ""}, "finish_reason": "content_filter"}],
        }))
        with pytest.raises(ContentPolicyError):
            asyncio.run(client.attempt(_request()))

    def test_empty_content_is_malformed(self):
        client = _openai(lambda request: httpx.Response(200, json={
            "choices": [{"message": {"content": "ok"}, "finish_reason": "stop"}],
        }))
        with pytest.raises(MalformedOutputError):
            asyncio.run(client.attempt(_request()))

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        with pytest.raises(TransientProviderError):
            asyncio.run(_openai(handler).attempt(_request()))


class TestHuggingFaceLLMClient:

    def test_prompt_transcript(self):
        client = _huggingface(lambda request: httpx.Response(200, json=[]))
        history = [
            {"role": "user", "content": "hey"},
            {"role": "assistant", "content": "Oh! Hi..."},
        ]
        prompt = client.build_prompt(_request(history))
        assert prompt == (
            "You are Mika.\n\n"
            "Conversation:\n"
            "Human: hey\n"
            "Mika: Oh! Hi...\n"
            "Human: How was your day?\n"
            "Mika:"
        )

    def test_generated_text_is_cleaned(self):
        client = _huggingface(lambda request: httpx.Response(200, json=[
            {"generated_text": "Mika: It was quiet, I drew a lot.\nHuman: nice"},
        ]))
        response = asyncio.run(client.attempt(_request()))
        assert response.content == "It was quiet, I drew a lot."
        assert client.model_label == "huggingface-dialogpt"

    def test_too_short_after_cleanup(self):
        client = _huggingface(lambda request: httpx.Response(200, json=[{"generated_text": "Mika: ok"}]))
        with pytest.raises(MalformedOutputError, match="too short"):
            asyncio.run(client.attempt(_request()))

    def test_model_loading_error(self):
        client = _huggingface(lambda request: httpx.Response(200, json={"error": "Model is loading"}))
        with pytest.raises(TransientProviderError, match="loading"):
            asyncio.run(client.attempt(_request()))

    def test_unexpected_shape(self):
        with pytest.raises(MalformedOutputError):
            HuggingFaceLLMClient.extract_generated_text("just a string")


class TestTextNormalization:

    def test_mojibake(self):
        assert normalize_mojibake("Itâ€™s fine") == "It's fine"
        assert normalize_mojibake("plain text") == "plain text"

    def test_leading_role_label(self):
        assert clean_generated_text("Assistant: Hello there", "Mika") == "Hello there"


class TestProviderFactory:

    def test_disabled_providers_are_skipped(self, monkeypatch):
        monkeypatch.setenv("TEST_OPENAI_KEY", "sk-test")
        monkeypatch.delenv("TEST_HF_KEY", raising=False)
        config = TextGenerationConfig(providers=[
            TextProviderConfig(provider="openai", base_url="https://api.openai.test", model="gpt",
                               api_key_env="TEST_OPENAI_KEY"),
            TextProviderConfig(provider="huggingface", base_url="https://hf.test", model="m",
                               api_key_env="TEST_HF_KEY"),
            TextProviderConfig(provider="openai", enabled=False, base_url="https://x.test", model="gpt",
                               api_key_env="TEST_OPENAI_KEY"),
        ])
        providers = create_text_providers(config, client=_client(lambda r: httpx.Response(200)))

        assert [p.provider_id for p in providers] == ["openai", "huggingface"]
        assert providers[0].is_configured() is True
        assert providers[1].is_configured() is False
