"""
Tests for portrait prompts, image providers and the curated fallback.
"""

import asyncio
import json

import httpx
import pytest

from companion_engine.config.models import ImageGenerationConfig, ImageProviderConfig, RetrySettings
from companion_engine.services.image import create_image_providers
from companion_engine.services.image.replicate_provider import ReplicateImageProvider
from companion_engine.services.image.stability_provider import StabilityImageProvider
from companion_engine.services.image_generation_orchestrator import (
    FALLBACK_MESSAGE,
    FALLBACK_REASON,
    ImageGenerationOrchestrator,
)
from companion_engine.services.image_prompt_service import (
    NEGATIVE_PROMPT,
    ImagePromptService,
    PortraitRequest,
)
from companion_engine.services.provider_errors import ContentPolicyError, MalformedOutputError

FEMALE_ANIME = (
    "https://images.pexels.com/photos/3992656/pexels-photo-3992656.png"
    "?auto=compress&cs=tinysrgb&w=1260&h=750&dpr=1"
)

IMAGE_ENV_VARS = ("STABILITY_AI_API_KEY", "HUGGING_FACE_API_KEY", "REPLICATE_API_KEY")


def _provider_config(provider, **kwargs):
    return ImageProviderConfig(
        provider=provider,
        base_url="https://images.test",
        model="test-model",
        api_key_env="TEST_IMAGE_KEY",
        retry=RetrySettings(timeout_seconds=1.0, max_retries=0),
        **kwargs,
    )


def _mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestImagePromptService:

    def test_anime_prompt(self):
        portrait = PortraitRequest(
            name="Mika",
            gender="female",
            eye_color="green",
            hair_color="black",
            personality_traits=["shy", "caring"],
            art_style="anime",
        )
        request = ImagePromptService().build(portrait)

        assert request.prompt.startswith("anime style, manga style, cel shaded, portrait of a female character")
        assert "green eyes" in request.prompt
        assert "black hair" in request.prompt
        assert "shy, caring personality, expressive face showing shy traits" in request.prompt
        assert request.negative_prompt == NEGATIVE_PROMPT
        assert request.style_preset == "anime"

    def test_unknown_style_uses_generic_vocabulary(self):
        request = ImagePromptService().build(PortraitRequest(name="Sam", art_style="watercolor"))
        assert request.prompt.startswith("digital art, illustration")
        assert "friendly and approachable expression" in request.prompt
        assert request.style_preset is None


class TestImageProviders:

    def test_stability_returns_data_url(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["accept"] = request.headers["Accept"]
            return httpx.Response(200, content=b"\x89PNG fake", headers={"content-type": "image/png"})

        provider = StabilityImageProvider(_provider_config("stability"), "sk-test", client=_mock_client(handler))
        result = asyncio.run(provider.attempt(ImagePromptService().build(PortraitRequest(name="Mika"))))

        assert result.image_url.startswith("data:image/png;base64,")
        assert result.provider_id == "stability-ai"
        assert seen["url"] == "https://images.test/v2beta/test-model"
        assert seen["accept"] == "image/*"

    def test_stability_empty_body(self):
        provider = StabilityImageProvider(
            _provider_config("stability"), "sk-test",
            client=_mock_client(lambda request: httpx.Response(200, content=b"")),
        )
        with pytest.raises(MalformedOutputError):
            asyncio.run(provider.attempt(ImagePromptService().build(PortraitRequest(name="Mika"))))

    def test_replicate_output_url(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(201, json={"status": "succeeded", "output": ["https://cdn.test/portrait.png"]})

        provider = ReplicateImageProvider(_provider_config("replicate"), "r8-test", client=_mock_client(handler))
        result = asyncio.run(provider.attempt(ImagePromptService().build(PortraitRequest(name="Mika"))))

        assert result.image_url == "https://cdn.test/portrait.png"
        assert seen["auth"] == "Token r8-test"
        assert seen["body"]["version"] == "test-model"

    def test_replicate_nsfw_refusal(self):
        provider = ReplicateImageProvider(
            _provider_config("replicate"), "r8-test",
            client=_mock_client(lambda request: httpx.Response(200, json={
                "status": "failed", "output": None, "error": "NSFW content detected",
            })),
        )
        with pytest.raises(ContentPolicyError):
            asyncio.run(provider.attempt(ImagePromptService().build(PortraitRequest(name="Mika"))))


class TestImageGenerationOrchestrator:

    def test_female_anime_curated_fallback(self, monkeypatch):
        for name in IMAGE_ENV_VARS:
            monkeypatch.delenv(name, raising=False)
        config = ImageGenerationConfig()
        providers = create_image_providers(config, client=_mock_client(lambda request: httpx.Response(500)))
        orchestrator = ImageGenerationOrchestrator(config, providers)

        outcome = asyncio.run(orchestrator.generate_portrait(
            PortraitRequest(name="Mika", gender="female", art_style="anime")
        ))

        assert outcome.success is True
        assert outcome.fallback is True
        assert outcome.image_url == FEMALE_ANIME
        assert outcome.message == FALLBACK_MESSAGE
        assert outcome.fallback_reason == FALLBACK_REASON
        assert outcome.error_details == (
            "Stability AI API key not configured; "
            "Hugging Face API key not configured; "
            "Replicate API key not configured"
        )
        assert [(a["provider_id"], a["elapsed_ms"], a["success"]) for a in outcome.attempts] == [
            ("stability-ai", 0, False),
            ("hugging-face", 0, False),
            ("replicate", 0, False),
        ]
        assert outcome.attempts[0]["error"] == "Stability AI API key not configured"

    def test_curated_lookup_defaults(self):
        orchestrator = ImageGenerationOrchestrator(ImageGenerationConfig(), [])
        assert orchestrator.curated_image("robot", "comic") == "/art-styles/male comicbook.jpg"
        assert orchestrator.curated_image("female", "watercolor") == "/art-styles/female 3d.jpg"
        assert orchestrator.curated_image("MALE", "3D") == "/art-styles/male 3d.jpg"

    def test_failing_provider_then_success(self, sleep_recorder):
        def failing(request):
            return httpx.Response(503, text="busy")

        def succeeding(request):
            return httpx.Response(200, json={"output": ["https://cdn.test/p.png"]})

        providers = [
            StabilityImageProvider(_provider_config("stability"), "sk-test", client=_mock_client(failing)),
            ReplicateImageProvider(_provider_config("replicate"), "r8-test", client=_mock_client(succeeding)),
        ]
        orchestrator = ImageGenerationOrchestrator(ImageGenerationConfig(), providers, sleep=sleep_recorder)
        outcome = asyncio.run(orchestrator.generate_portrait(PortraitRequest(name="Mika")))

        assert outcome.fallback is False
        assert outcome.image_url == "https://cdn.test/p.png"
        assert outcome.model_used == "replicate"
        assert outcome.prompt_used.startswith("anime style")
        assert [a["success"] for a in outcome.attempts] == [False, True]

    def test_default_gender_must_have_images(self):
        with pytest.raises(ValueError):
            ImageGenerationConfig(default_gender="robot")
