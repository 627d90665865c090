"""Shared fixtures and fakes for the test suite."""

import asyncio

import pytest

from companion_engine.config.models import CharacterConfig, RetrySettings
from companion_engine.llm.base import BaseLLMClient, LLMResponse
from companion_engine.services.tts.base_provider import BaseTTSProvider


class StubRandom:
    """Deterministic stand-in for random.Random."""

    def __init__(self, value: float = 0.99):
        self.value = value

    def random(self) -> float:
        return self.value

    def choice(self, seq):
        return seq[0]


class FakeLLM(BaseLLMClient):
    """Text provider replaying scripted outcomes (strings or exceptions)."""

    def __init__(self, provider_id, outcomes, configured=True, display_name=None, retry_policy=None):
        super().__init__(
            base_url="http://fake.local",
            model="fake-model",
            api_key="test-key" if configured else None,
            timeout=1.0,
            temperature=0.7,
            max_tokens=50,
            retry_policy=retry_policy or RetrySettings(timeout_seconds=1.0, max_retries=1, base_delay_seconds=1.0),
        )
        self.provider_id = provider_id
        self.display_name = display_name or provider_id
        self.outcomes = list(outcomes)
        self.requests = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def attempt(self, request):
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return LLMResponse(content=outcome, model=self.model)


class FakeTTSProvider(BaseTTSProvider):
    """Speech provider returning fixed audio or raising a fixed error."""

    def __init__(self, audio=b"ID3" + b"\x00" * 512, error=None, voices=None, configured=True, delay=0.0):
        self.audio = audio
        self.error = error
        self.voices = voices or []
        self.configured = configured
        self.delay = delay
        self.synthesize_calls = 0
        self.fetch_calls = 0

    @property
    def provider_name(self) -> str:
        return "fake-tts"

    def validate_config(self):
        return (True, None) if self.configured else (False, "FAKE_TTS_KEY is not set")

    async def synthesize(self, request):
        self.synthesize_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.audio

    async def fetch_voices(self):
        self.fetch_calls += 1
        if isinstance(self.voices, Exception):
            raise self.voices
        return self.voices


class SleepRecorder:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def shy_character():
    return CharacterConfig(
        id="mika",
        name="Mika",
        gender="female",
        personality_traits=["shy", "caring", "creative"],
        art_style="anime",
    )


@pytest.fixture
def chaotic_character():
    return CharacterConfig(
        id="zap",
        name="Zap",
        gender="male",
        personality_traits=["chaotic", "caring"],
        backstory="Zap once tried to ride a shopping cart down a ski slope.",
    )


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def clock():
    return FakeClock()
