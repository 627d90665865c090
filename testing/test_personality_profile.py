"""
Tests for personality profile derivation.

Tests cover:
- Tone precedence and word-boundary keyword matching
- Topic detection (multiple contexts, casual default)
- Trait adaptation for emotional conversations
- Communication style, mood and backstory synthesis
- Determinism of the derived profile
"""

from companion_engine.config.models import CharacterConfig
from companion_engine.services.keyword_context_detection import (
    ConversationContextDetector,
    TONE_CURIOUS,
    TONE_NEUTRAL,
    TONE_PLAYFUL,
    TONE_ROMANTIC,
    TONE_SUPPORTIVE,
)
from companion_engine.services.personality_profile import (
    DEFAULT_COMMUNICATION_STYLE,
    PersonalityProfileEngine,
    style_family,
)


class TestConversationContextDetector:
    """Test suite for keyword tone and topic detection."""

    def setup_method(self):
        self.detector = ConversationContextDetector()

    def test_romantic_takes_precedence(self):
        """Romantic keywords win over supportive ones in the same text."""
        signals = self.detector.detect("I feel so sad without you")
        assert signals.tone == TONE_ROMANTIC

    def test_playful_and_supportive(self):
        assert self.detector.detect("haha that joke was great").tone == TONE_PLAYFUL
        assert self.detector.detect("I have a problem at work").tone == TONE_SUPPORTIVE

    def test_question_is_curious(self):
        assert self.detector.detect("Where did you grow up").tone == TONE_CURIOUS
        assert self.detector.detect("Really?").tone == TONE_CURIOUS

    def test_keywords_match_at_word_boundaries(self):
        """'hi' inside 'this' and 'sad' inside 'crusade' never count."""
        signals = self.detector.detect("this crusade is long")
        assert signals.tone == TONE_NEUTRAL
        assert signals.topic_contexts == ["casual"]

    def test_inflected_keywords_match(self):
        assert self.detector.detect("I was feeling great").tone == TONE_ROMANTIC
        assert "playful" in self.detector.detect("we were playing games").topic_contexts

    def test_multiple_topics(self):
        signals = self.detector.detect("I'm worried about my homework")
        assert signals.topic_contexts == ["emotional", "educational", "supportive"]

    def test_history_contributes(self):
        history = [{"role": "user", "content": "I had a dream last night"}]
        signals = self.detector.detect("anyway", history)
        assert signals.topic_contexts == ["aspirational"]


class TestPersonalityProfileEngine:
    """Test suite for PersonalityProfileEngine."""

    def setup_method(self):
        self.engine = PersonalityProfileEngine()

    def test_profile_is_deterministic(self, shy_character):
        history = [{"role": "assistant", "content": "How was your day?"}]
        first = self.engine.derive(shy_character, "Pretty good, thanks", history)
        second = self.engine.derive(shy_character, "Pretty good, thanks", history)
        assert first.to_dict() == second.to_dict()

    def test_emotional_context_drops_chaotic(self, chaotic_character):
        """Emotional conversations replace chaotic with empathetic, gentle."""
        profile = self.engine.derive(chaotic_character, "I'm so sad and worried about my exam")

        assert profile.tone == TONE_SUPPORTIVE
        assert profile.topic_contexts == ["emotional", "supportive"]
        assert profile.adaptation_context == "emotional, supportive"
        assert profile.behavioral_traits == ["caring", "empathetic", "gentle"]
        assert "chaotic" not in profile.behavioral_traits
        assert profile.current_mood == "caring"
        assert "emotional_wellbeing" in profile.knowledge_domains
        assert "advice" in profile.knowledge_domains
        assert profile.knowledge_domains[:2] == ["relationships", "everyday_life"]

    def test_feeling_sad_and_worried(self, chaotic_character):
        profile = self.engine.derive(chaotic_character, "I'm feeling really sad and worried")

        assert profile.behavioral_traits == ["caring", "empathetic", "gentle"]
        assert profile.adaptation_context == "emotional, supportive"
        assert "chaotic" not in profile.behavioral_traits

    def test_character_traits_are_not_mutated(self, chaotic_character):
        self.engine.derive(chaotic_character, "I feel lonely")
        assert chaotic_character.personality_traits == ["chaotic", "caring"]

    def test_communication_style_precedence(self):
        assert self.engine.communication_style(["caring", "shy", "flirty"], TONE_NEUTRAL) == "soft_spoken"
        assert self.engine.communication_style(["flirty", "confident"], TONE_ROMANTIC) == "sultry_romantic"
        assert self.engine.communication_style(["caring"], TONE_PLAYFUL) == DEFAULT_COMMUNICATION_STYLE

    def test_style_family(self):
        assert style_family("bashful_romantic") == "shy"
        assert style_family("energetic_spontaneous") == "chaotic"
        assert style_family(DEFAULT_COMMUNICATION_STYLE) is None

    def test_moods(self):
        assert self.engine.current_mood(["shy"], TONE_ROMANTIC) == "flustered"
        assert self.engine.current_mood(["flirty", "shy"], TONE_ROMANTIC) == "flirtatious"
        assert self.engine.current_mood(["chaotic"], TONE_PLAYFUL) == "energetic"
        assert self.engine.current_mood(["shy"], TONE_NEUTRAL) == "gentle"
        assert self.engine.current_mood([], TONE_NEUTRAL) == "content"

    def test_response_patterns_default(self):
        assert self.engine.response_patterns([], TONE_NEUTRAL) == ["conversational"]
        assert self.engine.response_patterns(["shy"], TONE_CURIOUS) == [
            "uses_hesitation",
            "soft_expressions",
            "asks_questions",
        ]

    def test_synthesized_backstory(self, shy_character):
        profile = self.engine.derive(shy_character, "Hello!")
        assert profile.background_story == (
            "Mika is a gentle, introverted soul who opens up slowly "
            "but cares deeply about the people close to her."
        )

    def test_explicit_backstory_wins(self, chaotic_character):
        profile = self.engine.derive(chaotic_character, "Hello!")
        assert profile.background_story == chaotic_character.backstory

    def test_default_backstory_uses_neutral_pronouns(self):
        character = CharacterConfig(id="sam", name="Sam", gender="nonbinary", personality_traits=["confident"])
        profile = self.engine.derive(character, "Hello!")
        assert profile.background_story.startswith("Sam is a self-assured person")

    def test_summary_fields(self, shy_character):
        profile = self.engine.derive(shy_character, "Hello!")
        assert profile.summary() == {
            "communication_style": "soft_spoken",
            "current_mood": "gentle",
            "adaptation_context": "casual",
        }
