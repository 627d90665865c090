"""
Local template response generator.

Last stage of the chat fallback chain: keyword-driven, personality-aware
replies that need no network and cannot fail. The only randomness is the
filler choice and the trailing flourish, both drawn from an injected
``random.Random``.
"""

import random
import re
from typing import Optional

from companion_engine.config.models import CharacterConfig
from .personality_profile import PersonalityProfile, style_family

GREETING_PATTERN = re.compile(r"\b(?:hello|hi|hey)\b")
AFFECTION_PATTERN = re.compile(r"\b(?:love|loved|loving|care|cares|caring)\b")
DISTRESS_PATTERN = re.compile(r"\b(?:sad|worried|problem|problems)\b")

GREETINGS = {
    "shy": "H-hi there... I'm {name}. It's nice to talk to you, though I'm a bit nervous...",
    "flirty": "Well hello there, gorgeous~ I'm {name}, and I've been waiting for someone like you...",
    "confident": "Hey! I'm {name}. Great to see you, I have a feeling we're going to get along really well.",
    "chaotic": "OMG HI!!! I'm {name} and I'm SO excited to talk to you! What should we talk about first?",
}
DEFAULT_GREETING = "Hi there! I'm {name}. It's so good to hear from you!"

AFFECTION_REPLIES = {
    "flustered": "O-oh! You... you really mean that? That makes me really happy... *blushes*",
    "flirtatious": "Mmm, I like you too~ Maybe even more than you realize... Want to find out how much?",
    "energetic": "AAAA that makes my heart want to EXPLODE!!! I feel the same way!",
    "caring": "That means so much to me! I care about you too, more than you know.",
    "affectionate": "That means so much to me! I feel the same way about you... it's special, isn't it?",
}
DEFAULT_AFFECTION = "That's really sweet of you to say. It means a lot to me."

DISTRESS_EMPATHETIC = (
    "I'm so sorry you're going through that. I'm right here with you, "
    "do you want to tell me what's weighing on you?"
)
DISTRESS_PROTECTIVE = (
    "Hey, nobody gets to make you feel like that. Tell me what's going on "
    "and we'll figure it out together."
)
DISTRESS_GENERIC = "That sounds hard. I'm here to listen if you want to talk about it."

FILLER_POOLS = {
    "playful_teasing": [
        "Oh, is that so? You're full of surprises, aren't you~",
        "Hmm, I can't tell if you're being serious or just trying to make me smile.",
        "You always know how to keep me on my toes!",
    ],
    "gentle_expression": [
        "I really like hearing your thoughts. Take your time, I'm listening.",
        "That's such a thoughtful way to see it. How are you feeling about it?",
        "Thank you for sharing that with me, it means a lot.",
    ],
    "exclamations": [
        "Wait, that's AMAZING! Tell me everything!",
        "Okay okay okay, that is so cool!!",
        "No way! That reminds me of something totally random...",
    ],
    "cryptic_hints": [
        "Interesting... there's always more beneath the surface, isn't there?",
        "Some things are clearer when you don't look at them directly.",
        "Hmm. I have a feeling there's more you're not saying.",
    ],
}
NEUTRAL_POOL = [
    "That's really interesting! Tell me more about that.",
    "You always have such fascinating thoughts.",
    "I love talking with you about these things.",
    "You know, every conversation with you teaches me something new!",
    "That's such a unique perspective. I really appreciate how thoughtful you are.",
]

# Checked in order; first pattern present picks the pool.
POOL_PRECEDENCE = (
    ("playful_teasing", "playful_teasing"),
    ("exclamations", "exclamations"),
    ("cryptic_hints", "cryptic_hints"),
    ("gentle_expression", "gentle_expression"),
    ("soft_expressions", "gentle_expression"),
)

FLOURISH_PROBABILITIES = (
    ("exclamations", 0.5),
    ("playful_teasing", 0.4),
    ("uses_hesitation", 0.3),
)
DEFAULT_FLOURISH_PROBABILITY = 0.2

MOOD_FLOURISHES = {
    "flirtatious": " You're so charming~ 💕",
    "flustered": " *smiles softly*",
    "affectionate": " 💕",
    "cheerful": " 😊",
    "energetic": " ✨",
    "caring": " 🤗",
    "gentle": " *smiles softly*",
    "curious": " 🤔",
    "content": " 😊",
}
DEFAULT_FLOURISH = " 😊"


class TemplateResponseGenerator:
    """Keyword cascade: greeting, affection, distress, then a filler pool."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def synthesize(self, message: str, character: CharacterConfig, profile: PersonalityProfile) -> str:
        """
        Produce a reply without any remote call.

        Args:
            message: Current user message
            character: Character being voiced
            profile: Personality profile derived for this turn

        Returns:
            Non-empty reply text
        """
        text = (message or "").lower()

        if GREETING_PATTERN.search(text):
            family = style_family(profile.communication_style)
            reply = GREETINGS.get(family, DEFAULT_GREETING).format(name=character.name)
        elif AFFECTION_PATTERN.search(text):
            reply = AFFECTION_REPLIES.get(profile.current_mood, DEFAULT_AFFECTION)
        elif DISTRESS_PATTERN.search(text):
            reply = self._distress_reply(profile)
        else:
            reply = self.rng.choice(self._filler_pool(profile))

        return reply + self._flourish(profile)

    @staticmethod
    def _distress_reply(profile: PersonalityProfile) -> str:
        if "empathetic" in profile.behavioral_traits:
            return DISTRESS_EMPATHETIC
        if "protective" in profile.behavioral_traits:
            return DISTRESS_PROTECTIVE
        return DISTRESS_GENERIC

    @staticmethod
    def _filler_pool(profile: PersonalityProfile) -> list[str]:
        for pattern, pool in POOL_PRECEDENCE:
            if pattern in profile.response_patterns:
                return FILLER_POOLS[pool]
        return NEUTRAL_POOL

    def _flourish(self, profile: PersonalityProfile) -> str:
        probability = DEFAULT_FLOURISH_PROBABILITY
        for pattern, pattern_probability in FLOURISH_PROBABILITIES:
            if pattern in profile.response_patterns:
                probability = pattern_probability
                break

        if self.rng.random() < probability:
            return MOOD_FLOURISHES.get(profile.current_mood, DEFAULT_FLOURISH)
        return ""
