"""
Per-turn personality profile derivation.

The profile is a pure function of the character's traits and backstory,
the current message and the recent history window. It is recomputed on
every turn and never stored.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Iterable, Optional

from companion_engine.config.models import CharacterConfig
from .keyword_context_detection import (
    ConversationContextDetector,
    TONE_CURIOUS,
    TONE_NEUTRAL,
    TONE_PLAYFUL,
    TONE_ROMANTIC,
    TONE_SUPPORTIVE,
)

logger = logging.getLogger(__name__)


# Trait precedence for communication style: first present trait wins.
STYLE_TRAITS = ("shy", "flirty", "confident", "chaotic")

COMMUNICATION_STYLES = {
    "shy": {
        TONE_ROMANTIC: "bashful_romantic",
        TONE_PLAYFUL: "shy_playful",
        TONE_SUPPORTIVE: "gentle_supportive",
        TONE_CURIOUS: "timid_curious",
        TONE_NEUTRAL: "soft_spoken",
    },
    "flirty": {
        TONE_ROMANTIC: "sultry_romantic",
        TONE_PLAYFUL: "playful_flirty",
        TONE_SUPPORTIVE: "tender_flirty",
        TONE_CURIOUS: "teasing_curious",
        TONE_NEUTRAL: "charming_flirty",
    },
    "confident": {
        TONE_ROMANTIC: "bold_romantic",
        TONE_PLAYFUL: "witty_confident",
        TONE_SUPPORTIVE: "assured_supportive",
        TONE_CURIOUS: "direct_curious",
        TONE_NEUTRAL: "assured_direct",
    },
    "chaotic": {
        TONE_ROMANTIC: "dramatic_romantic",
        TONE_PLAYFUL: "energetic_spontaneous",
        TONE_SUPPORTIVE: "earnest_chaotic",
        TONE_CURIOUS: "excited_curious",
        TONE_NEUTRAL: "energetic_spontaneous",
    },
}

DEFAULT_COMMUNICATION_STYLE = "warm_friendly"

TRAIT_RESPONSE_PATTERNS = {
    "shy": ["uses_hesitation", "soft_expressions"],
    "flirty": ["playful_teasing", "uses_pet_names"],
    "confident": ["direct_statements"],
    "chaotic": ["exclamations", "topic_jumps"],
    "caring": ["gentle_expression", "checks_in"],
    "mysterious": ["cryptic_hints"],
    "playful": ["playful_teasing"],
}

TONE_RESPONSE_PATTERNS = {
    TONE_ROMANTIC: ["romantic_language"],
    TONE_PLAYFUL: ["humor"],
    TONE_SUPPORTIVE: ["reassurance"],
    TONE_CURIOUS: ["asks_questions"],
}

DEFAULT_RESPONSE_PATTERN = "conversational"

BASE_KNOWLEDGE_DOMAINS = ["relationships", "everyday_life"]

TRAIT_KNOWLEDGE_DOMAINS = {
    "creative": ["arts", "creativity"],
    "caring": ["emotional_support"],
    "mysterious": ["mysteries", "philosophy"],
    "confident": ["leadership"],
    "playful": ["games", "humor"],
    "protective": ["safety"],
    "shy": ["books"],
    "flirty": ["romance"],
    "chaotic": ["adventure"],
}

CONTEXT_KNOWLEDGE_DOMAINS = {
    "emotional": ["emotional_wellbeing"],
    "educational": ["learning"],
    "aspirational": ["personal_growth"],
    "supportive": ["advice"],
    "playful": ["entertainment"],
}

CONTEXT_ADAPTATIONS = {
    "emotional": {"remove": ["chaotic"], "add": ["empathetic", "gentle"]},
    "playful": {"remove": [], "add": ["humorous", "spontaneous"]},
    "educational": {"remove": [], "add": ["patient", "encouraging"]},
}

BACKSTORY_TEMPLATES = {
    "shy": "{name} is a gentle, introverted soul who opens up slowly but cares deeply about the people close to {obj}.",
    "confident": "{name} is a self-assured {noun} who loves taking on new challenges and inspiring others to do the same.",
    "creative": "{name} is an imaginative spirit who finds art and stories in everything around {obj}.",
}

DEFAULT_BACKSTORY = "{name} is a warm, curious companion who enjoys getting to know new people and sharing everyday moments."

_GENDER_WORDS = {
    "male": {"obj": "him", "noun": "man"},
    "female": {"obj": "her", "noun": "woman"},
}
_NEUTRAL_WORDS = {"obj": "them", "noun": "person"}


def style_family(communication_style: str) -> Optional[str]:
    """Trait family a communication style belongs to (None for the default)."""
    for trait, styles in COMMUNICATION_STYLES.items():
        if communication_style in styles.values():
            return trait
    return None


def _dedupe(items: Iterable[str]) -> list[str]:
    result = []
    for item in items:
        if item not in result:
            result.append(item)
    return result


@dataclass
class PersonalityProfile:
    """Derived, per-turn personality descriptor."""
    background_story: str
    communication_style: str
    knowledge_domains: list[str]
    behavioral_traits: list[str]
    response_patterns: list[str]
    current_mood: str
    adaptation_context: str
    tone: str = TONE_NEUTRAL
    topic_contexts: list[str] = field(default_factory=list)

    def summary(self) -> dict:
        """Subset surfaced to callers with each response."""
        return {
            "communication_style": self.communication_style,
            "current_mood": self.current_mood,
            "adaptation_context": self.adaptation_context,
        }

    def to_dict(self) -> dict:
        return asdict(self)


class PersonalityProfileEngine:
    """
    Builds a PersonalityProfile from a character and the live conversation.

    Holds only the (stateless) keyword detector, so one instance can serve
    concurrent turns.
    """

    def __init__(self, detector: Optional[ConversationContextDetector] = None):
        self.detector = detector or ConversationContextDetector()

    def derive(
        self,
        character: CharacterConfig,
        message: str,
        history: Iterable[dict] = (),
    ) -> PersonalityProfile:
        """
        Derive the personality profile for one turn.

        Args:
            character: Character whose traits drive the profile
            message: Current user message
            history: Recent turns as {"role", "content"} dicts

        Returns:
            PersonalityProfile (never raises)
        """
        traits = list(character.personality_traits)
        signals = self.detector.detect(message, list(history))

        profile = PersonalityProfile(
            background_story=self.resolve_backstory(character),
            communication_style=self.communication_style(traits, signals.tone),
            knowledge_domains=self.knowledge_domains(traits, signals.tone, signals.topic_contexts),
            behavioral_traits=self.adapt_traits(traits, signals.topic_contexts),
            response_patterns=self.response_patterns(traits, signals.tone),
            current_mood=self.current_mood(traits, signals.tone),
            adaptation_context=", ".join(signals.topic_contexts),
            tone=signals.tone,
            topic_contexts=list(signals.topic_contexts),
        )
        logger.debug(
            f"[CHAT] Profile for {character.id}: style={profile.communication_style}, "
            f"mood={profile.current_mood}, context={profile.adaptation_context}"
        )
        return profile

    @staticmethod
    def communication_style(traits: list[str], tone: str) -> str:
        for trait in STYLE_TRAITS:
            if trait in traits:
                return COMMUNICATION_STYLES[trait][tone]
        return DEFAULT_COMMUNICATION_STYLE

    @staticmethod
    def adapt_traits(traits: list[str], topic_contexts: list[str]) -> list[str]:
        """Apply topic-driven additions; emotional context drops 'chaotic'."""
        adapted = list(traits)
        for context, change in CONTEXT_ADAPTATIONS.items():
            if context not in topic_contexts:
                continue
            adapted = [t for t in adapted if t not in change["remove"]]
            adapted.extend(change["add"])
        return _dedupe(adapted)

    @staticmethod
    def response_patterns(traits: list[str], tone: str) -> list[str]:
        patterns = []
        for trait, trait_patterns in TRAIT_RESPONSE_PATTERNS.items():
            if trait in traits:
                patterns.extend(trait_patterns)
        patterns.extend(TONE_RESPONSE_PATTERNS.get(tone, []))
        return _dedupe(patterns) or [DEFAULT_RESPONSE_PATTERN]

    @staticmethod
    def current_mood(traits: list[str], tone: str) -> str:
        if tone == TONE_ROMANTIC:
            if "flirty" in traits:
                return "flirtatious"
            if "shy" in traits:
                return "flustered"
            return "affectionate"
        if tone == TONE_PLAYFUL:
            return "energetic" if "chaotic" in traits else "cheerful"
        if tone == TONE_SUPPORTIVE:
            if "caring" in traits or "protective" in traits:
                return "caring"
            return "gentle"
        if tone == TONE_CURIOUS:
            return "energetic" if "chaotic" in traits else "curious"
        if "chaotic" in traits:
            return "energetic"
        if "shy" in traits:
            return "gentle"
        return "content"

    @staticmethod
    def knowledge_domains(traits: list[str], tone: str, topic_contexts: list[str]) -> list[str]:
        domains = list(BASE_KNOWLEDGE_DOMAINS)
        for trait, trait_domains in TRAIT_KNOWLEDGE_DOMAINS.items():
            if trait in traits:
                domains.extend(trait_domains)
        for context in topic_contexts:
            domains.extend(CONTEXT_KNOWLEDGE_DOMAINS.get(context, []))
        if tone == TONE_ROMANTIC:
            domains.append("romance")
        return _dedupe(domains)

    @staticmethod
    def resolve_backstory(character: CharacterConfig) -> str:
        """Character's own backstory, or one synthesized sentence."""
        if character.backstory:
            return character.backstory

        words = _GENDER_WORDS.get(character.gender, _NEUTRAL_WORDS)
        template = DEFAULT_BACKSTORY
        for trait, trait_template in BACKSTORY_TEMPLATES.items():
            if trait in character.personality_traits:
                template = trait_template
                break
        return template.format(name=character.name, **words)
