"""Keyword-based tone and topic detection for chat turns.

Runs synchronously on every turn, so it is plain regex matching over the
current message plus the recent history window. Keywords match at word
starts with a short list of inflections ("feel" matches "feeling" but
"hi" never matches "this").
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable

logger = logging.getLogger(__name__)


TONE_ROMANTIC = "romantic"
TONE_PLAYFUL = "playful"
TONE_SUPPORTIVE = "supportive"
TONE_CURIOUS = "curious"
TONE_NEUTRAL = "neutral"

TONES = (TONE_ROMANTIC, TONE_PLAYFUL, TONE_SUPPORTIVE, TONE_CURIOUS, TONE_NEUTRAL)

DEFAULT_CONTEXT = "casual"


def _keyword_pattern(keywords: Iterable[str]) -> re.Pattern:
    alternatives = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"\b(?:{alternatives})(?:s|es|d|ed|ing|ly|y|ful)?\b")


@dataclass
class ConversationSignals:
    """Result of tone and topic detection."""
    tone: str = TONE_NEUTRAL
    topic_contexts: list[str] = field(default_factory=lambda: [DEFAULT_CONTEXT])


class ConversationContextDetector:
    """Detects the dominant tone and the topic contexts of a turn."""

    # Checked in order; first match wins. Curious is handled separately.
    TONE_KEYWORDS = {
        TONE_ROMANTIC: ['love', 'feel', 'heart'],
        TONE_PLAYFUL: ['haha', 'funny', 'joke'],
        TONE_SUPPORTIVE: ['sad', 'worried', 'problem'],
    }

    QUESTION_WORDS = ['what', 'why', 'how', 'when', 'where', 'who', 'which']

    # Not mutually exclusive
    TOPIC_KEYWORDS = {
        "emotional": ['sad', 'worried', 'feel', 'upset', 'lonely', 'anxious', 'cry', 'hurt', 'heart'],
        "playful": ['haha', 'lol', 'funny', 'joke', 'game', 'play', 'fun'],
        "educational": ['learn', 'study', 'teach', 'explain', 'school', 'homework', 'understand'],
        "aspirational": ['dream', 'goal', 'hope', 'future', 'ambition', 'plan', 'wish'],
        "supportive": ['help', 'problem', 'worried', 'support', 'advice', 'struggling', 'stress'],
    }

    def __init__(self):
        self._tone_patterns = {
            tone: _keyword_pattern(words) for tone, words in self.TONE_KEYWORDS.items()
        }
        self._question_pattern = re.compile(
            r"\b(?:" + "|".join(self.QUESTION_WORDS) + r")\b"
        )
        self._topic_patterns = {
            topic: _keyword_pattern(words) for topic, words in self.TOPIC_KEYWORDS.items()
        }

    @staticmethod
    def combined_text(message: str, history: Iterable[dict]) -> str:
        """Lower-cased message plus the content of each history turn."""
        parts = [message or ""]
        parts.extend(turn.get("content") or "" for turn in history)
        return "\n".join(parts).lower()

    def detect_tone(self, text: str) -> str:
        for tone, pattern in self._tone_patterns.items():
            if pattern.search(text):
                return tone
        if "?" in text or self._question_pattern.search(text):
            return TONE_CURIOUS
        return TONE_NEUTRAL

    def detect_topics(self, text: str) -> list[str]:
        topics = [topic for topic, pattern in self._topic_patterns.items() if pattern.search(text)]
        return topics or [DEFAULT_CONTEXT]

    def detect(self, message: str, history: Iterable[dict] = ()) -> ConversationSignals:
        """Detect tone and topic contexts.

        Args:
            message: Current user message
            history: Recent turns as {"role", "content"} dicts

        Returns:
            ConversationSignals with exactly one tone and at least one topic
        """
        text = self.combined_text(message, history)
        signals = ConversationSignals(
            tone=self.detect_tone(text),
            topic_contexts=self.detect_topics(text),
        )
        logger.debug(f"[CHAT] Detected tone={signals.tone}, topics={signals.topic_contexts}")
        return signals
