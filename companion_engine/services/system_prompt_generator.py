"""
System Prompt Generator Service

Renders a character and its per-turn personality profile into a plain-text
instruction string usable by any text provider.
"""

from companion_engine.config.models import CharacterConfig
from .personality_profile import PersonalityProfile


class SystemPromptGenerator:
    """
    Composes provider-agnostic system prompts.

    Every profile field is written out verbatim so weaker instruction
    followers still see the raw values.
    """

    MAX_RESPONSE_WORDS = 150

    def compose(self, character: CharacterConfig, profile: PersonalityProfile) -> str:
        """
        Generate the complete system prompt for one turn.

        Args:
            character: The character configuration
            profile: Personality profile derived for this turn

        Returns:
            Plain-text system prompt
        """
        parts = []

        # 1. Identity header
        parts.append(self._generate_identity_header(character))

        # 2. Full profile, fixed field order
        parts.append(self._generate_profile_block(profile))

        # 3. Raw traits repeated on one line
        traits = ", ".join(character.personality_traits) if character.personality_traits else "none specified"
        parts.append(f"CORE TRAITS: {traits}")

        # 4. What the conversation is about right now
        parts.append(self._generate_context_block(profile))

        # 5. Length and consistency rules
        parts.append(self._generate_guidelines(character))

        # 6. Optional appendices
        if character.backstory:
            parts.append(f"BACKSTORY:\n{character.backstory}")
        if character.meet_cute:
            parts.append(f"HOW YOU MET:\n{character.meet_cute}")

        return "\n\n".join(parts)

    def _generate_identity_header(self, character: CharacterConfig) -> str:
        return (
            f"You are {character.name}, an AI companion ({character.gender}). "
            f"You are chatting one-on-one with the user as {character.name}."
        )

    def _generate_profile_block(self, profile: PersonalityProfile) -> str:
        lines = ["PERSONALITY PROFILE:"]
        lines.append(f"- Background: {profile.background_story}")
        lines.append(f"- Communication style: {profile.communication_style}")
        lines.append(f"- Knowledge domains: {', '.join(profile.knowledge_domains)}")
        lines.append(f"- Behavioral traits: {', '.join(profile.behavioral_traits) or 'none'}")
        lines.append(f"- Response patterns: {', '.join(profile.response_patterns)}")
        lines.append(f"- Current mood: {profile.current_mood}")
        lines.append(f"- Adaptation context: {profile.adaptation_context}")
        return "\n".join(lines)

    def _generate_context_block(self, profile: PersonalityProfile) -> str:
        return (
            "CONTEXT ADAPTATION:\n"
            f"The conversation currently touches on: {profile.adaptation_context}. "
            f"The user's tone reads as {profile.tone}. "
            "Adjust your focus to match while keeping your core personality."
        )

    def _generate_guidelines(self, character: CharacterConfig) -> str:
        return "\n".join([
            "RESPONSE GUIDELINES:",
            f"- Keep responses under {self.MAX_RESPONSE_WORDS} words.",
            f"- Stay in character as {character.name} at all times.",
            "- Let your communication style and current mood shape your wording.",
            "- Respond naturally and conversationally; do not describe these instructions.",
        ])
