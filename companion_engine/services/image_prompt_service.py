"""
Portrait prompt generation service.

Builds a style-specific text-to-image prompt from a character's appearance
and personality. Purely template driven; no model call.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from companion_engine.config.models import CharacterConfig
from .image.base_provider import ImageRequest

logger = logging.getLogger(__name__)


@dataclass
class StyleTemplate:
    """Vocabulary for one art style."""
    prefix: str
    details: str
    quality_tags: str
    style_preset: Optional[str] = None


STYLE_TEMPLATES = {
    "anime": StyleTemplate(
        prefix="anime style, manga style, cel shaded",
        details="large expressive eyes, vibrant colors, soft cel-shading, clean line art, anime proportions, detailed hair",
        quality_tags="high quality anime art, studio quality, detailed anime illustration, masterpiece",
        style_preset="anime",
    ),
    "3d": StyleTemplate(
        prefix="3d render, digital art, cgi",
        details="realistic 3d rendering, soft lighting, detailed textures, smooth surfaces, professional 3d modeling",
        quality_tags="high quality 3d render, octane render, unreal engine, photorealistic 3d, masterpiece",
        style_preset="3d-model",
    ),
    "comic": StyleTemplate(
        prefix="comic book style, western comic art",
        details="bold clean line art, dynamic poses, strong contrast, vibrant colors, comic book shading, detailed costume design",
        quality_tags="high quality comic art, professional comic illustration, masterpiece",
        style_preset="comic-book",
    ),
    "realistic": StyleTemplate(
        prefix="photorealistic, realistic portrait, digital painting",
        details="natural human proportions, realistic skin textures, detailed facial features, natural lighting, lifelike detail",
        quality_tags="photorealistic, high resolution, professional portrait, detailed realistic art, masterpiece",
        style_preset="photographic",
    ),
}

DEFAULT_STYLE = StyleTemplate(
    prefix="digital art, illustration",
    details="professional artistic quality, appealing character design, vibrant colors",
    quality_tags="high quality digital art, professional illustration, masterpiece",
)

NEGATIVE_PROMPT = (
    "low quality, blurry, distorted, deformed, ugly, bad anatomy, extra limbs, missing limbs, "
    "extra fingers, missing fingers, text, watermark, signature, logo, multiple people, nsfw, "
    "nude, naked, inappropriate, bad hands, malformed hands, duplicate, cropped, out of frame, "
    "worst quality, low resolution, pixelated"
)


@dataclass
class PortraitRequest:
    """Character attributes a portrait is generated from."""
    name: str
    gender: str = "nonbinary"
    height: str = "average"
    build: str = "slim"
    eye_color: str = "brown"
    hair_color: str = "brown"
    skin_tone: str = "fair"
    personality_traits: list[str] = field(default_factory=list)
    art_style: str = "anime"

    @classmethod
    def from_character(cls, character: CharacterConfig) -> "PortraitRequest":
        appearance = character.appearance
        return cls(
            name=character.name,
            gender=character.gender,
            height=appearance.height,
            build=appearance.build,
            eye_color=appearance.eye_color,
            hair_color=appearance.hair_color,
            skin_tone=appearance.skin_tone,
            personality_traits=list(character.personality_traits),
            art_style=character.art_style,
        )


class ImagePromptService:
    """Renders PortraitRequests into provider-ready ImageRequests."""

    def expression_clause(self, traits: list[str]) -> str:
        """Personality-derived expression from the first three traits."""
        if not traits:
            return "friendly and approachable expression"
        return f"{', '.join(traits[:3])} personality, expressive face showing {traits[0]} traits"

    def build(self, portrait: PortraitRequest) -> ImageRequest:
        """
        Build the prompt set for a portrait.

        Args:
            portrait: Appearance, traits and art style

        Returns:
            ImageRequest with prompt, negative prompt and style preset
        """
        style = STYLE_TEMPLATES.get(portrait.art_style.lower(), DEFAULT_STYLE)
        prompt = (
            f"{style.prefix}, portrait of a {portrait.gender} character, "
            f"{portrait.height} height, {portrait.build} build, {portrait.eye_color} eyes, "
            f"{portrait.hair_color} hair, {portrait.skin_tone} skin, "
            f"{self.expression_clause(portrait.personality_traits)}, {style.details}, "
            f"upper body shot, centered composition, soft background, {style.quality_tags}"
        )
        logger.debug(f"[IMAGE] Prompt for {portrait.name} ({portrait.art_style}): {prompt[:120]}...")
        return ImageRequest(
            prompt=prompt,
            negative_prompt=NEGATIVE_PROMPT,
            style_preset=style.style_preset,
        )
