"""
Portrait generation orchestrator.

Tries each configured image provider in order (timeout and retry per
provider) and falls back to a curated reference image keyed by gender and
art style. Character creation never fails because of image generation, so
every outcome reports success.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from companion_engine.config.models import ImageGenerationConfig
from .image.base_provider import BaseImageProvider
from .image_prompt_service import ImagePromptService, PortraitRequest
from .provider_errors import ContentPolicyError, ProviderError
from .resilience import Sleeper, with_retry

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    "Character created with curated reference image. "
    "AI image generation temporarily unavailable."
)
FALLBACK_REASON = "All AI APIs failed or not configured"


@dataclass
class PortraitOutcome:
    """Result of a portrait request."""
    success: bool
    image_url: str
    fallback: bool
    model_used: Optional[str] = None
    message: Optional[str] = None
    error_details: Optional[str] = None
    prompt_used: Optional[str] = None
    fallback_reason: Optional[str] = None
    content_policy_flagged: bool = False
    attempts: list[dict] = field(default_factory=list)


class ImageGenerationOrchestrator:
    """
    Orchestrates portrait generation across hosted providers.

    Coordinates:
    - Prompt building
    - Provider fallback with retry
    - Curated asset fallback
    """

    def __init__(
        self,
        config: ImageGenerationConfig,
        providers: list[BaseImageProvider],
        prompt_service: Optional[ImagePromptService] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        """
        Initialize orchestrator.

        Args:
            config: Image generation configuration (curated asset table)
            providers: Providers in priority order
            prompt_service: Prompt builder
            sleep: Backoff delay function
        """
        self.config = config
        self.providers = providers
        self.prompt_service = prompt_service or ImagePromptService()
        self.sleep = sleep

        logger.info(f"Image generation orchestrator initialized with {len(providers)} providers")

    def curated_image(self, gender: str, art_style: str) -> str:
        """Curated asset for (gender, art_style); unknown genders use the default row."""
        images = self.config.fallback_images
        row = images.get((gender or "").lower()) or images[self.config.default_gender]
        return row.get((art_style or "").lower()) or row["default"]

    async def generate_portrait(self, portrait: PortraitRequest) -> PortraitOutcome:
        """
        Generate a portrait, falling back to a curated image.

        Args:
            portrait: Character attributes

        Returns:
            PortraitOutcome (success is always True)
        """
        image_request = self.prompt_service.build(portrait)
        reasons: list[str] = []
        attempts: list[dict] = []
        flagged = False

        for provider in self.providers:
            if not provider.is_configured():
                reason = f"{provider.display_name} API key not configured"
                logger.info(f"[IMAGE] Skipping {provider.provider_id}: {reason}")
                reasons.append(reason)
                attempts.append({"provider_id": provider.provider_id, "elapsed_ms": 0, "success": False, "error": reason})
                continue

            started = time.perf_counter()
            logger.info(f"[IMAGE] Trying {provider.display_name} for {portrait.name}")
            try:
                result = await with_retry(
                    lambda: provider.attempt(image_request),
                    provider.retry_policy,
                    provider.provider_id,
                    sleep=self.sleep,
                )
            except ContentPolicyError as e:
                flagged = True
                reason = f"{provider.display_name} content policy: {e}"
                logger.warning(f"[IMAGE] {reason}")
            except ProviderError as e:
                reason = f"{provider.display_name} API error: {e}"
                logger.warning(f"[IMAGE] {reason}")
            except Exception as e:
                reason = f"{provider.display_name} API error: {e}"
                logger.error(f"[IMAGE] Unexpected failure in {provider.provider_id}: {e}", exc_info=True)
            else:
                elapsed_ms = int((time.perf_counter() - started) * 1000)
                attempts.append({"provider_id": provider.provider_id, "elapsed_ms": elapsed_ms, "success": True})
                logger.info(f"[IMAGE] Generated portrait with {provider.display_name} in {elapsed_ms}ms")
                return PortraitOutcome(
                    success=True,
                    image_url=result.image_url,
                    fallback=False,
                    model_used=provider.provider_id,
                    prompt_used=image_request.prompt,
                    content_policy_flagged=flagged,
                    attempts=attempts,
                )

            reasons.append(reason)
            attempts.append({
                "provider_id": provider.provider_id,
                "elapsed_ms": int((time.perf_counter() - started) * 1000),
                "success": False,
                "error": reason,
            })

        image_url = self.curated_image(portrait.gender, portrait.art_style)
        logger.info(f"[IMAGE] Using curated image for {portrait.gender}/{portrait.art_style}: {image_url}")
        return PortraitOutcome(
            success=True,
            image_url=image_url,
            fallback=True,
            message=FALLBACK_MESSAGE,
            error_details="; ".join(reasons) or "No image providers configured",
            fallback_reason=FALLBACK_REASON,
            content_policy_flagged=flagged,
            attempts=attempts,
        )

    async def close(self) -> None:
        for provider in self.providers:
            await provider.close()
