"""Stability AI stable-image provider."""

import logging

import httpx

from companion_engine.services.provider_errors import (
    MalformedOutputError,
    TransientProviderError,
    classify_http_error,
)
from .base_provider import BaseImageProvider, ImageRequest, ImageResult, to_data_url

logger = logging.getLogger(__name__)


class StabilityImageProvider(BaseImageProvider):
    """
    Calls ``/v2beta/{model}`` with a multipart form and receives the image
    bytes directly (``Accept: image/*``).
    """

    provider_id = "stability-ai"
    display_name = "Stability AI"

    def build_form(self, request: ImageRequest) -> dict:
        # (None, value) tuples force multipart encoding without file parts
        form = {
            "prompt": (None, request.prompt),
            "negative_prompt": (None, request.negative_prompt),
            "aspect_ratio": (None, "1:1"),
            "output_format": (None, "png"),
        }
        if request.style_preset:
            form["style_preset"] = (None, request.style_preset)
        return form

    async def attempt(self, request: ImageRequest) -> ImageResult:
        try:
            response = await self.client.post(
                f"{self.base_url}/v2beta/{self.config.model}",
                files=self.build_form(request),
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Accept": "image/*",
                },
            )
        except httpx.HTTPError as e:
            raise TransientProviderError(f"Stability AI request failed: {e}", self.provider_id)

        if response.is_error:
            logger.error(f"[IMAGE] Stability AI error: {response.status_code} - {response.text[:300]}")
            raise classify_http_error(response, self.provider_id, self.display_name)

        if not response.content:
            raise MalformedOutputError("Stability AI returned an empty image", self.provider_id)

        content_type = response.headers.get("content-type", "image/png")
        return ImageResult(
            image_url=to_data_url(response.content, content_type),
            provider_id=self.provider_id,
            content_type=content_type,
        )
