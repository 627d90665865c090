"""Hugging Face inference text-to-image provider."""

import logging

import httpx

from companion_engine.services.provider_errors import (
    MalformedOutputError,
    TransientProviderError,
    classify_http_error,
)
from .base_provider import BaseImageProvider, ImageRequest, ImageResult, to_data_url

logger = logging.getLogger(__name__)


class HuggingFaceImageProvider(BaseImageProvider):
    """Returns raw image bytes on success, a JSON ``error`` otherwise."""

    provider_id = "hugging-face"
    display_name = "Hugging Face"

    def build_payload(self, request: ImageRequest) -> dict:
        return {
            "inputs": request.prompt,
            "parameters": {
                "num_inference_steps": self.config.num_inference_steps,
                "guidance_scale": self.config.guidance_scale,
                "width": self.config.width,
                "height": self.config.height,
                "negative_prompt": request.negative_prompt,
            },
        }

    async def attempt(self, request: ImageRequest) -> ImageResult:
        try:
            response = await self.client.post(
                f"{self.base_url}/models/{self.config.model}",
                json=self.build_payload(request),
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as e:
            raise TransientProviderError(f"Hugging Face request failed: {e}", self.provider_id)

        if response.is_error:
            logger.error(f"[IMAGE] Hugging Face error: {response.status_code} - {response.text[:300]}")
            raise classify_http_error(response, self.provider_id, self.display_name)

        content_type = response.headers.get("content-type", "")
        if "image" in content_type:
            if not response.content:
                raise MalformedOutputError("Hugging Face returned an empty image", self.provider_id)
            return ImageResult(
                image_url=to_data_url(response.content, content_type),
                provider_id=self.provider_id,
                content_type=content_type,
            )

        try:
            data = response.json()
        except ValueError:
            raise MalformedOutputError(
                f"Unexpected content type from Hugging Face: {content_type or 'none'}", self.provider_id
            )
        message = data.get("error") if isinstance(data, dict) else None
        raise TransientProviderError(message or "Unknown error from Hugging Face API", self.provider_id)
