"""Replicate predictions provider."""

import logging

import httpx

from companion_engine.services.provider_errors import (
    ContentPolicyError,
    MalformedOutputError,
    TransientProviderError,
    classify_http_error,
)
from .base_provider import BaseImageProvider, ImageRequest, ImageResult

logger = logging.getLogger(__name__)


class ReplicateImageProvider(BaseImageProvider):
    """
    Creates a prediction for a pinned model version. ``Prefer: wait`` keeps
    the request open until the prediction finishes, so the first output URL
    is available in the response.
    """

    provider_id = "replicate"
    display_name = "Replicate"

    scheduler = "K_EULER_ANCESTRAL"

    def build_payload(self, request: ImageRequest) -> dict:
        return {
            "version": self.config.model,
            "input": {
                "prompt": request.prompt,
                "negative_prompt": request.negative_prompt,
                "width": self.config.width,
                "height": self.config.height,
                "num_inference_steps": self.config.num_inference_steps,
                "guidance_scale": self.config.guidance_scale,
                "scheduler": self.scheduler,
            },
        }

    async def attempt(self, request: ImageRequest) -> ImageResult:
        try:
            response = await self.client.post(
                f"{self.base_url}/v1/predictions",
                json=self.build_payload(request),
                headers={
                    "Authorization": f"Token {self.api_key}",
                    "Prefer": "wait",
                },
            )
        except httpx.HTTPError as e:
            raise TransientProviderError(f"Replicate request failed: {e}", self.provider_id)

        if response.is_error:
            logger.error(f"[IMAGE] Replicate error: {response.status_code} - {response.text[:300]}")
            raise classify_http_error(response, self.provider_id, self.display_name)

        try:
            data = response.json()
        except ValueError:
            raise MalformedOutputError("Replicate returned a non-JSON body", self.provider_id)

        output = data.get("output")
        if isinstance(output, str):
            output = [output]
        if output and output[0]:
            return ImageResult(image_url=output[0], provider_id=self.provider_id)

        error = str(data.get("error") or data.get("detail") or "")
        if "nsfw" in error.lower():
            raise ContentPolicyError(f"Replicate flagged the prompt: {error}", self.provider_id)
        if data.get("status") == "failed":
            raise TransientProviderError(f"Replicate prediction failed: {error}", self.provider_id)
        raise MalformedOutputError(error or "Replicate returned no output", self.provider_id)
