"""OpenAI-compatible chat completions client."""

import logging

import httpx

from companion_engine.services.provider_errors import (
    ContentPolicyError,
    MalformedOutputError,
    classify_http_error,
)
from .base import BaseLLMClient, LLMError, LLMResponse, TextGenerationRequest
from .text_normalization import normalize_mojibake

logger = logging.getLogger(__name__)


class OpenAILLMClient(BaseLLMClient):
    """
    Client for hosted OpenAI-compatible ``/v1/chat/completions`` endpoints.

    Sends the composed system prompt, the recent history window and the
    user message as a chat array. Refusals (``content_filter`` finish
    reason or a content-policy error code) surface as ContentPolicyError.
    """

    provider_id = "openai"
    display_name = "OpenAI"

    presence_penalty = 0.6
    frequency_penalty = 0.3

    @property
    def model_label(self) -> str:
        return f"openai-{self.model}"

    def build_payload(self, request: TextGenerationRequest) -> dict:
        """Build the chat completions request body."""
        messages = [{"role": "system", "content": request.system_prompt}]
        messages.extend(self.recent_history(request.history))
        messages.append({"role": "user", "content": request.message})

        return {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "presence_penalty": self.presence_penalty,
            "frequency_penalty": self.frequency_penalty,
        }

    async def attempt(self, request: TextGenerationRequest) -> LLMResponse:
        payload = self.build_payload(request)
        logger.debug(
            f"[CHAT] OpenAI request: model={self.model}, messages={len(payload['messages'])}, "
            f"max_tokens={self.max_tokens}"
        )

        try:
            response = await self.client.post(
                f"{self.base_url}/v1/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as e:
            raise LLMError(f"HTTP error during LLM generation: {e}", self.provider_id)

        if response.is_error:
            logger.error(f"[CHAT] OpenAI error response ({response.status_code}): {response.text[:300]}")
            raise classify_http_error(response, self.provider_id, self.display_name)

        try:
            data = response.json()
        except ValueError:
            raise MalformedOutputError("OpenAI returned a non-JSON body", self.provider_id)

        choices = data.get("choices") or [{}]
        choice = choices[0]
        finish_reason = choice.get("finish_reason")
        if finish_reason == "content_filter":
            raise ContentPolicyError("OpenAI content filter blocked the response", self.provider_id)

        content = normalize_mojibake((choice.get("message") or {}).get("content") or "").strip()
        if len(content) < self.min_response_chars:
            raise MalformedOutputError("OpenAI returned an empty response", self.provider_id)

        return LLMResponse(
            content=content,
            model=data.get("model", self.model),
            finish_reason=finish_reason,
        )
