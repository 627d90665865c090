"""Hugging Face Inference API client for completion-style chat models."""

import logging

import httpx

from companion_engine.services.provider_errors import (
    MalformedOutputError,
    TransientProviderError,
    classify_http_error,
)
from .base import BaseLLMClient, LLMError, LLMResponse, TextGenerationRequest
from .text_normalization import clean_generated_text

logger = logging.getLogger(__name__)


class HuggingFaceLLMClient(BaseLLMClient):
    """
    Client for the hosted Hugging Face inference endpoint.

    Conversational models there take a single text input, so the history
    is rendered as a "Human:" / "<Name>:" transcript ending with an open
    "<Name>:" line. The completion is cleaned of echoed labels before it
    is accepted.
    """

    provider_id = "huggingface"
    display_name = "Hugging Face"

    @property
    def model_label(self) -> str:
        return "huggingface-dialogpt" if "DialoGPT" in self.model else f"huggingface-{self.model}"

    def build_prompt(self, request: TextGenerationRequest) -> str:
        """Render the system prompt and recent turns as a transcript."""
        lines = []
        for turn in self.recent_history(request.history):
            speaker = "Human" if turn["role"] == "user" else request.character_name
            lines.append(f"{speaker}: {turn['content']}")

        transcript = "\n".join(lines)
        if transcript:
            transcript += "\n"
        return (
            f"{request.system_prompt}\n\n"
            f"Conversation:\n{transcript}"
            f"Human: {request.message}\n"
            f"{request.character_name}:"
        )

    def build_payload(self, request: TextGenerationRequest) -> dict:
        return {
            "inputs": self.build_prompt(request),
            "parameters": {
                "max_new_tokens": self.max_tokens,
                "temperature": self.temperature,
                "do_sample": True,
                "return_full_text": False,
            },
            "options": {
                "wait_for_model": True,
                "use_cache": False,
            },
        }

    @staticmethod
    def extract_generated_text(data) -> str:
        """Pull ``generated_text`` out of the list or object response shape."""
        if isinstance(data, list) and data and isinstance(data[0], dict):
            return data[0].get("generated_text") or ""
        if isinstance(data, dict):
            if "generated_text" in data:
                return data.get("generated_text") or ""
            if data.get("error"):
                raise TransientProviderError(f"Hugging Face error: {data['error']}", "huggingface")
        raise MalformedOutputError("Unexpected response format from Hugging Face", "huggingface")

    async def attempt(self, request: TextGenerationRequest) -> LLMResponse:
        try:
            response = await self.client.post(
                f"{self.base_url}/models/{self.model}",
                json=self.build_payload(request),
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as e:
            raise LLMError(f"HTTP error during LLM generation: {e}", self.provider_id)

        if response.is_error:
            logger.error(f"[CHAT] Hugging Face error response ({response.status_code}): {response.text[:300]}")
            raise classify_http_error(response, self.provider_id, self.display_name)

        try:
            data = response.json()
        except ValueError:
            raise MalformedOutputError("Hugging Face returned a non-JSON body", self.provider_id)

        raw = self.extract_generated_text(data)
        content = clean_generated_text(raw, request.character_name)
        if len(content) < self.min_response_chars:
            logger.debug(f"[CHAT] Hugging Face output rejected after cleanup: {raw!r}")
            raise MalformedOutputError("Generated response too short", self.provider_id)

        return LLMResponse(content=content, model=self.model, finish_reason=None)
