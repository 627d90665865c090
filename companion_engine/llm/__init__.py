"""LLM integration layer."""

from .base import BaseLLMClient, LLMError, LLMResponse, TextGenerationRequest
from .client import create_llm_client, create_text_providers
from .huggingface import HuggingFaceLLMClient
from .openai import OpenAILLMClient

__all__ = [
    "BaseLLMClient",
    "HuggingFaceLLMClient",
    "LLMError",
    "LLMResponse",
    "OpenAILLMClient",
    "TextGenerationRequest",
    "create_llm_client",
    "create_text_providers",
]
