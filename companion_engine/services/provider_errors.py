"""
Provider error taxonomy shared by the text, image and speech chains.

Every remote adapter translates transport and payload failures into one of
these, so the fallback chains can decide between skipping, retrying and
moving on without branching on provider identity.
"""

from typing import Optional

import httpx


class ProviderError(Exception):
    """Base exception for remote provider failures."""

    retryable = True

    def __init__(self, message: str, provider_id: Optional[str] = None):
        super().__init__(message)
        self.provider_id = provider_id


class ConfigurationError(ProviderError):
    """Provider credentials or settings are missing or rejected."""

    retryable = False


class ProviderTimeoutError(ProviderError):
    """Attempt exceeded its wall-clock budget."""
    pass


class TransientProviderError(ProviderError):
    """Non-2xx response or unusable payload; worth retrying."""
    pass


class MalformedOutputError(TransientProviderError):
    """Success status but empty or too-short output."""
    pass


class ContentPolicyError(ProviderError):
    """Provider explicitly refused the content."""

    retryable = False


_CONTENT_POLICY_MARKERS = (
    "content_policy",
    "content policy",
    "content_filter",
    "safety system",
    "nsfw",
)


def classify_http_error(response: httpx.Response, provider_id: str, label: str) -> ProviderError:
    """
    Map a non-2xx provider response onto the error taxonomy.

    Args:
        response: The failed HTTP response
        provider_id: Identifier of the provider that produced it
        label: Human-readable provider name used in the message

    Returns:
        The matching ProviderError subclass instance (not raised)
    """
    status = response.status_code
    try:
        body = response.text[:500]
    except httpx.ResponseNotRead:
        body = ""

    if status in (401, 403):
        return ConfigurationError(
            f"{label} rejected the credentials ({status})", provider_id
        )

    lowered = body.lower()
    if status in (400, 422) and any(marker in lowered for marker in _CONTENT_POLICY_MARKERS):
        return ContentPolicyError(
            f"{label} refused the content ({status}): {body}", provider_id
        )

    return TransientProviderError(f"{label} returned {status}: {body}", provider_id)
