"""Timeout and exponential backoff helpers for remote provider calls."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from companion_engine.config.models import RetrySettings
from .provider_errors import (
    ProviderError,
    ProviderTimeoutError,
    TransientProviderError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleeper = Callable[[float], Awaitable[None]]


async def call_with_timeout(
    operation: Callable[[], Awaitable[T]],
    timeout_seconds: float,
    provider_id: str,
) -> T:
    """
    Await one provider call with a hard wall-clock budget.

    On timeout the call is abandoned and its late result discarded.

    Raises:
        ProviderTimeoutError: If the budget is exceeded
    """
    try:
        return await asyncio.wait_for(operation(), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        raise ProviderTimeoutError(
            f"Operation timeout after {timeout_seconds:g}s", provider_id
        )


def backoff_delay(policy: RetrySettings, attempt: int) -> float:
    """Delay before retry number ``attempt + 1`` (base doubled each attempt)."""
    return policy.base_delay_seconds * (2 ** attempt)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetrySettings,
    provider_id: str,
    sleep: Sleeper = asyncio.sleep,
) -> T:
    """
    Run a timeout-wrapped provider call with exponential backoff.

    Non-retryable errors (configuration, content policy) are raised
    immediately. Anything else is retried up to ``policy.max_retries``
    times; the last error is raised once retries are exhausted.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        policy: Timeout, retry count and base delay
        provider_id: Provider identifier for error tagging and logs
        sleep: Delay function (injectable for tests)

    Returns:
        The first successful result

    Raises:
        ProviderError: The last failure after retries are exhausted
    """
    last_error: ProviderError = TransientProviderError("No attempt made", provider_id)

    for attempt in range(policy.max_retries + 1):
        try:
            return await call_with_timeout(operation, policy.timeout_seconds, provider_id)
        except ProviderError as e:
            if not e.retryable:
                raise
            last_error = e
        except Exception as e:
            last_error = TransientProviderError(str(e) or type(e).__name__, provider_id)

        if attempt == policy.max_retries:
            break

        delay = backoff_delay(policy, attempt)
        logger.warning(
            f"[RETRY] {provider_id} attempt {attempt + 1}/{policy.max_retries + 1} failed: "
            f"{last_error}; retrying in {delay:.1f}s"
        )
        await sleep(delay)

    raise last_error
