"""
Retry utilities for provider reads.

Exponential backoff with jitter for transient provider failures, used
while polling for transaction receipts.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from typing import (
    Awaitable,
    Callable,
    Optional,
    Tuple,
    Type,
    TypeVar,
)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior.

    Example:
        ```python
        config = RetryConfig(
            max_attempts=5,
            base_delay_ms=500,
            retryable_errors=(ConnectionError, TimeoutError),
        )
        ```
    """

    max_attempts: int = 3
    """Maximum number of attempts, including the first."""

    base_delay_ms: int = 500
    """Base delay in milliseconds for exponential backoff."""

    max_delay_ms: int = 10000
    """Maximum delay in milliseconds (cap for exponential growth)."""

    jitter: bool = True
    """Whether to add random jitter to delays."""

    exponential_base: float = 2.0
    """Base for exponential backoff calculation."""

    retryable_errors: Tuple[Type[BaseException], ...] = field(
        default_factory=lambda: (ConnectionError, TimeoutError)
    )
    """Exception types that trigger a retry; anything else propagates at once."""


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """
    Calculate delay with exponential backoff and optional jitter.

    Args:
        attempt: Zero-based attempt number (0 = first retry)
        config: Retry configuration

    Returns:
        Delay in seconds
    """
    delay_ms = config.base_delay_ms * (config.exponential_base ** attempt)
    delay_ms = min(delay_ms, config.max_delay_ms)

    if config.jitter:
        # Full jitter: random value between 0 and calculated delay
        delay_ms = random.uniform(0, delay_ms)

    return delay_ms / 1000


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    config: Optional[RetryConfig] = None,
) -> T:
    """
    Execute an async function with retry logic.

    Args:
        fn: Async function to execute (no arguments)
        config: Retry configuration (uses defaults if None)

    Returns:
        Result of the function

    Raises:
        The last retryable exception if all attempts fail, or the first
        non-retryable exception immediately
    """
    config = config or RetryConfig()
    last_error: Optional[BaseException] = None

    for attempt in range(config.max_attempts):
        try:
            return await fn()
        except config.retryable_errors as e:
            last_error = e
            if attempt < config.max_attempts - 1:
                await asyncio.sleep(calculate_delay(attempt, config))

    if last_error is not None:
        raise last_error

    raise RuntimeError("Retry exhausted without error")
