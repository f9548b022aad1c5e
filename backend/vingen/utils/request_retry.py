"""Shared retry utilities for sequence store transport calls using tenacity."""

from collections.abc import Callable
from dataclasses import dataclass

import redis.exceptions
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

# Transport failures; protocol and data errors are not retried
RETRYABLE_REDIS_ERRORS: tuple[type[BaseException], ...] = (
    redis.exceptions.ConnectionError,
    redis.exceptions.TimeoutError,
)


@dataclass
class RequestRetryConfig:
    """Configuration for store request retries with exponential backoff."""

    max_attempts: int = 3
    min_wait: float = 0.1
    max_wait: float = 2.0
    multiplier: float = 0.2


def get_request_retrying(
    config: RequestRetryConfig | None = None,
    *,
    before_sleep: Callable[[RetryCallState], None] | None = None,
) -> AsyncRetrying:
    """Get configured AsyncRetrying for Redis transport errors.

    Usage:
        async for attempt in get_request_retrying():
            with attempt:
                value = await client.incr(key)

    Args:
        config: Optional retry configuration. Uses defaults if not provided.
        before_sleep: Optional hook called before each retry wait.

    Returns:
        AsyncRetrying instance that re-raises the last error once attempts run out.
    """
    cfg = config or RequestRetryConfig()
    return AsyncRetrying(
        retry=retry_if_exception_type(RETRYABLE_REDIS_ERRORS),
        stop=stop_after_attempt(cfg.max_attempts),
        wait=wait_exponential(
            multiplier=cfg.multiplier,
            min=cfg.min_wait,
            max=cfg.max_wait,
        ),
        before_sleep=before_sleep,
        reraise=True,
    )
