"""Distributed sequence store on Redis atomic counters.

INCR is atomic on the server, so any number of independent instances can
allocate from the same prefix without client-side locking. Only the four
commands INCR, GET, SET and KEYS are used; any server offering them with an
atomic INCR can stand in for Redis.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis
import structlog
from redis.exceptions import TimeoutError as RedisTimeoutError
from tenacity import RetryCallState

from vingen.services.exceptions import AllocationTimeout, BackendUnavailable, SequenceStoreError
from vingen.services.sequences.base import SequenceStore
from vingen.utils.request_retry import RETRYABLE_REDIS_ERRORS, RequestRetryConfig, get_request_retrying

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_NAMESPACE = "chassis_seq:"


class RedisSequenceStore(SequenceStore):
    """Counters stored as ``<namespace><prefix>`` integer keys."""

    backend_name = "redis"

    def __init__(
        self,
        client: redis.Redis,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        retry_config: RequestRetryConfig | None = None,
        operation_timeout: float | None = None,
        warn_threshold: int = 990_000,
    ) -> None:
        super().__init__(operation_timeout=operation_timeout, warn_threshold=warn_threshold)
        self.client = client
        self.namespace = namespace
        self.retry_config = retry_config or RequestRetryConfig()

    def key(self, prefix: str) -> str:
        return f"{self.namespace}{prefix}"

    async def allocate_next(self, prefix: str, *, timeout: float | None = None) -> int:
        key = self.key(prefix)

        def on_retry(state: RetryCallState) -> None:
            # The failed INCR may have landed; the retry then skips one number
            logger.warning(
                "Retrying sequence increment, a number may be skipped",
                prefix=prefix,
                attempt=state.attempt_number,
                error=str(state.outcome.exception()) if state.outcome else None,
            )

        value = await self._call(prefix, timeout, lambda: self.client.incr(key), on_retry=on_retry)
        value = int(value)
        self._check_limit(prefix, value)
        return value

    async def read_current(self, prefix: str, *, timeout: float | None = None) -> int:
        raw = await self._call(prefix, timeout, lambda: self.client.get(self.key(prefix)))
        return _to_int(prefix, raw)

    async def _swap(self, prefix: str, value: int) -> int:
        # SET ... GET replaces and returns the old value in one command
        raw = await self._call(prefix, None, lambda: self.client.set(self.key(prefix), value, get=True))
        return _to_int(prefix, raw)

    async def all_sequences(self) -> dict[str, int]:
        keys = await self._call("*", None, lambda: self.client.keys(f"{self.namespace}*"))
        result: dict[str, int] = {}
        for key in sorted(_to_str(k) for k in keys):
            prefix = key[len(self.namespace):]
            raw = await self._call(prefix, None, lambda key=key: self.client.get(key))
            # Key can vanish between KEYS and GET
            if raw is not None:
                result[prefix] = _to_int(prefix, raw)
        return result

    async def close(self) -> None:
        await self.client.aclose()

    async def _call(
        self,
        prefix: str,
        timeout: float | None,
        command: Callable[[], Awaitable[T]],
        *,
        on_retry: Callable[[RetryCallState], None] | None = None,
    ) -> T:
        """Run a command with retries, bounded by the operation deadline."""
        deadline = self._resolve_timeout(timeout)

        async def attempt_all() -> T:
            async for attempt in get_request_retrying(self.retry_config, before_sleep=on_retry):
                with attempt:
                    return await command()
            raise AssertionError("unreachable")  # pragma: no cover

        try:
            async with asyncio.timeout(deadline):
                return await attempt_all()
        except TimeoutError as e:
            raise AllocationTimeout(prefix, deadline) from e
        except RedisTimeoutError as e:
            # Socket timeout on every attempt: the command may still have run
            logger.error("Sequence backend timed out", prefix=prefix, error=str(e))
            raise AllocationTimeout(prefix) from e
        except RETRYABLE_REDIS_ERRORS as e:
            logger.error("Sequence backend unavailable", prefix=prefix, error=str(e))
            raise BackendUnavailable(f"Redis sequence store unavailable: {e}") from e


def _to_str(raw: Any) -> str:
    return raw.decode() if isinstance(raw, bytes) else str(raw)


def _to_int(prefix: str, raw: Any) -> int:
    if raw is None:
        return 0
    try:
        return int(_to_str(raw))
    except ValueError as e:
        raise SequenceStoreError(f"Non-integer sequence value for {prefix!r}: {raw!r}") from e
