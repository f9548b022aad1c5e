import asyncio
import fnmatch
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import structlog
from httpx import ASGITransport, AsyncClient

import vingen.logging
from vingen.services.sequences.file_store import FileSequenceStore
from vingen.services.sequences.redis_store import RedisSequenceStore
from vingen.utils.request_retry import RequestRetryConfig

# Route events through stdlib logging (captured by pytest, never printed into
# CLI output) and keep loggers uncached so capture_logs() sees every event.
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.KeyValueRenderer(key_order=["event"]),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=False,
)
vingen.logging._configured = True


class FakeRedis:
    """In-memory stand-in for the Redis commands the store uses.

    INCR runs as one synchronous step between two awaits, so concurrent
    callers interleave around it exactly as they would around a server.
    """

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.calls: list[str] = []
        self.fail_with: BaseException | None = None
        self.fail_times: int | None = None
        self.fail_after_apply = False
        self.delay = 0.0
        self.closed = False

    async def _enter(self, command: str) -> None:
        self.calls.append(command)
        await asyncio.sleep(self.delay)

    def _maybe_fail(self) -> None:
        if self.fail_with is None:
            return
        if self.fail_times is not None:
            if self.fail_times <= 0:
                return
            self.fail_times -= 1
        raise self.fail_with

    async def incr(self, key: str) -> int:
        await self._enter("INCR")
        if not self.fail_after_apply:
            self._maybe_fail()
        value = int(self.data.get(key, "0")) + 1
        self.data[key] = str(value)
        if self.fail_after_apply:
            self._maybe_fail()
        await asyncio.sleep(0)
        return value

    async def get(self, key: str) -> str | None:
        await self._enter("GET")
        self._maybe_fail()
        return self.data.get(key)

    async def set(self, key: str, value: int, get: bool = False) -> str | bool | None:
        await self._enter("SET")
        self._maybe_fail()
        previous = self.data.get(key)
        self.data[key] = str(value)
        return previous if get else True

    async def keys(self, pattern: str) -> list[str]:
        await self._enter("KEYS")
        self._maybe_fail()
        return [k for k in self.data if fnmatch.fnmatchcase(k, pattern)]

    async def aclose(self) -> None:
        self.closed = True


FAST_RETRY = RequestRetryConfig(max_attempts=3, min_wait=0, max_wait=0, multiplier=0)


@pytest.fixture
def sequence_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "chassis_sequences.json"


@pytest.fixture
def file_store(sequence_path: Path) -> FileSequenceStore:
    return FileSequenceStore(sequence_path, operation_timeout=5.0)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def redis_store(fake_redis: FakeRedis) -> RedisSequenceStore:
    return RedisSequenceStore(fake_redis, retry_config=FAST_RETRY, operation_timeout=5.0)  # type: ignore[arg-type]


@pytest.fixture
async def client(file_store: FileSequenceStore) -> AsyncGenerator[AsyncClient, None]:
    """Test HTTP client with the sequence store dependency pointed at a temp file."""
    from vingen.api.v1.dependencies import get_sequence_store
    from vingen.main import app

    app.dependency_overrides[get_sequence_store] = lambda: file_store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def fake_redis_factory() -> type[FakeRedis]:
    """For tests that need a fresh fake per generated example."""
    return FakeRedis
