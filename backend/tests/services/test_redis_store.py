import asyncio

import pytest
import redis.exceptions
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from structlog.testing import capture_logs

from tests.conftest import FAST_RETRY, FakeRedis
from vingen.services.exceptions import AllocationTimeout, BackendUnavailable, SequenceStoreError
from vingen.services.sequences.redis_store import RedisSequenceStore

PREFIX = "LZSHCKZSWS"


class TestAllocation:
    """Tests for Redis-backed allocation."""

    async def test_sequential_from_one(self, redis_store: RedisSequenceStore):
        values = [await redis_store.allocate_next(PREFIX) for _ in range(3)]
        assert values == [1, 2, 3]

    async def test_key_namespace(self, redis_store: RedisSequenceStore, fake_redis: FakeRedis):
        await redis_store.allocate_next(PREFIX)
        assert fake_redis.data == {f"chassis_seq:{PREFIX}": "1"}

    async def test_custom_namespace(self, fake_redis: FakeRedis):
        store = RedisSequenceStore(fake_redis, namespace="test:", retry_config=FAST_RETRY)  # type: ignore[arg-type]
        await store.allocate_next(PREFIX)
        assert f"test:{PREFIX}" in fake_redis.data

    async def test_read_missing_is_zero(self, redis_store: RedisSequenceStore):
        assert await redis_store.read_current(PREFIX) == 0

    async def test_reset_then_allocate(self, redis_store: RedisSequenceStore, fake_redis: FakeRedis):
        await redis_store.allocate_next(PREFIX)
        await redis_store.reset(PREFIX, 100)
        assert await redis_store.allocate_next(PREFIX) == 101
        assert "SET" in fake_redis.calls

    async def test_reset_is_a_single_command(self, redis_store: RedisSequenceStore, fake_redis: FakeRedis):
        await redis_store.reset(PREFIX, 5)
        fake_redis.calls.clear()

        with capture_logs() as logs:
            await redis_store.reset(PREFIX, 50)

        assert fake_redis.calls == ["SET"]
        event = next(e for e in logs if e["event"] == "Sequence counter reset")
        assert event["previous"] == 5
        assert event["backend"] == "redis"

    async def test_all_sequences_ignores_other_keys(
        self, redis_store: RedisSequenceStore, fake_redis: FakeRedis
    ):
        fake_redis.data["unrelated"] = "42"
        await redis_store.reset("AAAAAAAAAA", 4)
        await redis_store.reset("BBBBBBBBBB", 2)

        assert await redis_store.all_sequences() == {"AAAAAAAAAA": 4, "BBBBBBBBBB": 2}
        stats = await redis_store.statistics()
        assert stats.total_prefixes == 2
        assert stats.total_issued == 6
        assert stats.average_sequence == 3.0

    async def test_close(self, redis_store: RedisSequenceStore, fake_redis: FakeRedis):
        await redis_store.close()
        assert fake_redis.closed

    @settings(max_examples=25, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(callers=st.integers(min_value=1, max_value=8), per_caller=st.integers(min_value=1, max_value=10))
    def test_concurrent_callers_never_share_a_value(self, fake_redis_factory, callers: int, per_caller: int):
        store = RedisSequenceStore(fake_redis_factory(), retry_config=FAST_RETRY)

        async def caller() -> list[int]:
            return [await store.allocate_next(PREFIX) for _ in range(per_caller)]

        async def run() -> list[int]:
            batches = await asyncio.gather(*(caller() for _ in range(callers)))
            return [v for batch in batches for v in batch]

        values = asyncio.run(run())
        assert sorted(values) == list(range(1, callers * per_caller + 1))


class TestFailures:
    """Tests for retries, timeouts and bad data."""

    async def test_unavailable_after_retries(self, redis_store: RedisSequenceStore, fake_redis: FakeRedis):
        fake_redis.fail_with = redis.exceptions.ConnectionError("connection refused")

        with pytest.raises(BackendUnavailable, match="connection refused"):
            await redis_store.allocate_next(PREFIX)
        assert fake_redis.calls.count("INCR") == FAST_RETRY.max_attempts

    async def test_transient_failure_is_retried(self, redis_store: RedisSequenceStore, fake_redis: FakeRedis):
        fake_redis.fail_with = redis.exceptions.TimeoutError("slow")
        fake_redis.fail_times = 1

        assert await redis_store.allocate_next(PREFIX) == 1
        assert fake_redis.calls.count("INCR") == 2

    async def test_lost_response_skips_a_number(self, redis_store: RedisSequenceStore, fake_redis: FakeRedis):
        fake_redis.fail_with = redis.exceptions.ConnectionError("reset by peer")
        fake_redis.fail_times = 1
        fake_redis.fail_after_apply = True

        with capture_logs() as logs:
            first = await redis_store.allocate_next(PREFIX)

        # The first INCR landed but its reply was lost
        assert first == 2
        assert await redis_store.allocate_next(PREFIX) == 3
        assert any(e["event"] == "Retrying sequence increment, a number may be skipped" for e in logs)

    async def test_timeout(self, redis_store: RedisSequenceStore, fake_redis: FakeRedis):
        fake_redis.delay = 1.0

        with pytest.raises(AllocationTimeout) as exc_info:
            await redis_store.allocate_next(PREFIX, timeout=0.05)
        assert exc_info.value.prefix == PREFIX
        assert isinstance(exc_info.value, BackendUnavailable)

    async def test_exhausted_socket_timeouts_are_unknown_outcome(
        self, redis_store: RedisSequenceStore, fake_redis: FakeRedis
    ):
        fake_redis.fail_with = redis.exceptions.TimeoutError("read timed out")

        with pytest.raises(AllocationTimeout, match="outcome unknown") as exc_info:
            await redis_store.allocate_next(PREFIX)
        assert exc_info.value.prefix == PREFIX
        assert fake_redis.calls.count("INCR") == FAST_RETRY.max_attempts

    async def test_non_integer_value(self, redis_store: RedisSequenceStore, fake_redis: FakeRedis):
        fake_redis.data[f"chassis_seq:{PREFIX}"] = "garbage"
        with pytest.raises(SequenceStoreError):
            await redis_store.read_current(PREFIX)

    async def test_past_limit_still_allocates(self, redis_store: RedisSequenceStore):
        await redis_store.reset(PREFIX, 999_999)
        with capture_logs() as logs:
            assert await redis_store.allocate_next(PREFIX) == 1_000_000
        assert any(e["event"] == "Sequence limit exceeded, rotate to a new prefix" for e in logs)
