import asyncio
import json
import os
import threading
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from vingen.services.exceptions import AllocationTimeout, RangeError, SequenceStoreError
from vingen.services.sequences.file_store import FileSequenceStore

PREFIX = "LZSHCKZSWS"


class TestAllocation:
    """Tests for file-backed allocation."""

    async def test_sequential_from_one(self, file_store: FileSequenceStore):
        values = [await file_store.allocate_next(PREFIX) for _ in range(5)]
        assert values == [1, 2, 3, 4, 5]

    async def test_prefixes_are_independent(self, file_store: FileSequenceStore):
        assert await file_store.allocate_next(PREFIX) == 1
        assert await file_store.allocate_next("LZSHCKZSXS") == 1
        assert await file_store.allocate_next(PREFIX) == 2

    async def test_read_unknown_prefix_is_zero(self, file_store: FileSequenceStore):
        assert await file_store.read_current(PREFIX) == 0

    async def test_survives_restart(self, sequence_path: Path):
        first = FileSequenceStore(sequence_path)
        for _ in range(3):
            await first.allocate_next(PREFIX)

        second = FileSequenceStore(sequence_path)
        assert await second.read_current(PREFIX) == 3
        assert await second.allocate_next(PREFIX) == 4

    async def test_file_format(self, file_store: FileSequenceStore, sequence_path: Path):
        await file_store.allocate_next(PREFIX)
        await file_store.allocate_next(PREFIX)
        assert json.loads(sequence_path.read_text()) == {PREFIX: 2}

    async def test_no_temp_files_left(self, file_store: FileSequenceStore, sequence_path: Path):
        for _ in range(3):
            await file_store.allocate_next(PREFIX)
        assert [p.name for p in sequence_path.parent.iterdir()] == [sequence_path.name]

    async def test_concurrent_tasks_get_unique_values(self, file_store: FileSequenceStore):
        values = await asyncio.gather(*(file_store.allocate_next(PREFIX) for _ in range(50)))
        assert sorted(values) == list(range(1, 51))

    def test_concurrent_threads_get_unique_values(self, file_store: FileSequenceStore):
        results: list[int] = []
        results_lock = threading.Lock()

        def worker() -> None:
            async def run() -> list[int]:
                return [await file_store.allocate_next(PREFIX) for _ in range(10)]

            values = asyncio.run(run())
            with results_lock:
                results.extend(values)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(results) == list(range(1, 81))


class TestReset:
    """Tests for administrative resets and statistics."""

    async def test_reset_then_allocate(self, file_store: FileSequenceStore):
        await file_store.allocate_next(PREFIX)
        await file_store.reset(PREFIX, 100)
        assert await file_store.allocate_next(PREFIX) == 101

    async def test_reset_logs_warning(self, file_store: FileSequenceStore):
        await file_store.allocate_next(PREFIX)
        with capture_logs() as logs:
            await file_store.reset(PREFIX)

        event = next(e for e in logs if e["event"] == "Sequence counter reset")
        assert event["log_level"] == "warning"
        assert event["previous"] == 1
        assert event["value"] == 0
        assert event["backend"] == "file"

    async def test_reset_reads_and_writes_in_one_locked_step(
        self, file_store: FileSequenceStore, monkeypatch: pytest.MonkeyPatch
    ):
        for _ in range(7):
            await file_store.allocate_next(PREFIX)

        async def racing_read(prefix: str, *, timeout: float | None = None) -> int:
            # An allocation between a separate read and write would make
            # the logged previous value stale
            raise AssertionError("reset must not read outside the lock")

        monkeypatch.setattr(file_store, "read_current", racing_read)
        with capture_logs() as logs:
            await file_store.reset(PREFIX, 3)

        event = next(e for e in logs if e["event"] == "Sequence counter reset")
        assert event["previous"] == 7
        assert await file_store.allocate_next(PREFIX) == 4

    async def test_reset_concurrent_with_allocations(self, file_store: FileSequenceStore):
        await file_store.reset(PREFIX, 10)
        with capture_logs() as logs:
            results = await asyncio.gather(
                *(file_store.allocate_next(PREFIX) for _ in range(5)),
                file_store.reset(PREFIX, 100),
            )

        allocated = [r for r in results if r is not None]
        previous = next(e for e in logs if e["event"] == "Sequence counter reset")["previous"]
        # Exactly the allocations that ran before the reset are counted in previous
        assert previous == 10 + sum(1 for v in allocated if v <= 15)
        assert await file_store.read_current(PREFIX) == 100 + sum(1 for v in allocated if v > 100)

    async def test_negative_reset_rejected(self, file_store: FileSequenceStore, sequence_path: Path):
        with pytest.raises(RangeError):
            await file_store.reset(PREFIX, -1)
        assert not sequence_path.exists()

    async def test_statistics(self, file_store: FileSequenceStore):
        await file_store.reset("AAAAAAAAAA", 10)
        await file_store.reset("BBBBBBBBBB", 5)
        stats = await file_store.statistics()
        assert stats.total_prefixes == 2
        assert stats.total_issued == 15
        assert stats.max_sequence == 10
        assert stats.average_sequence == 7.5

    async def test_statistics_empty(self, file_store: FileSequenceStore):
        stats = await file_store.statistics()
        assert stats.to_dict() == {
            "total_prefixes": 0,
            "total_issued": 0,
            "max_sequence": 0,
            "average_sequence": 0.0,
        }


class TestFailures:
    """Tests for unreadable files and failed writes."""

    async def test_corrupt_file_is_hard_error(self, sequence_path: Path):
        sequence_path.parent.mkdir(parents=True)
        sequence_path.write_text("{not json")
        store = FileSequenceStore(sequence_path)

        with pytest.raises(SequenceStoreError, match="Cannot read"):
            await store.allocate_next(PREFIX)
        # Corrupt data must never be replaced by a fresh counter
        assert sequence_path.read_text() == "{not json"

    @pytest.mark.parametrize("content", ['["a"]', '{"P": "3"}', '{"P": -1}', '{"P": true}', '{"P": 1.5}'])
    async def test_invalid_values_rejected(self, sequence_path: Path, content: str):
        sequence_path.parent.mkdir(parents=True)
        sequence_path.write_text(content)
        with pytest.raises(SequenceStoreError):
            await FileSequenceStore(sequence_path).read_current("P")

    async def test_failed_write_does_not_advance(
        self, file_store: FileSequenceStore, sequence_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        await file_store.allocate_next(PREFIX)

        def broken_replace(src: str, dst: str) -> None:
            raise OSError("disk full")

        with monkeypatch.context() as m:
            m.setattr(os, "replace", broken_replace)
            with pytest.raises(SequenceStoreError, match="disk full"):
                await file_store.allocate_next(PREFIX)

        assert await file_store.read_current(PREFIX) == 1
        assert [p.name for p in sequence_path.parent.iterdir()] == [sequence_path.name]
        assert await file_store.allocate_next(PREFIX) == 2

    async def test_lock_timeout(self, file_store: FileSequenceStore):
        file_store._lock.acquire()
        try:
            with pytest.raises(AllocationTimeout, match="outcome unknown"):
                await file_store.allocate_next(PREFIX, timeout=0.05)
        finally:
            file_store._lock.release()

        assert await file_store.allocate_next(PREFIX) == 1


class TestLimits:
    """Tests for soft-limit warnings."""

    async def test_past_limit_still_allocates(self, file_store: FileSequenceStore):
        await file_store.reset(PREFIX, 999_999)
        with capture_logs() as logs:
            value = await file_store.allocate_next(PREFIX)

        assert value == 1_000_000
        assert any(e["event"] == "Sequence limit exceeded, rotate to a new prefix" for e in logs)

    async def test_warns_near_limit(self, sequence_path: Path):
        store = FileSequenceStore(sequence_path, warn_threshold=3)
        with capture_logs() as logs:
            for _ in range(3):
                await store.allocate_next(PREFIX)

        warnings = [e for e in logs if e["event"] == "Sequence approaching limit"]
        assert len(warnings) == 1
        assert warnings[0]["sequence"] == 3
        assert warnings[0]["remaining"] == 999_996
