"""Single-process sequence store persisted to a JSON file.

The file holds a flat ``{prefix: last_issued}`` object. Every mutation runs
under one store-wide lock and is written with temp file + fsync + rename
before the in-memory cache changes, so a value returned to a caller is
always on disk and a failed write never advances the counter.

This store gives no guarantee across processes. Run exactly one instance
against a given file, or use the Redis store.
"""

import json
import os
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import anyio.to_thread
import structlog

from vingen.services.exceptions import AllocationTimeout, SequenceStoreError
from vingen.services.sequences.base import SequenceStore

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class FileSequenceStore(SequenceStore):
    """JSON-file backed counters guarded by an in-process lock."""

    backend_name = "file"

    def __init__(
        self,
        path: str | Path,
        *,
        operation_timeout: float | None = None,
        warn_threshold: int = 990_000,
    ) -> None:
        super().__init__(operation_timeout=operation_timeout, warn_threshold=warn_threshold)
        self.path = Path(path)
        self._lock = threading.Lock()
        self._sequences: dict[str, int] | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def allocate_next(self, prefix: str, *, timeout: float | None = None) -> int:
        value = await self._run_locked(prefix, timeout, lambda: self._increment(prefix))
        self._check_limit(prefix, value)
        return value

    async def read_current(self, prefix: str, *, timeout: float | None = None) -> int:
        return await self._run_locked(prefix, timeout, lambda: self._load().get(prefix, 0))

    async def all_sequences(self) -> dict[str, int]:
        return await self._run_locked("*", None, lambda: dict(self._load()))

    async def _swap(self, prefix: str, value: int) -> int:
        def swap() -> int:
            current = self._load()
            self._commit({**current, prefix: value})
            return current.get(prefix, 0)

        return await self._run_locked(prefix, None, swap)

    # ------------------------------------------------------------------
    # Locked section (runs in a worker thread)
    # ------------------------------------------------------------------

    async def _run_locked(self, prefix: str, timeout: float | None, func: Callable[[], T]) -> T:
        deadline = self._resolve_timeout(timeout)

        def locked() -> T:
            acquired = self._lock.acquire(timeout=deadline if deadline is not None else -1)
            if not acquired:
                raise AllocationTimeout(prefix, deadline)
            try:
                return func()
            finally:
                self._lock.release()

        return await anyio.to_thread.run_sync(locked)

    def _increment(self, prefix: str) -> int:
        current = self._load()
        next_value = current.get(prefix, 0) + 1
        self._commit({**current, prefix: next_value})
        return next_value

    def _load(self) -> dict[str, int]:
        """Return the cached mapping, reading the file on first access."""
        if self._sequences is not None:
            return self._sequences

        if not self.path.exists():
            logger.info("No sequence file found, starting with empty sequences", path=str(self.path))
            self._sequences = {}
            return self._sequences

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise SequenceStoreError(f"Cannot read sequence file {self.path}: {e}") from e

        self._sequences = _parse_sequences(data, self.path)
        logger.info("Loaded sequences", path=str(self.path), prefixes=len(self._sequences))
        return self._sequences

    def _commit(self, sequences: dict[str, int]) -> None:
        """Persist ``sequences`` durably, then make it the cached state."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(sequences, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise SequenceStoreError(f"Cannot write sequence file {self.path}: {e}") from e

        self._sequences = sequences


def _parse_sequences(data: object, path: Path) -> dict[str, int]:
    if not isinstance(data, dict):
        raise SequenceStoreError(f"Sequence file {path} must contain a JSON object")
    sequences: dict[str, int] = {}
    for prefix, value in data.items():
        # bool is an int subclass but never a valid counter
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise SequenceStoreError(f"Invalid sequence value for {prefix!r} in {path}: {value!r}")
        sequences[prefix] = value
    return sequences
