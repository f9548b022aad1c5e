"""Sequence store capability shared by the file and Redis backends."""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any

import structlog

from vingen.services.exceptions import RangeError
from vingen.services.vin.assembler import MAX_SEQUENCE

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SequenceStatistics:
    """Aggregate view over every known prefix."""

    total_prefixes: int
    total_issued: int
    max_sequence: int
    average_sequence: float

    @classmethod
    def from_values(cls, values: list[int]) -> "SequenceStatistics":
        if not values:
            return cls(total_prefixes=0, total_issued=0, max_sequence=0, average_sequence=0.0)
        total = sum(values)
        return cls(
            total_prefixes=len(values),
            total_issued=total,
            max_sequence=max(values),
            average_sequence=round(total / len(values), 2),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class SequenceStore(ABC):
    """Per-prefix monotonic counter.

    ``allocate_next`` must never return the same value twice for a prefix,
    however many callers race on it. Implementations only differ in how far
    that guarantee reaches: the file store covers one process, the Redis
    store covers any number of instances.
    """

    backend_name: str

    def __init__(self, *, operation_timeout: float | None = None, warn_threshold: int = 990_000):
        self.operation_timeout = operation_timeout
        self.warn_threshold = warn_threshold

    @abstractmethod
    async def allocate_next(self, prefix: str, *, timeout: float | None = None) -> int:
        """Atomically increment the counter for ``prefix`` and return the new value."""

    @abstractmethod
    async def read_current(self, prefix: str, *, timeout: float | None = None) -> int:
        """Return the last persisted value for ``prefix``, or 0."""

    @abstractmethod
    async def _swap(self, prefix: str, value: int) -> int:
        """Force-set the counter for ``prefix`` and return the value it replaced.

        Must be a single atomic step so no allocation lands in between.
        """

    @abstractmethod
    async def all_sequences(self) -> dict[str, int]:
        """Return every known prefix with its current value."""

    async def reset(self, prefix: str, value: int = 0) -> None:
        """Force-set the counter for ``prefix``.

        WARNING: codes already issued above ``value`` will be issued again.
        Only use this for prefixes that were never released into the field.
        """
        if value < 0:
            raise RangeError(f"Sequence value must be non-negative, got {value}")
        previous = await self._swap(prefix, value)
        logger.warning(
            "Sequence counter reset",
            prefix=prefix,
            previous=previous,
            value=value,
            backend=self.backend_name,
        )

    async def statistics(self) -> SequenceStatistics:
        sequences = await self.all_sequences()
        return SequenceStatistics.from_values(list(sequences.values()))

    async def close(self) -> None:
        """Release transport resources. No-op by default."""
        return None

    def _resolve_timeout(self, timeout: float | None) -> float | None:
        return timeout if timeout is not None else self.operation_timeout

    def _check_limit(self, prefix: str, value: int) -> None:
        """Emit soft-limit warnings. Never raises."""
        if value > MAX_SEQUENCE:
            logger.warning(
                "Sequence limit exceeded, rotate to a new prefix",
                prefix=prefix,
                sequence=value,
                limit=MAX_SEQUENCE,
                backend=self.backend_name,
            )
        elif value >= self.warn_threshold:
            logger.warning(
                "Sequence approaching limit",
                prefix=prefix,
                sequence=value,
                limit=MAX_SEQUENCE,
                remaining=MAX_SEQUENCE - value,
                backend=self.backend_name,
            )
