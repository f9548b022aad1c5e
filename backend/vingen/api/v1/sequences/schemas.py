"""API schemas for sequence endpoints."""

from vingen.api.v1.schemas import CamelModel
from vingen.services.sequences.base import SequenceStatistics


class SequenceListResponse(CamelModel):
    """Every known prefix with its last issued sequence."""

    backend: str
    sequences: dict[str, int]


class SequenceResponse(CamelModel):
    """Current counter for one prefix."""

    prefix: str
    current: int
    backend: str


class SequenceStatisticsResponse(CamelModel):
    """Aggregates over all prefixes."""

    backend: str
    total_prefixes: int
    total_issued: int
    max_sequence: int
    average_sequence: float

    @classmethod
    def from_statistics(cls, stats: SequenceStatistics, backend: str) -> "SequenceStatisticsResponse":
        """Create response from SequenceStatistics."""
        return cls(backend=backend, **stats.to_dict())
