"""Sequence stores package."""

from vingen.services.sequences.base import SequenceStatistics, SequenceStore
from vingen.services.sequences.file_store import FileSequenceStore
from vingen.services.sequences.redis_store import RedisSequenceStore
from vingen.services.sequences.selector import resolve_backend_name, select_sequence_store

__all__ = [
    "FileSequenceStore",
    "RedisSequenceStore",
    "SequenceStatistics",
    "SequenceStore",
    "resolve_backend_name",
    "select_sequence_store",
]
