"""FastAPI dependencies for service injection."""

from typing import Annotated

from fastapi import Depends, Request

from vingen.services.batch.batch_service import BatchAllocator
from vingen.services.sequences.base import SequenceStore


def get_sequence_store(request: Request) -> SequenceStore:
    """Get the process-wide sequence store built during application startup."""
    store: SequenceStore = request.app.state.sequence_store
    return store


def get_batch_allocator(
    store: Annotated[SequenceStore, Depends(get_sequence_store)],
) -> BatchAllocator:
    """Get a BatchAllocator bound to the process-wide sequence store."""
    return BatchAllocator(store)


# Type aliases for cleaner endpoint signatures
SequenceStoreDep = Annotated[SequenceStore, Depends(get_sequence_store)]
BatchAllocatorDep = Annotated[BatchAllocator, Depends(get_batch_allocator)]
