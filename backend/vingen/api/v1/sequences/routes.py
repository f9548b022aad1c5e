"""Read-only sequence endpoints.

Counters can only be reset from the command line.
"""

from fastapi import APIRouter, HTTPException

from vingen.api.v1.dependencies import SequenceStoreDep
from vingen.api.v1.sequences.schemas import (
    SequenceListResponse,
    SequenceResponse,
    SequenceStatisticsResponse,
)
from vingen.services.exceptions import BackendUnavailable, SequenceStoreError

router = APIRouter(tags=["sequences"])


@router.get("/sequences", response_model=SequenceListResponse, operation_id="listSequences")
async def list_sequences(store: SequenceStoreDep) -> SequenceListResponse:
    """List all prefixes with their current sequence."""
    try:
        sequences = await store.all_sequences()
    except BackendUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except SequenceStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return SequenceListResponse(backend=store.backend_name, sequences=sequences)


@router.get("/sequences/stats", response_model=SequenceStatisticsResponse, operation_id="getSequenceStats")
async def get_sequence_stats(store: SequenceStoreDep) -> SequenceStatisticsResponse:
    """Get aggregate statistics over all prefixes."""
    try:
        stats = await store.statistics()
    except BackendUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except SequenceStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return SequenceStatisticsResponse.from_statistics(stats, store.backend_name)


@router.get("/sequences/{prefix}", response_model=SequenceResponse, operation_id="getSequence")
async def get_sequence(prefix: str, store: SequenceStoreDep) -> SequenceResponse:
    """Get the last issued sequence for a prefix (0 if never used)."""
    if len(prefix) != 10:
        raise HTTPException(status_code=422, detail="Prefix must be exactly 10 characters")
    try:
        current = await store.read_current(prefix.upper())
    except BackendUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except SequenceStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return SequenceResponse(prefix=prefix.upper(), current=current, backend=store.backend_name)
