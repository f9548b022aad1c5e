"""Health check endpoints."""

from fastapi import APIRouter

from vingen.api.v1.dependencies import SequenceStoreDep

router = APIRouter()


@router.get("/health", operation_id="healthCheck")
async def health_check(store: SequenceStoreDep) -> dict[str, str]:
    """Health check endpoint, including which sequence backend is active."""
    return {"status": "healthy", "sequence_backend": store.backend_name}
