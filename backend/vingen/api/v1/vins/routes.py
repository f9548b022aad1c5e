"""VIN generation and validation endpoints."""

import structlog
from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse

from vingen.api.v1.dependencies import BatchAllocatorDep
from vingen.api.v1.vins.schemas import (
    GenerateVinsRequest,
    GenerateVinsResponse,
    ValidateVinRequest,
    ValidateVinResponse,
)
from vingen.services.exceptions import (
    BackendUnavailable,
    PartialBatchFailure,
    SequenceStoreError,
    ValidationError,
)
from vingen.services.templates.xml_injection import export_csv, export_text
from vingen.services.vin.validation import validate_code

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["vins"])


@router.post("/vins/generate", response_model=GenerateVinsResponse, operation_id="generateVins")
async def generate_vins(
    body: GenerateVinsRequest,
    allocator: BatchAllocatorDep,
) -> GenerateVinsResponse | PlainTextResponse:
    """
    Generate a batch of unique VINs.

    - Every code gets its own freshly allocated sequence number
    - Invalid requests are rejected before any number is consumed
    - If the batch stops midway, the detail lists the codes already issued
    """
    try:
        result = await allocator.generate_batch(body.to_batch_request())
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PartialBatchFailure as e:
        status_code = 503 if isinstance(e.cause, BackendUnavailable) else 500
        raise HTTPException(
            status_code=status_code,
            detail={
                "message": str(e),
                "produced": e.result.produced,
                "codes": e.result.codes,
                "startSequence": e.result.start_sequence,
                "endSequence": e.result.end_sequence,
            },
        )
    except BackendUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except SequenceStoreError as e:
        logger.error("Sequence store failure", error=str(e))
        raise HTTPException(status_code=500, detail=str(e))

    if body.output_format == "csv":
        return PlainTextResponse(export_csv(result.codes), media_type="text/csv")
    if body.output_format == "text":
        return PlainTextResponse(export_text(result.codes))
    return GenerateVinsResponse.from_result(result)


@router.post("/vins/validate", response_model=ValidateVinResponse, operation_id="validateVin")
async def validate_vin(body: ValidateVinRequest) -> ValidateVinResponse:
    """Validate a VIN's length, alphabet and check character."""
    return ValidateVinResponse.from_result(validate_code(body.code))
