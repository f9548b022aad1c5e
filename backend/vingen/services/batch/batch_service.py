"""Batch VIN generation on top of a sequence store."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from vingen.config import settings
from vingen.services.exceptions import InvariantViolation, PartialBatchFailure, RangeError
from vingen.services.sequences.base import SequenceStore
from vingen.services.vin.assembler import VinFields, assemble_from_fields, validate_fields

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BatchRequest:
    """Request for ``quantity`` new codes under one field combination."""

    quantity: int
    manufacturer_id: str
    descriptor: str
    model_year: int
    plant_code: str


@dataclass
class BatchResult:
    """Generated codes plus the sequence range they consumed.

    ``codes[i]`` carries ``start_sequence + i`` only when no other caller
    allocated from the same prefix during the batch; in general each code
    carries a strictly larger sequence than the one before it.
    """

    fields: VinFields
    prefix: str
    quantity: int
    backend: str
    codes: list[str] = field(default_factory=list)
    sequences: list[int] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def produced(self) -> int:
        return len(self.codes)

    @property
    def start_sequence(self) -> int | None:
        return self.sequences[0] if self.sequences else None

    @property
    def end_sequence(self) -> int | None:
        return self.sequences[-1] if self.sequences else None

    @property
    def complete(self) -> bool:
        return self.produced == self.quantity


class BatchAllocator:
    """Turns "N codes for these fields" into N allocations and N codes.

    Allocation and assembly are interleaved per unit: the store only offers
    single increments, not range reservation.
    """

    def __init__(self, store: SequenceStore, *, max_quantity: int | None = None) -> None:
        self.store = store
        self.max_quantity = max_quantity or settings.max_batch_quantity

    def validate(self, request: BatchRequest) -> VinFields:
        """Reject a bad request before any sequence number is consumed."""
        if not 1 <= request.quantity <= self.max_quantity:
            raise RangeError(f"Quantity must be between 1 and {self.max_quantity}, got {request.quantity}")
        return validate_fields(
            request.manufacturer_id,
            request.descriptor,
            request.model_year,
            request.plant_code,
        )

    async def generate_batch(self, request: BatchRequest, *, timeout: float | None = None) -> BatchResult:
        """Allocate and assemble ``request.quantity`` codes.

        Raises:
            ValidationError: Invalid request; nothing was allocated
            PartialBatchFailure: Stopped after some codes were issued; the
                issued codes are in ``error.result`` and remain valid
            InvariantViolation: Codec self-check failed
        """
        fields = self.validate(request)
        result = BatchResult(
            fields=fields,
            prefix=fields.prefix,
            quantity=request.quantity,
            backend=self.store.backend_name,
        )
        log = logger.bind(prefix=result.prefix, quantity=request.quantity, backend=result.backend)
        log.info("Generating VIN batch")

        for _ in range(request.quantity):
            try:
                sequence = await self.store.allocate_next(result.prefix, timeout=timeout)
                code = assemble_from_fields(fields, sequence)
            except InvariantViolation:
                raise
            except Exception as e:
                log.error(
                    "VIN batch interrupted",
                    produced=result.produced,
                    last_sequence=result.end_sequence,
                    error=str(e),
                )
                raise PartialBatchFailure(result, e) from e

            result.sequences.append(sequence)
            result.codes.append(code)

        log.info(
            "VIN batch generated",
            start_sequence=result.start_sequence,
            end_sequence=result.end_sequence,
        )
        return result

    async def generate_single(
        self,
        manufacturer_id: str,
        descriptor: str,
        model_year: int,
        plant_code: str,
    ) -> str:
        """Allocate and assemble one code."""
        request = BatchRequest(
            quantity=1,
            manufacturer_id=manufacturer_id,
            descriptor=descriptor,
            model_year=model_year,
            plant_code=plant_code,
        )
        result = await self.generate_batch(request)
        return result.codes[0]
