"""API schemas for VIN endpoints.

Field names are camelCase on the wire (``manufacturerId``) and snake_case
is accepted on input as well.
"""

from datetime import datetime
from typing import Literal

from pydantic import Field

from vingen.api.v1.schemas import CamelModel
from vingen.config import settings
from vingen.services.batch.batch_service import BatchRequest, BatchResult
from vingen.services.vin.validation import CodeValidationResult


# =============================================================================
# Request Schemas
# =============================================================================


class GenerateVinsRequest(CamelModel):
    """Batch generation request."""

    quantity: int
    manufacturer_id: str = Field(default_factory=lambda: settings.default_manufacturer_id)
    descriptor: str = Field(default_factory=lambda: settings.default_descriptor)
    model_year: int = Field(default_factory=lambda: datetime.now().year)
    plant_code: str = Field(default_factory=lambda: settings.default_plant_code)
    output_format: Literal["json", "csv", "text"] = "json"

    def to_batch_request(self) -> BatchRequest:
        return BatchRequest(
            quantity=self.quantity,
            manufacturer_id=self.manufacturer_id,
            descriptor=self.descriptor,
            model_year=self.model_year,
            plant_code=self.plant_code,
        )


class ValidateVinRequest(CamelModel):
    """Single code to validate."""

    code: str


# =============================================================================
# Response Schemas
# =============================================================================


class GenerateVinsResponse(CamelModel):
    """Generated codes with the consumed sequence range."""

    codes: list[str]
    prefix: str
    start_sequence: int | None
    end_sequence: int | None
    quantity: int
    manufacturer_id: str
    descriptor: str
    model_year: int
    plant_code: str
    backend: str
    generated_at: datetime

    @classmethod
    def from_result(cls, result: BatchResult) -> "GenerateVinsResponse":
        """Create response from a BatchResult."""
        return cls(
            codes=result.codes,
            prefix=result.prefix,
            start_sequence=result.start_sequence,
            end_sequence=result.end_sequence,
            quantity=result.quantity,
            manufacturer_id=result.fields.manufacturer_id,
            descriptor=result.fields.descriptor,
            model_year=result.fields.model_year,
            plant_code=result.fields.plant_code,
            backend=result.backend,
            generated_at=result.generated_at,
        )


class ValidateVinResponse(CamelModel):
    """Validation outcome for a single code."""

    code: str
    valid: bool
    errors: list[str]
    checksum_valid: bool | None
    expected_check: str | None

    @classmethod
    def from_result(cls, result: CodeValidationResult) -> "ValidateVinResponse":
        """Create response from a CodeValidationResult."""
        return cls(**result.to_dict())
