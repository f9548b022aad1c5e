"""VIN encoding: check character, assembly and validation."""

from vingen.services.vin.assembler import (
    MAX_SEQUENCE,
    YEAR_CODES,
    VinFields,
    assemble,
    assemble_from_fields,
    assemble_range,
    build_prefix,
    validate_fields,
    year_code,
)
from vingen.services.vin.checksum import compute_check
from vingen.services.vin.validation import CodeValidationResult, validate_code

__all__ = [
    "MAX_SEQUENCE",
    "YEAR_CODES",
    "CodeValidationResult",
    "VinFields",
    "assemble",
    "assemble_from_fields",
    "assemble_range",
    "build_prefix",
    "compute_check",
    "validate_code",
    "validate_fields",
    "year_code",
]
