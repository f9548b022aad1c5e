"""VIN assembly from structural fields.

Structure (1-based positions):
    1-3     WMI, manufacturer id
    4-8     VDS, vehicle descriptor
    9       check character
    10      model year code
    11      plant code
    12-17   sequence number, zero padded
"""

from dataclasses import dataclass

from vingen.services.exceptions import InvariantViolation, LengthError, RangeError, ValidationError
from vingen.services.vin.checksum import CHECK_POSITION, VIN_ALPHABET, compute_check, splice_check

MIN_SEQUENCE = 1
MAX_SEQUENCE = 999_999
SEQUENCE_WIDTH = 6

# Model year codes (position 10); I, O, Q, U and Z are never used
YEAR_CODES: dict[int, str] = {
    2001: "1", 2002: "2", 2003: "3", 2004: "4", 2005: "5",
    2006: "6", 2007: "7", 2008: "8", 2009: "9",
    2010: "A", 2011: "B", 2012: "C", 2013: "D", 2014: "E",
    2015: "F", 2016: "G", 2017: "H", 2018: "J",
    2019: "K", 2020: "L", 2021: "M", 2022: "N", 2023: "P",
    2024: "R", 2025: "S", 2026: "T", 2027: "V",
    2028: "W", 2029: "X", 2030: "Y",
}  # fmt: skip

MIN_YEAR = min(YEAR_CODES)
MAX_YEAR = max(YEAR_CODES)


@dataclass(frozen=True)
class VinFields:
    """Structural fields shared by every code issued under one prefix."""

    manufacturer_id: str
    descriptor: str
    model_year: int
    plant_code: str

    @property
    def prefix(self) -> str:
        return build_prefix(self.manufacturer_id, self.descriptor, self.model_year, self.plant_code)


def year_code(model_year: int) -> str:
    """Return the single-character code for a model year."""
    try:
        return YEAR_CODES[model_year]
    except KeyError:
        raise ValidationError(
            f"Model year {model_year} is not supported ({MIN_YEAR}-{MAX_YEAR})"
        ) from None


def _check_field(name: str, value: str, length: int) -> str:
    if len(value) != length:
        raise LengthError(f"{name} must be exactly {length} characters, got {len(value)}")
    value = value.upper()
    invalid = sorted({c for c in value if c not in VIN_ALPHABET})
    if invalid:
        raise ValidationError(f"{name} contains characters not allowed in a VIN: {', '.join(invalid)}")
    return value


def validate_fields(manufacturer_id: str, descriptor: str, model_year: int, plant_code: str) -> VinFields:
    """Validate and normalize structural fields without touching any counter."""
    manufacturer_id = _check_field("Manufacturer id", manufacturer_id, 3)
    descriptor = _check_field("Descriptor", descriptor, 5)
    plant_code = _check_field("Plant code", plant_code, 1)
    year_code(model_year)
    return VinFields(manufacturer_id, descriptor, model_year, plant_code)


def build_prefix(manufacturer_id: str, descriptor: str, model_year: int, plant_code: str) -> str:
    """Return the 10-character sequence key for a field combination."""
    fields = validate_fields(manufacturer_id, descriptor, model_year, plant_code)
    return f"{fields.manufacturer_id}{fields.descriptor}{year_code(fields.model_year)}{fields.plant_code}"


def format_sequence(sequence: int) -> str:
    if not MIN_SEQUENCE <= sequence <= MAX_SEQUENCE:
        raise RangeError(f"Sequence must be between {MIN_SEQUENCE} and {MAX_SEQUENCE}, got {sequence}")
    return str(sequence).zfill(SEQUENCE_WIDTH)


def assemble_from_fields(fields: VinFields, sequence: int, *, verify: bool = True) -> str:
    """Build the full code for already validated fields."""
    sequence_str = format_sequence(sequence)
    placeholder = (
        f"{fields.manufacturer_id}{fields.descriptor}X"
        f"{year_code(fields.model_year)}{fields.plant_code}{sequence_str}"
    )
    code = splice_check(placeholder)

    if verify and compute_check(code) != code[CHECK_POSITION]:
        raise InvariantViolation(f"Assembled code {code} failed checksum self-check")
    return code


def assemble(
    manufacturer_id: str,
    descriptor: str,
    model_year: int,
    plant_code: str,
    sequence: int,
    *,
    verify: bool = True,
) -> str:
    """Assemble a 17-character VIN with its check character.

    Args:
        manufacturer_id: WMI, 3 characters
        descriptor: VDS, 5 characters
        model_year: Model year, 2001-2030
        plant_code: Plant code, 1 character
        sequence: Serial number, 1-999999
        verify: Recompute the checksum of the result before returning

    Raises:
        ValidationError: Bad field length, characters or year
        RangeError: Sequence out of range
        InvariantViolation: Self-check failed (codec bug)

    Example:
        >>> assemble("LZS", "HCKZS", 2028, "S", 1)
        'LZSHCKZS3WS000001'
    """
    fields = validate_fields(manufacturer_id, descriptor, model_year, plant_code)
    return assemble_from_fields(fields, sequence, verify=verify)


def assemble_range(fields: VinFields, start_sequence: int, quantity: int) -> list[str]:
    """Assemble consecutive codes from a known start sequence.

    No counter is involved; uniqueness is the caller's responsibility.
    """
    if quantity < 1:
        raise RangeError(f"Quantity must be at least 1, got {quantity}")
    format_sequence(start_sequence)
    format_sequence(start_sequence + quantity - 1)
    return [assemble_from_fields(fields, start_sequence + i) for i in range(quantity)]
