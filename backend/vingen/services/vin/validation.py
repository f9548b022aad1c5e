"""Standalone VIN validation, independent of any sequence store."""

from dataclasses import dataclass, field
from typing import Any

from vingen.services.vin.checksum import CHECK_POSITION, FORBIDDEN_CHARS, VIN_LENGTH, compute_check


@dataclass
class CodeValidationResult:
    """Result of VIN validation."""

    code: str
    valid: bool
    errors: list[str] = field(default_factory=list)
    checksum_valid: bool | None = None
    expected_check: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "valid": self.valid,
            "errors": self.errors,
            "checksum_valid": self.checksum_valid,
            "expected_check": self.expected_check,
        }


def validate_code(code: str, *, check_checksum: bool = True) -> CodeValidationResult:
    """Validate a 17-character VIN.

    Checks, in order:
    1. Length (must be 17; nothing else is checked otherwise)
    2. Only ASCII letters and digits
    3. No I, O or Q
    4. Check character at position 9 (skipped when an earlier check failed)
    """
    errors: list[str] = []

    if len(code) != VIN_LENGTH:
        errors.append(f"Incorrect length: {len(code)} (expected {VIN_LENGTH})")
        return CodeValidationResult(code=code, valid=False, errors=errors)

    if not (code.isascii() and code.isalnum()):
        errors.append("Non-alphanumeric characters found")

    forbidden = [c for c in code if c.upper() in FORBIDDEN_CHARS]
    if forbidden:
        errors.append(f"Forbidden characters (I/O/Q): {', '.join(forbidden)}")

    checksum_valid: bool | None = None
    expected: str | None = None
    if check_checksum and not errors:
        expected = compute_check(code)
        actual = code[CHECK_POSITION].upper()
        checksum_valid = expected == actual
        if not checksum_valid:
            errors.append(f"Invalid check character: expected '{expected}', got '{actual}'")

    return CodeValidationResult(
        code=code,
        valid=not errors,
        errors=errors,
        checksum_valid=checksum_valid,
        expected_check=expected,
    )
