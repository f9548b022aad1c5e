"""ISO 3779 check character computation."""

from vingen.services.exceptions import LengthError

VIN_LENGTH = 17
CHECK_POSITION = 8  # 0-based index of the check character

# Characters never allowed in a VIN (confusable with 1, 0)
FORBIDDEN_CHARS = frozenset("IOQ")

# Transliteration table; I, O and Q are deliberately absent
CHAR_VALUES: dict[str, int] = {
    "A": 1, "B": 2, "C": 3, "D": 4, "E": 5, "F": 6, "G": 7, "H": 8,
    "J": 1, "K": 2, "L": 3, "M": 4, "N": 5, "P": 7, "R": 9,
    "S": 2, "T": 3, "U": 4, "V": 5, "W": 6, "X": 7, "Y": 8, "Z": 9,
    "0": 0, "1": 1, "2": 2, "3": 3, "4": 4,
    "5": 5, "6": 6, "7": 7, "8": 8, "9": 9,
}  # fmt: skip

VIN_ALPHABET = frozenset(CHAR_VALUES)

# Weight 0 at the check position
POSITION_WEIGHTS: tuple[int, ...] = (8, 7, 6, 5, 4, 3, 2, 10, 0, 9, 8, 7, 6, 5, 4, 3, 2)


def compute_check(code: str) -> str:
    """Compute the check character for a 17-character code.

    The character currently at the check position is ignored. Characters
    outside the transliteration table count as 0; callers that need strict
    alphabet checking use ``validate_code`` or the assembler.

    Returns:
        "0".."9", or "X" when the weighted sum mod 11 is 10.

    Raises:
        LengthError: code is not exactly 17 characters.
    """
    if len(code) != VIN_LENGTH:
        raise LengthError(f"Code must be {VIN_LENGTH} characters, got {len(code)}")

    total = sum(
        CHAR_VALUES.get(char, 0) * weight
        for char, weight in zip(code.upper(), POSITION_WEIGHTS)
    )
    remainder = total % 11
    return "X" if remainder == 10 else str(remainder)


def splice_check(code: str) -> str:
    """Return ``code`` with its check position replaced by the computed character."""
    check = compute_check(code)
    return f"{code[:CHECK_POSITION]}{check}{code[CHECK_POSITION + 1:]}"
