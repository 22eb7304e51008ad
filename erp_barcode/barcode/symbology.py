"""
Barcode symbologies and their check digit arithmetic.

EAN-13, EAN-8 and UPC-A share one check digit formula and differ only in
the weight applied to even and odd positions of the payload:

    EAN-13   weights 1,3,1,3,...   over the first 12 digits
    EAN-8    weights 3,1,3,1,...   over the first 7 digits
    UPC-A    weights 3,1,3,1,...   over the first 11 digits

    check = (10 - sum % 10) % 10
"""

from __future__ import annotations

import enum
import re
from typing import Dict, Optional, Tuple


class Symbology(str, enum.Enum):
    """
    Known barcode symbologies, valued by their display name.

    The declaration order is the auto-detection order.
    """

    EAN_13 = "EAN-13"
    EAN_8 = "EAN-8"
    UPC_A = "UPC-A"
    UPC_E = "UPC-E"
    CODE_128 = "Code128"
    CODE_39 = "Code39"

    def __str__(self) -> str:
        return self.value

    @property
    def has_checksum(self) -> bool:
        return self in (Symbology.EAN_13, Symbology.EAN_8, Symbology.UPC_A)

    @property
    def length(self) -> Optional[int]:
        """Fixed digit count, or None for variable-length symbologies."""
        return _FIXED_LENGTHS.get(self)

    @classmethod
    def parse(cls, name: Optional[str]) -> Optional["Symbology"]:
        """
        Resolve a display name or decoder type name to a symbology.

        Accepts "EAN-13", "ean13", "EAN13", "CODE128", "UPCA" and similar.
        Returns None for anything unknown.
        """
        if not name:
            return None
        if isinstance(name, cls):
            return name
        key = re.sub(r"[^a-z0-9]", "", str(name).lower())
        return _ALIASES.get(key)


_FIXED_LENGTHS: Dict[Symbology, int] = {
    Symbology.EAN_13: 13,
    Symbology.EAN_8: 8,
    Symbology.UPC_A: 12,
    Symbology.UPC_E: 8,
}

_ALIASES: Dict[str, Symbology] = {
    "ean13": Symbology.EAN_13,
    "ean8": Symbology.EAN_8,
    "upca": Symbology.UPC_A,
    "upce": Symbology.UPC_E,
    "code128": Symbology.CODE_128,
    "code39": Symbology.CODE_39,
}

# str.isdigit and \d also accept non-ASCII digits
ASCII_DIGITS = re.compile(r"[0-9]+")

# Weights applied to (even index, odd index) of the payload
CHECKSUM_WEIGHTS: Dict[Symbology, Tuple[int, int]] = {
    Symbology.EAN_13: (1, 3),
    Symbology.EAN_8: (3, 1),
    Symbology.UPC_A: (3, 1),
}


def compute_check_digit(payload: str, weights: Tuple[int, int]) -> int:
    """
    Compute the modulo-10 check digit of a digit payload.

    Args:
        payload: Digits without the check digit
        weights: Multipliers for even and odd 0-based positions

    Returns:
        Check digit 0-9

    Example:
        >>> compute_check_digit("400638133393", (1, 3))
        1
    """
    even_weight, odd_weight = weights
    total = sum(
        int(digit) * (even_weight if index % 2 == 0 else odd_weight)
        for index, digit in enumerate(payload)
    )
    return (10 - total % 10) % 10


def is_ascii_digits(value: str, length: Optional[int] = None) -> bool:
    """True for a non-empty run of 0-9 (of exactly ``length`` when given)."""
    if not value or not ASCII_DIGITS.fullmatch(value):
        return False
    return length is None or len(value) == length


def has_valid_check_digit(barcode: str, symbology: Symbology) -> bool:
    """Check a full fixed-length code, check digit last."""
    length = symbology.length
    if length is None or not is_ascii_digits(barcode, length):
        return False
    weights = CHECKSUM_WEIGHTS[symbology]
    return compute_check_digit(barcode[:-1], weights) == int(barcode[-1])
