"""
==============================================================================
Barcode Validator Module
==============================================================================

Structural and checksum validation of decoded or typed barcode strings.

This module implements:
- BarcodeValidator: validate / detect_format / format / generate
- upce_to_upca: UPC-E zero-suppression expansion
- barcode_match_fields: catalog columns a scanned string is matched against

Per-symbology rules:
-------------------
    EAN-13   13 digits, check digit (weights 1,3)
    EAN-8     8 digits, check digit (weights 3,1)
    UPC-A    12 digits, check digit (weights 3,1)
    UPC-E     8 digits, length only unless strict_upce is set
    Code128  non-empty, 7-bit ASCII only
    Code39   non-empty, [A-Z0-9-. $/+%*] and whitespace

Detection Order:
---------------
Detection returns the first symbology whose rule accepts the string, in the
order above. Code128 accepts any ASCII, so an all-digit string with a bad
check digit (for example "4006381333932") is reported as Code128. That is
the default. With ``numeric_code128=False`` such strings are not detected
as anything.

==============================================================================
"""

from __future__ import annotations

import logging
import random
import re
from typing import Callable, Dict, List, Optional, Union

from .symbology import (
    CHECKSUM_WEIGHTS,
    Symbology,
    compute_check_digit,
    has_valid_check_digit,
    is_ascii_digits,
)


# Module logger
logger = logging.getLogger(__name__)

FormatArg = Optional[Union[str, Symbology]]

# Catalog columns compared against a scanned string, in priority order
BARCODE_MATCH_FIELDS = ("barcode", "ean_code", "upc_code", "gtin", "sku")


def upce_to_upca(barcode: str) -> Optional[str]:
    """
    Expand an 8-digit UPC-E code to its 12-digit UPC-A form.

    Returns None when the string is not 8 digits or its number system
    is not 0 or 1. The UPC-E check digit is carried over unchanged.

    Example:
        >>> upce_to_upca("04252614")
        '042100005264'
    """
    if not is_ascii_digits(barcode or "", 8):
        return None

    number_system, body, check = barcode[0], barcode[1:7], barcode[7]
    if number_system not in ("0", "1"):
        return None

    d1, d2, d3, d4, d5, d6 = body
    if d6 in "012":
        expanded = f"{d1}{d2}{d6}0000{d3}{d4}{d5}"
    elif d6 == "3":
        expanded = f"{d1}{d2}{d3}00000{d4}{d5}"
    elif d6 == "4":
        expanded = f"{d1}{d2}{d3}{d4}00000{d5}"
    else:
        expanded = f"{d1}{d2}{d3}{d4}{d5}0000{d6}"

    return f"{number_system}{expanded}{check}"


def barcode_match_fields(barcode: str) -> Dict[str, str]:
    """Map every catalog match column to the trimmed scanned string."""
    clean = (barcode or "").strip()
    return {field: clean for field in BARCODE_MATCH_FIELDS}


class BarcodeValidator:
    """
    Validator for the supported barcode symbologies.

    Attributes:
        strict_upce: Verify the UPC-E check digit via UPC-A expansion
        numeric_code128: Let all-digit strings fall through to Code128

    Example:
        >>> validator = BarcodeValidator()
        >>> validator.validate("4006381333931")
        True
        >>> validator.detect_format("4006381333931")
        <Symbology.EAN_13: 'EAN-13'>
        >>> validator.format("4006381333931")
        '4 006381 333931'
    """

    CODE128_PATTERN = re.compile(r"[\x00-\x7f]+")
    CODE39_PATTERN = re.compile(r"[A-Z0-9\-.\s$/+%*]+")

    # Display grouping for the fixed-length symbologies
    DISPLAY_PATTERNS = {
        Symbology.EAN_13: (re.compile(r"([0-9])([0-9]{6})([0-9]{6})"), r"\1 \2 \3"),
        Symbology.EAN_8: (re.compile(r"([0-9]{4})([0-9]{4})"), r"\1 \2"),
        Symbology.UPC_A: (re.compile(r"([0-9])([0-9]{5})([0-9]{5})([0-9])"), r"\1 \2 \3 \4"),
    }

    # Digits generated before the check digit
    GENERATED_PAYLOAD_LENGTHS = {
        Symbology.EAN_13: 12,
        Symbology.EAN_8: 7,
        Symbology.UPC_A: 11,
    }

    def __init__(self, strict_upce: bool = False, numeric_code128: bool = True) -> None:
        self.strict_upce = strict_upce
        self.numeric_code128 = numeric_code128
        self._rules: Dict[Symbology, Callable[[str], bool]] = {
            Symbology.EAN_13: self._is_ean13,
            Symbology.EAN_8: self._is_ean8,
            Symbology.UPC_A: self._is_upca,
            Symbology.UPC_E: self._is_upce,
            Symbology.CODE_128: self._is_code128,
            Symbology.CODE_39: self._is_code39,
        }

    # =========================================================================
    # PER-SYMBOLOGY RULES
    # =========================================================================

    def _is_ean13(self, barcode: str) -> bool:
        return has_valid_check_digit(barcode, Symbology.EAN_13)

    def _is_ean8(self, barcode: str) -> bool:
        return has_valid_check_digit(barcode, Symbology.EAN_8)

    def _is_upca(self, barcode: str) -> bool:
        return has_valid_check_digit(barcode, Symbology.UPC_A)

    def _is_upce(self, barcode: str) -> bool:
        if not is_ascii_digits(barcode, 8):
            return False
        if not self.strict_upce:
            return True
        expanded = upce_to_upca(barcode)
        return expanded is not None and self._is_upca(expanded)

    def _is_code128(self, barcode: str) -> bool:
        return self.CODE128_PATTERN.fullmatch(barcode) is not None

    def _is_code39(self, barcode: str) -> bool:
        return self.CODE39_PATTERN.fullmatch(barcode) is not None

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def validate(self, barcode: Optional[str], fmt: FormatArg = None) -> bool:
        """
        Validate a barcode string.

        Args:
            barcode: Raw string (surrounding whitespace is ignored)
            fmt: Symbology to validate against strictly. When omitted or
                unknown, the string is valid if any symbology accepts it.

        Returns:
            True if the string is well formed
        """
        if not barcode or not barcode.strip():
            return False

        clean = barcode.strip()
        symbology = Symbology.parse(fmt)

        if symbology is None:
            if fmt:
                logger.debug(f"Unknown format {fmt!r}, falling back to detection")
            return self.detect_format(clean) is not None

        return self._rules[symbology](clean)

    def detect_format(self, barcode: Optional[str]) -> Optional[Symbology]:
        """
        Return the first symbology whose rule accepts the string.

        Tries EAN-13, EAN-8, UPC-A, UPC-E, Code128, Code39 in that order.
        """
        clean = (barcode or "").strip()
        if not clean:
            return None

        for symbology, rule in self._rules.items():
            if not rule(clean):
                continue
            if not self.numeric_code128 and is_ascii_digits(clean) and not (
                symbology.has_checksum or symbology == Symbology.UPC_E
            ):
                # All-digit strings that failed every checksum stay undetected
                return None
            return symbology

        return None

    def format(self, barcode: Optional[str], fmt: FormatArg = None) -> str:
        """
        Group digits with spaces for display.

        EAN-13 becomes "D DDDDDD DDDDDD", EAN-8 "DDDD DDDD" and UPC-A
        "D DDDDD DDDDD D". Anything else is returned trimmed but unchanged.
        """
        if not barcode:
            return ""

        clean = barcode.strip()
        symbology = Symbology.parse(fmt) if fmt else self.detect_format(clean)

        display = self.DISPLAY_PATTERNS.get(symbology)
        if display is None:
            return clean

        pattern, replacement = display
        return pattern.sub(replacement, clean, count=1)

    def generate(
        self,
        fmt: FormatArg = Symbology.EAN_13,
        rng: Optional[random.Random] = None
    ) -> str:
        """
        Generate a random code with a correct check digit.

        Supports EAN-13, EAN-8 and UPC-A. Any other format produces EAN-13.
        """
        rng = rng or random.Random()
        symbology = Symbology.parse(fmt)
        if symbology not in self.GENERATED_PAYLOAD_LENGTHS:
            symbology = Symbology.EAN_13

        length = self.GENERATED_PAYLOAD_LENGTHS[symbology]
        payload = "".join(str(rng.randint(0, 9)) for _ in range(length))
        check = compute_check_digit(payload, CHECKSUM_WEIGHTS[symbology])
        return f"{payload}{check}"

    def supported_formats(self) -> List[Symbology]:
        return list(self._rules)


# =============================================================================
# MODULE-LEVEL HELPERS (default rules)
# =============================================================================

_default_validator = BarcodeValidator()


def validate_barcode(barcode: Optional[str], fmt: FormatArg = None) -> bool:
    return _default_validator.validate(barcode, fmt)


def detect_barcode_format(barcode: Optional[str]) -> Optional[Symbology]:
    return _default_validator.detect_format(barcode)


def format_barcode(barcode: Optional[str], fmt: FormatArg = None) -> str:
    return _default_validator.format(barcode, fmt)


def generate_test_barcode(
    fmt: FormatArg = Symbology.EAN_13,
    rng: Optional[random.Random] = None
) -> str:
    return _default_validator.generate(fmt, rng)
