"""
Barcode symbology rules: validation, detection, display formatting and
test code generation.
"""

from .symbology import Symbology, compute_check_digit
from .validator import (
    BARCODE_MATCH_FIELDS,
    BarcodeValidator,
    barcode_match_fields,
    detect_barcode_format,
    format_barcode,
    generate_test_barcode,
    upce_to_upca,
    validate_barcode,
)

__all__ = [
    "Symbology",
    "compute_check_digit",
    "BARCODE_MATCH_FIELDS",
    "BarcodeValidator",
    "barcode_match_fields",
    "detect_barcode_format",
    "format_barcode",
    "generate_test_barcode",
    "upce_to_upca",
    "validate_barcode",
]
