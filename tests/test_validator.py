"""
==============================================================================
Barcode Validator Tests
==============================================================================

Checksum rules, detection order, display formatting and generation.

==============================================================================
"""

import random

import pytest

from erp_barcode.barcode import (
    BarcodeValidator,
    Symbology,
    barcode_match_fields,
    compute_check_digit,
    detect_barcode_format,
    format_barcode,
    generate_test_barcode,
    upce_to_upca,
    validate_barcode,
)


class TestValidate:
    """Tests for validate()."""

    @pytest.mark.parametrize("barcode", ["4006381333931", "036000291452", "96385074"])
    def test_checksummed_codes_are_valid(self, barcode: str):
        assert validate_barcode(barcode) is True

    def test_surrounding_whitespace_is_ignored(self):
        assert validate_barcode("  4006381333931\n") is True

    @pytest.mark.parametrize("barcode", ["", "   ", None])
    def test_empty_is_invalid(self, barcode):
        assert validate_barcode(barcode) is False

    def test_non_ascii_is_invalid(self):
        assert validate_barcode("café") is False

    @pytest.mark.parametrize("fmt", [None, "EAN-13", "UPC-E"])
    def test_superscript_check_digit_is_invalid(self, fmt):
        assert validate_barcode("400638133393\u00b9", fmt) is False

    @pytest.mark.parametrize("fmt", [None, "EAN-13"])
    def test_non_ascii_digits_are_invalid(self, fmt):
        arabic_indic = "\u0664\u0660\u0660\u0666\u0663\u0668\u0661\u0663\u0663\u0663\u0669\u0663\u0661"
        assert validate_barcode(arabic_indic, fmt) is False
        assert detect_barcode_format(arabic_indic) is None

    def test_non_ascii_upce_is_invalid(self):
        assert validate_barcode("\u0660\u0664\u0662\u0665\u0662\u0666\u0661\u0664", "UPC-E") is False
        assert BarcodeValidator(strict_upce=True).validate("\u0660\u0664\u0662\u0665\u0662\u0666\u0661\u0664") is False

    def test_explicit_format_is_strict(self):
        assert validate_barcode("4006381333932", "EAN-13") is False
        assert validate_barcode("4006381333931", "EAN-13") is True
        assert validate_barcode("4006381333931", "EAN-8") is False

    def test_wrong_checksum_still_valid_as_code128(self):
        """All-digit strings that fail every checksum fall through to Code128."""
        assert validate_barcode("4006381333932") is True
        assert detect_barcode_format("4006381333932") == Symbology.CODE_128

    def test_unknown_format_falls_back_to_detection(self):
        assert validate_barcode("4006381333931", "QR") is True

    def test_code39_alphabet(self):
        assert validate_barcode("ABC-123", "Code39") is True
        assert validate_barcode("abc-123", "Code39") is False

    def test_format_aliases(self):
        assert validate_barcode("036000291452", "upca") is True
        assert validate_barcode("96385074", "EAN8") is True


class TestDetectFormat:
    """Tests for detect_format()."""

    @pytest.mark.parametrize("barcode, expected", [
        ("4006381333931", Symbology.EAN_13),
        ("96385074", Symbology.EAN_8),
        ("036000291452", Symbology.UPC_A),
        ("04252614", Symbology.UPC_E),
        ("ABC-123", Symbology.CODE_128),
        ("LBL-A6-100", Symbology.CODE_128),
    ])
    def test_detection_order(self, barcode: str, expected: Symbology):
        assert detect_barcode_format(barcode) == expected

    def test_undetectable(self):
        assert detect_barcode_format("") is None
        assert detect_barcode_format("üñî") is None

    def test_numeric_code128_fallback_can_be_disabled(self):
        validator = BarcodeValidator(numeric_code128=False)
        assert validator.detect_format("4006381333932") is None
        assert validator.validate("4006381333932") is False
        assert validator.detect_format("4006381333931") == Symbology.EAN_13
        assert validator.detect_format("LBL-A6-100") == Symbology.CODE_128

    def test_strict_upce_checks_expanded_digit(self):
        strict = BarcodeValidator(strict_upce=True)
        assert strict.detect_format("04252614") == Symbology.UPC_E
        assert strict.validate("04252615", "UPC-E") is False
        assert BarcodeValidator().validate("04252615", "UPC-E") is True


class TestFormat:
    """Tests for format()."""

    def test_ean13(self):
        assert format_barcode("4006381333931") == "4 006381 333931"

    def test_ean8(self):
        assert format_barcode("96385074") == "9638 5074"

    def test_upca(self):
        assert format_barcode("036000291452") == "0 36000 29145 2"

    def test_other_formats_unchanged(self):
        assert format_barcode(" LBL-A6-100 ") == "LBL-A6-100"
        assert format_barcode("") == ""

    def test_explicit_format_wins(self):
        assert format_barcode("036000291452", "EAN-13") == "036000291452"


class TestGenerate:
    """Tests for generate_test_barcode()."""

    @pytest.mark.parametrize("fmt, length", [("EAN-13", 13), ("EAN-8", 8), ("UPC-A", 12)])
    def test_generated_codes_validate(self, fmt: str, length: int):
        rng = random.Random(42)
        for _ in range(20):
            code = generate_test_barcode(fmt, rng)
            assert len(code) == length
            assert validate_barcode(code, fmt) is True

    def test_unknown_format_generates_ean13(self):
        code = generate_test_barcode("Code39", random.Random(1))
        assert len(code) == 13
        assert validate_barcode(code, "EAN-13") is True

    def test_seeded_generation_is_reproducible(self):
        assert generate_test_barcode("EAN-13", random.Random(7)) == \
            generate_test_barcode("EAN-13", random.Random(7))


class TestHelpers:
    """Tests for checksum and lookup helpers."""

    def test_compute_check_digit(self):
        assert compute_check_digit("400638133393", (1, 3)) == 1
        assert compute_check_digit("03600029145", (3, 1)) == 2
        assert compute_check_digit("9638507", (3, 1)) == 4

    def test_upce_expansion(self):
        assert upce_to_upca("04252614") == "042100005264"
        assert upce_to_upca("24252614") is None
        assert upce_to_upca("1234") is None
        assert upce_to_upca("\u0660\u0664\u0662\u0665\u0662\u0666\u0661\u0664") is None

    def test_match_fields_cover_all_columns(self):
        assert barcode_match_fields(" 123 ") == {
            "barcode": "123",
            "ean_code": "123",
            "upc_code": "123",
            "gtin": "123",
            "sku": "123",
        }

    def test_supported_formats_in_detection_order(self):
        assert [s.value for s in BarcodeValidator().supported_formats()] == [
            "EAN-13", "EAN-8", "UPC-A", "UPC-E", "Code128", "Code39"
        ]
