"""
Local camera scanner.

Runs the timer-driven scan loop on a camera attached to this machine and
prints the first accepted barcode with its detected symbology.

    erp-barcode-scan --camera back --timeout 30 --format EAN-13

Exit codes:
    0  barcode accepted
    1  timed out or closed without a scan
    2  camera permission denied
    3  camera stream error
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Iterable, Optional

from erp_barcode.barcode import BarcodeValidator, Symbology
from erp_barcode.config import Settings, get_settings
from .arbiter import ScanArbiter, ScanPhase
from .camera import FacingMode, OpenCVCaptureSource
from .decoder import DecodeResult, PyzbarDecoder
from .preprocess import FramePreprocessor


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NO_SCAN = 1
EXIT_PERMISSION_DENIED = 2
EXIT_STREAM_ERROR = 3


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scan one barcode from a local camera")
    parser.add_argument(
        "--camera",
        choices=["front", "back"],
        default="back",
        help="Camera to use (default: back)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Give up after this many seconds",
    )
    parser.add_argument(
        "--format",
        dest="barcode_format",
        choices=[s.value for s in Symbology],
        default=None,
        help="Validate strictly against this symbology",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    return parser.parse_args(list(argv) if argv is not None else None)


def build_arbiter(settings: Settings, facing: FacingMode) -> ScanArbiter:
    return ScanArbiter(
        PyzbarDecoder(),
        preprocessor=FramePreprocessor(settings.contrast_factor),
        source=OpenCVCaptureSource(settings),
        interval=settings.scan_interval_seconds,
        cooldown=settings.scan_cooldown_seconds,
        facing_mode=facing,
    )


def report(result: DecodeResult, validator: BarcodeValidator, barcode_format: Optional[str]) -> None:
    detected = validator.detect_format(result.text)
    valid = validator.validate(result.text, barcode_format)
    print(f"Barcode:   {result.text}")
    print(f"Format:    {detected.value if detected else 'unknown'}")
    print(f"Formatted: {validator.format(result.text, detected)}")
    print(f"Valid:     {'yes' if valid else 'no'}")


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()

    logging.basicConfig(
        level=logging.DEBUG if (args.debug or settings.debug) else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )

    validator = BarcodeValidator(
        strict_upce=settings.strict_upce_checksum,
        numeric_code128=settings.numeric_code128_fallback,
    )
    arbiter = build_arbiter(settings, FacingMode.from_camera_name(args.camera))

    state = arbiter.open()
    if state.phase == ScanPhase.PERMISSION_DENIED:
        print(f"❌ {state.error}", file=sys.stderr)
        return EXIT_PERMISSION_DENIED
    if state.error:
        print(f"❌ {state.error}", file=sys.stderr)
        arbiter.close()
        return EXIT_STREAM_ERROR

    print("📷 Scanning... (Ctrl+C to stop)")

    try:
        result = asyncio.run(
            arbiter.run(
                lambda r: report(r, validator, args.barcode_format),
                max_duration=args.timeout,
            )
        )
    except KeyboardInterrupt:
        arbiter.close()
        return EXIT_NO_SCAN

    if result is not None:
        return EXIT_OK

    # run() only stops early on a stream failure; the error survives until close
    error = arbiter.state.error
    arbiter.close()
    if error:
        print(f"❌ {error}", file=sys.stderr)
        return EXIT_STREAM_ERROR

    print("No barcode scanned", file=sys.stderr)
    return EXIT_NO_SCAN


if __name__ == "__main__":
    sys.exit(main())
