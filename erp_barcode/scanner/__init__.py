"""
==============================================================================
Scanner Package - Barcode Acquisition
==============================================================================

Capture, preprocessing, decoding and arbitration of camera frames.

Classes:
--------
- FramePreprocessor: identity / contrast / grayscale candidate frames
- PyzbarDecoder: ZBar symbol decoder
- OpenCVCaptureSource: local camera capture
- ScanArbiter: scanner state machine driver

==============================================================================
"""

from .arbiter import (
    Close,
    Decoded,
    Open,
    PermissionDenied,
    PermissionGranted,
    ScanArbiter,
    ScannerState,
    ScanPhase,
    StreamAttached,
    StreamFailed,
    ToggleFacing,
    TorchChanged,
    reduce,
)
from .camera import FacingMode, OpenCVCaptureSource
from .decoder import DecodeResult, PyzbarDecoder
from .preprocess import CandidateFrame, FramePreprocessor, FrameVariant, enhance_contrast, to_grayscale

__all__ = [
    "Close",
    "Decoded",
    "Open",
    "PermissionDenied",
    "PermissionGranted",
    "ScanArbiter",
    "ScannerState",
    "ScanPhase",
    "StreamAttached",
    "StreamFailed",
    "ToggleFacing",
    "TorchChanged",
    "reduce",
    "FacingMode",
    "OpenCVCaptureSource",
    "DecodeResult",
    "PyzbarDecoder",
    "CandidateFrame",
    "FramePreprocessor",
    "FrameVariant",
    "enhance_contrast",
    "to_grayscale",
]
