"""
==============================================================================
Symbol Decoder Module
==============================================================================

Extracts one barcode payload from one raster using pyzbar (ZBar).

There are exactly two outcomes per call:
- a DecodeResult (text, symbology hint, timestamp)
- None, meaning "not found"

Corrupt input or a decoder crash is logged and reported as None so the scan
loop simply moves on to the next variant or the next tick.

==============================================================================
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

import numpy as np

from erp_barcode.barcode import Symbology


# Module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodeResult:
    """
    A decoded payload.

    Attributes:
        text: Decoded string
        symbology: Symbology hint from the decoder, None if not one we know
        raw_type: Type name as reported by the decoder (e.g. "EAN13", "QRCODE")
        timestamp: Wall clock time of the decode
    """

    text: str
    symbology: Optional[Symbology] = None
    raw_type: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


class SymbolDecoder(Protocol):
    def decode(self, image: np.ndarray) -> Optional[DecodeResult]:
        ...


class PyzbarDecoder:
    """
    ZBar-backed decoder.

    The first symbol ZBar reports wins. pyzbar is loaded when the decoder is
    built because it needs the zbar shared library at import time.

    Example:
        >>> decoder = PyzbarDecoder()
        >>> result = decoder.decode(frame)
        >>> result.text if result else None
        '4006381333931'
    """

    def __init__(self) -> None:
        from pyzbar import pyzbar

        self._pyzbar = pyzbar

    def decode(self, image: np.ndarray) -> Optional[DecodeResult]:
        if image is None or image.size == 0:
            return None

        try:
            symbols = self._pyzbar.decode(image)
        except Exception as e:
            logger.warning(f"Decode error: {e}")
            return None

        for symbol in symbols:
            try:
                text = symbol.data.decode("utf-8")
            except UnicodeDecodeError:
                logger.warning(f"Skipping non UTF-8 {symbol.type} payload")
                continue

            if not text:
                continue

            return DecodeResult(
                text=text,
                symbology=Symbology.parse(symbol.type),
                raw_type=symbol.type,
            )

        return None
