"""
==============================================================================
Frame Preprocessor Module
==============================================================================

Turns one camera snapshot into an ordered list of candidate frames that
the decoder tries in turn:

    1. IDENTITY   the snapshot as captured
    2. CONTRAST   every color channel remapped by factor*(x-128)+128
    3. GRAYSCALE  every color channel replaced by 0.299R + 0.587G + 0.114B

Frames are OpenCV-style numpy arrays: uint8, H x W x 3 (BGR) or
H x W x 4 (BGRA). A fourth channel is alpha and is never modified.

==============================================================================
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import List

import numpy as np


# Module logger
logger = logging.getLogger(__name__)

DEFAULT_CONTRAST_FACTOR = 1.5

# Luminance weights in OpenCV channel order (B, G, R)
_LUMA_BGR = np.array([0.114, 0.587, 0.299], dtype=np.float64)


class FrameVariant(str, enum.Enum):
    IDENTITY = "identity"
    CONTRAST = "contrast"
    GRAYSCALE = "grayscale"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CandidateFrame:
    """A raster plus the preprocessing variant that produced it."""

    image: np.ndarray
    variant: FrameVariant


def _split_alpha(image: np.ndarray):
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"Expected HxWx3 or HxWx4 image, got shape {image.shape}")
    return image[..., :3], (image[..., 3:] if image.shape[2] == 4 else None)


def _join_alpha(color: np.ndarray, alpha) -> np.ndarray:
    if alpha is None:
        return color
    return np.concatenate([color, alpha], axis=2)


def enhance_contrast(image: np.ndarray, factor: float = DEFAULT_CONTRAST_FACTOR) -> np.ndarray:
    """
    Stretch each color channel around mid-grey.

    ``out = clip(factor * (in - 128) + 128, 0, 255)``, rounded to the
    nearest integer. Returns a new array, the input is left untouched.
    """
    color, alpha = _split_alpha(image)
    stretched = factor * (color.astype(np.float64) - 128.0) + 128.0
    stretched = np.rint(np.clip(stretched, 0.0, 255.0)).astype(np.uint8)
    return _join_alpha(stretched, alpha)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Replace each color channel with the pixel luminance.

    The channel count is kept so the result can go through the same decode
    path as the other variants. Applying it twice gives the same result.
    """
    color, alpha = _split_alpha(image)
    luma = color.astype(np.float64) @ _LUMA_BGR
    # Half-up rounding
    gray = np.floor(luma + 0.5).clip(0, 255).astype(np.uint8)
    gray = np.repeat(gray[..., np.newaxis], 3, axis=2)
    return _join_alpha(gray, alpha)


class FramePreprocessor:
    """
    Produces the candidate frames for one snapshot.

    Example:
        >>> preprocessor = FramePreprocessor(contrast_factor=1.5)
        >>> [c.variant for c in preprocessor.variants(frame)]
        [<FrameVariant.IDENTITY: 'identity'>, <FrameVariant.CONTRAST: 'contrast'>,
         <FrameVariant.GRAYSCALE: 'grayscale'>]
    """

    def __init__(self, contrast_factor: float = DEFAULT_CONTRAST_FACTOR) -> None:
        self.contrast_factor = contrast_factor

    def variants(self, image: np.ndarray) -> List[CandidateFrame]:
        """Return identity, contrast and grayscale candidates in that order."""
        return [
            CandidateFrame(image, FrameVariant.IDENTITY),
            CandidateFrame(enhance_contrast(image, self.contrast_factor), FrameVariant.CONTRAST),
            CandidateFrame(to_grayscale(image), FrameVariant.GRAYSCALE),
        ]
