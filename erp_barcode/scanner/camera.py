"""
==============================================================================
Capture Source Module
==============================================================================

Local camera access through OpenCV.

A capture source holds at most one open stream. Switching facing mode
releases the current device before the other one is opened.

Requested constraints (from Settings):
    resolution   ideal 1920x1080, minimum 640x480
    frame rate   ideal 30 fps, minimum 15 fps
    focus        continuous (autofocus on)
    exposure     continuous (auto exposure on)

==============================================================================
"""

from __future__ import annotations

import enum
import logging
from typing import Optional, Protocol

import cv2
import numpy as np

from erp_barcode.config import Settings
from erp_barcode.core.exceptions import camera_permission_denied, camera_stream_error


# Module logger
logger = logging.getLogger(__name__)


class FacingMode(str, enum.Enum):
    """Camera facing, named after the media-capture constraint values."""

    USER = "user"
    ENVIRONMENT = "environment"

    def __str__(self) -> str:
        return self.value

    def flipped(self) -> "FacingMode":
        return FacingMode.USER if self == FacingMode.ENVIRONMENT else FacingMode.ENVIRONMENT

    @classmethod
    def from_camera_name(cls, name: str) -> "FacingMode":
        """Map the CLI names "front"/"back" (or the raw values) to a mode."""
        value = (name or "").strip().lower()
        if value in ("front", "user"):
            return cls.USER
        return cls.ENVIRONMENT


class CaptureSource(Protocol):
    def start(self, facing: FacingMode) -> None:
        ...

    def snapshot(self) -> np.ndarray:
        ...

    def set_torch(self, enabled: bool) -> bool:
        ...

    def stop(self) -> None:
        ...


class OpenCVCaptureSource:
    """
    Capture source backed by ``cv2.VideoCapture``.

    The front camera maps to ``camera_front_index`` and the back camera to
    ``camera_back_index``.

    Raises:
        AppException: CAMERA_PERMISSION_DENIED from start() when the device
            cannot be opened, CAMERA_STREAM_ERROR from snapshot() when a
            frame cannot be read
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._cap: Optional[cv2.VideoCapture] = None
        self._facing: Optional[FacingMode] = None

    @property
    def is_running(self) -> bool:
        return self._cap is not None

    @property
    def facing(self) -> Optional[FacingMode]:
        return self._facing

    def _device_index(self, facing: FacingMode) -> int:
        if facing == FacingMode.USER:
            return self._settings.camera_front_index
        return self._settings.camera_back_index

    def start(self, facing: FacingMode) -> None:
        """Open the device for ``facing`` and apply the constraints."""
        self.stop()

        index = self._device_index(facing)
        cap = cv2.VideoCapture(index)

        if not cap.isOpened():
            cap.release()
            logger.warning(f"Cannot open camera {index} ({facing.value})")
            raise camera_permission_denied()

        self._apply_constraints(cap)
        self._cap = cap
        self._facing = facing
        logger.info(f"📷 Camera {index} started ({facing.value})")

    def _apply_constraints(self, cap: cv2.VideoCapture) -> None:
        s = self._settings
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, s.camera_ideal_width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, s.camera_ideal_height)
        cap.set(cv2.CAP_PROP_FPS, s.camera_ideal_fps)
        cap.set(cv2.CAP_PROP_AUTOFOCUS, 1)
        # 0.75 selects aperture-priority (auto) exposure on V4L2
        cap.set(cv2.CAP_PROP_AUTO_EXPOSURE, 0.75)

        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        fps = cap.get(cv2.CAP_PROP_FPS)

        if width < s.camera_min_width or height < s.camera_min_height:
            logger.warning(
                f"Camera resolution {width}x{height} below minimum "
                f"{s.camera_min_width}x{s.camera_min_height}"
            )
        # Many backends report 0 when the rate is unknown
        if 0 < fps < s.camera_min_fps:
            logger.warning(f"Camera frame rate {fps:.1f} below minimum {s.camera_min_fps}")

    def snapshot(self) -> np.ndarray:
        if self._cap is None:
            raise camera_stream_error("Camera is not started")

        ok, frame = self._cap.read()
        if not ok or frame is None:
            logger.warning("Failed to read frame")
            raise camera_stream_error("Failed to read frame")

        return frame

    def set_torch(self, enabled: bool) -> bool:
        """OpenCV exposes no torch control, so this is always a no-op."""
        logger.debug(f"Torch {'on' if enabled else 'off'} not supported by OpenCV capture")
        return False

    def stop(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.debug("Camera released")
