"""
==============================================================================
Scan Arbiter Module
==============================================================================

The scanner state machine and the loop that drives it.

State Machine:
-------------

              Open + PermissionGranted + StreamAttached
    ┌──────┐ ─────────────────────────────────────────▶ ┌──────────┐
    │ IDLE │                                            │ SCANNING │
    └──────┘ ◀──────────── StreamFailed / ToggleFacing  └──────────┘
      ▲  │                                                   │
      │  │ PermissionDenied                   Decoded, past  │
      │  ▼                                    the cool-down  ▼
    ┌───────────────────┐                              ┌──────────┐
    │ PERMISSION_DENIED │                              │ ACCEPTED │
    └───────────────────┘                              └──────────┘
      │ PermissionGranted (retry)                          │ Close
      └──────────▶ IDLE ◀──────────────────────────────────┘

All transitions live in ``reduce``, a pure function over an immutable
ScannerState. ScanArbiter owns one state value, the capture source and the
decoder, and feeds events through the reducer.

Cool-down:
---------
A decode is accepted only while SCANNING and only when
``now - last_accepted_at > cooldown``. ``last_accepted_at`` survives Close,
so quickly reopening the scanner over the same label does not fire twice.

Ticks:
-----
``run()`` awaits each tick before sleeping for what is left of the interval,
so a slow decode delays the next tick instead of overlapping it.

==============================================================================
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Union

import numpy as np

from erp_barcode.core.exceptions import AppException
from .camera import CaptureSource, FacingMode
from .decoder import DecodeResult, SymbolDecoder
from .preprocess import FramePreprocessor


# Module logger
logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 0.3
DEFAULT_COOLDOWN = 1.5


class ScanPhase(str, enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    ACCEPTED = "accepted"
    PERMISSION_DENIED = "permission_denied"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ScannerState:
    """
    Snapshot of one scanner.

    Attributes:
        phase: Current state machine phase
        facing_mode: Camera facing requested for the stream
        torch_on: Flashlight state reported by the device
        is_open: Whether the scanner dialog/session is open
        permission: True granted, False denied, None not asked yet
        last_accepted_at: Clock time of the last accepted decode
        accepted: The decode accepted in this session
        error: User-visible message for permission or stream failures
    """

    phase: ScanPhase = ScanPhase.IDLE
    facing_mode: FacingMode = FacingMode.ENVIRONMENT
    torch_on: bool = False
    is_open: bool = False
    permission: Optional[bool] = None
    last_accepted_at: Optional[float] = None
    accepted: Optional[DecodeResult] = None
    error: Optional[str] = None

    @property
    def is_scanning(self) -> bool:
        return self.phase == ScanPhase.SCANNING

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "facing_mode": self.facing_mode.value,
            "torch_on": self.torch_on,
            "is_open": self.is_open,
            "permission": self.permission,
            "error": self.error,
        }


# =============================================================================
# EVENTS
# =============================================================================

@dataclass(frozen=True)
class Open:
    pass


@dataclass(frozen=True)
class PermissionGranted:
    pass


@dataclass(frozen=True)
class PermissionDenied:
    message: str = "Camera permission denied. Please allow camera access to scan barcodes."


@dataclass(frozen=True)
class StreamAttached:
    pass


@dataclass(frozen=True)
class StreamFailed:
    message: str = "Failed to access camera. Please check permissions."


@dataclass(frozen=True)
class Decoded:
    result: DecodeResult
    at: float


@dataclass(frozen=True)
class Close:
    pass


@dataclass(frozen=True)
class ToggleFacing:
    pass


@dataclass(frozen=True)
class TorchChanged:
    enabled: bool


ScanEvent = Union[
    Open, PermissionGranted, PermissionDenied, StreamAttached, StreamFailed,
    Decoded, Close, ToggleFacing, TorchChanged,
]


# =============================================================================
# REDUCER
# =============================================================================

def reduce(state: ScannerState, event: ScanEvent, cooldown: float = DEFAULT_COOLDOWN) -> ScannerState:
    """
    Apply one event to a scanner state.

    Events that make no sense in the current phase return ``state`` itself.
    """
    if isinstance(event, Open):
        if state.is_open and state.phase != ScanPhase.IDLE:
            return state
        return replace(
            state,
            phase=ScanPhase.IDLE,
            is_open=True,
            accepted=None,
            error=None,
        )

    if isinstance(event, PermissionGranted):
        if not state.is_open:
            return state
        return replace(state, phase=ScanPhase.IDLE, permission=True, error=None)

    if isinstance(event, PermissionDenied):
        if not state.is_open:
            return state
        return replace(
            state,
            phase=ScanPhase.PERMISSION_DENIED,
            permission=False,
            error=event.message,
        )

    if isinstance(event, StreamAttached):
        if not state.is_open or state.permission is not True or state.phase != ScanPhase.IDLE:
            return state
        return replace(state, phase=ScanPhase.SCANNING, error=None)

    if isinstance(event, StreamFailed):
        if not state.is_open or state.phase == ScanPhase.PERMISSION_DENIED:
            return state
        return replace(state, phase=ScanPhase.IDLE, torch_on=False, error=event.message)

    if isinstance(event, Decoded):
        if state.phase != ScanPhase.SCANNING:
            return state
        last = state.last_accepted_at
        if last is not None and event.at - last <= cooldown:
            return state
        return replace(
            state,
            phase=ScanPhase.ACCEPTED,
            last_accepted_at=event.at,
            accepted=event.result,
        )

    if isinstance(event, Close):
        return replace(
            state,
            phase=ScanPhase.IDLE,
            is_open=False,
            torch_on=False,
            permission=None,
            error=None,
        )

    if isinstance(event, ToggleFacing):
        phase = ScanPhase.IDLE if state.phase == ScanPhase.SCANNING else state.phase
        return replace(
            state,
            phase=phase,
            facing_mode=state.facing_mode.flipped(),
            torch_on=False,
        )

    if isinstance(event, TorchChanged):
        if not state.is_open:
            return state
        return replace(state, torch_on=event.enabled)

    raise TypeError(f"Unknown scanner event: {event!r}")


# =============================================================================
# DRIVER
# =============================================================================

ScanCallback = Callable[[DecodeResult], Any]


class ScanArbiter:
    """
    Drives capture, preprocessing and decoding for one scanner.

    Two modes share the same state machine:
    - timer mode: ``await run(on_scan)`` pulls snapshots from the capture
      source every ``interval`` seconds (local camera CLI)
    - push mode: the caller feeds frames via ``submit_frame`` and reports
      permission and stream events via ``dispatch`` (WebSocket, where the
      browser owns the camera)

    Example:
        >>> arbiter = ScanArbiter(PyzbarDecoder(), source=OpenCVCaptureSource(settings))
        >>> arbiter.open()
        >>> result = asyncio.run(arbiter.run(lambda r: print(r.text)))
    """

    def __init__(
        self,
        decoder: SymbolDecoder,
        preprocessor: Optional[FramePreprocessor] = None,
        source: Optional[CaptureSource] = None,
        interval: float = DEFAULT_INTERVAL,
        cooldown: float = DEFAULT_COOLDOWN,
        clock: Callable[[], float] = time.monotonic,
        facing_mode: FacingMode = FacingMode.ENVIRONMENT,
    ) -> None:
        self._decoder = decoder
        self._preprocessor = preprocessor or FramePreprocessor()
        self._source = source
        self._interval = interval
        self._cooldown = cooldown
        self._clock = clock
        self._state = ScannerState(facing_mode=facing_mode)

    @property
    def state(self) -> ScannerState:
        return self._state

    def dispatch(self, event: ScanEvent) -> ScannerState:
        """Feed one event through the reducer and keep the new state."""
        previous = self._state
        self._state = reduce(previous, event, self._cooldown)
        if self._state.phase != previous.phase:
            logger.debug(
                f"Scanner {previous.phase.value} -> {self._state.phase.value} "
                f"on {type(event).__name__}"
            )
        return self._state

    # =========================================================================
    # SESSION CONTROL
    # =========================================================================

    def open(self) -> ScannerState:
        """Open the scanner and, with a local source, acquire the camera."""
        self.dispatch(Open())
        if self._source is not None:
            self._acquire_stream()
        return self._state

    def retry_permission(self) -> ScannerState:
        """Ask for the camera again after a denial."""
        if not self._state.is_open:
            return self.open()
        if self._source is not None:
            self._acquire_stream()
        return self._state

    def _acquire_stream(self) -> None:
        try:
            self._source.start(self._state.facing_mode)
        except AppException as e:
            if e.code == "CAMERA_PERMISSION_DENIED":
                logger.warning(f"Camera permission denied: {e.message}")
                self.dispatch(PermissionDenied(e.message))
            else:
                logger.warning(f"Camera stream error: {e.message}")
                self.dispatch(PermissionGranted())
                self.dispatch(StreamFailed(e.message))
            return

        self.dispatch(PermissionGranted())
        self.dispatch(StreamAttached())

    def toggle_facing(self) -> ScannerState:
        """Switch cameras. A running stream is released and reacquired."""
        was_scanning = self._state.is_scanning
        self.dispatch(ToggleFacing())
        if self._source is not None and was_scanning:
            self._source.stop()
            self._acquire_stream()
        return self._state

    def toggle_torch(self) -> ScannerState:
        """Flip the torch if the source supports it, otherwise do nothing."""
        if self._source is None or not self._state.is_open:
            return self._state
        wanted = not self._state.torch_on
        if self._source.set_torch(wanted):
            self.dispatch(TorchChanged(wanted))
        return self._state

    def close(self) -> ScannerState:
        self.dispatch(Close())
        if self._source is not None:
            self._source.stop()
        return self._state

    # =========================================================================
    # DECODING
    # =========================================================================

    def decode_frame(self, frame: np.ndarray) -> Optional[DecodeResult]:
        """
        Try every candidate variant in order and stop at the first decode.

        Exceptions from a variant are logged and treated as "not found".
        """
        for candidate in self._preprocessor.variants(frame):
            try:
                result = self._decoder.decode(candidate.image)
            except Exception as e:
                logger.warning(f"Decode attempt failed on {candidate.variant.value}: {e}")
                continue
            if result is not None:
                logger.debug(f"Decoded {result.text!r} from {candidate.variant.value} variant")
                return result
        return None

    def accept(self, result: Optional[DecodeResult]) -> bool:
        """
        Arbitrate a decode against the phase and the cool-down.

        On acceptance the local stream is released. Returns True if the
        decode became the session's authoritative scan.
        """
        if result is None:
            return False

        self.dispatch(Decoded(result, self._clock()))
        if self._state.phase != ScanPhase.ACCEPTED or self._state.accepted is not result:
            return False

        logger.info(f"✅ Barcode accepted: {result.text}")
        if self._source is not None:
            self._source.stop()
        return True

    def submit_frame(self, frame: np.ndarray) -> Optional[DecodeResult]:
        """Decode and arbitrate one pushed frame. Returns the accepted decode."""
        if not self._state.is_scanning:
            return None
        result = self.decode_frame(frame)
        return result if self.accept(result) else None

    # =========================================================================
    # TIMER LOOP
    # =========================================================================

    async def tick(self) -> Optional[DecodeResult]:
        """One capture, preprocess and decode pass."""
        if not self._state.is_scanning or self._source is None:
            return None

        try:
            frame = await asyncio.to_thread(self._source.snapshot)
        except AppException as e:
            logger.warning(f"Camera stream error: {e.message}")
            self.dispatch(StreamFailed(e.message))
            self._source.stop()
            return None

        result = await asyncio.to_thread(self.decode_frame, frame)

        # The session may have closed while decoding
        if not self._state.is_scanning:
            return None

        return result if self.accept(result) else None

    async def run(
        self,
        on_scan: ScanCallback,
        max_duration: Optional[float] = None,
    ) -> Optional[DecodeResult]:
        """
        Scan until one decode is accepted, then call ``on_scan`` and close.

        Opens the scanner first if needed. Returns the accepted decode, or
        None when the scanner stops scanning (permission denied, stream
        error, closed) or ``max_duration`` elapses.
        """
        if not self._state.is_open:
            self.open()

        started = self._clock()

        while self._state.is_scanning:
            tick_started = self._clock()
            result = await self.tick()

            if result is not None:
                try:
                    outcome = on_scan(result)
                    if inspect.isawaitable(outcome):
                        await outcome
                finally:
                    self.close()
                return result

            if max_duration is not None and self._clock() - started >= max_duration:
                logger.info(f"Scan timed out after {max_duration}s")
                self.close()
                return None

            remaining = self._interval - (self._clock() - tick_started)
            await asyncio.sleep(max(0.0, remaining))

        return None
