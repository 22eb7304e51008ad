"""
==============================================================================
Scanner WebSocket Module
==============================================================================

Live barcode scanning where the browser owns the camera.

The browser is the capture source: it asks for camera permission, attaches
the stream and pushes JPEG frames. The server runs the scan arbiter in push
mode, decodes each frame, and resolves the accepted barcode either as a
product lookup or as a stock taking count.

Protocol:
---------
1. Client connects to /ws/scan?token=<JWT>
2. Client sends init:        {"type": "init", "mode": "lookup" | "stock_taking",
                              "session_id": "...", "facing_mode": "environment"}
3. Client reports camera:    {"type": "permission", "granted": true}
                             {"type": "stream", "status": "attached" | "error"}
4. Client sends frames:      {"type": "frame", "frame": "<base64 JPEG>"}
5. Server replies:           {"type": "state", ...}   after every state change
                             {"type": "scan", ...}    once per accepted decode
                             {"type": "rejected", ...} accepted but invalid
6. After a scan the session closes. {"type": "open"} starts the next one.

Other client messages: toggle_facing, torch, close, stop.

==============================================================================
"""

import asyncio
import base64
import binascii
import logging
from typing import Optional

import cv2
import numpy as np
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends, Query
from sqlalchemy.orm import Session

from erp_barcode.core.dependencies import authenticate_ws
from erp_barcode.core.exceptions import AppException
from erp_barcode.db.database import get_db
from erp_barcode.db.models import User
from erp_barcode.scanner import (
    DecodeResult,
    FacingMode,
    FramePreprocessor,
    PermissionDenied,
    PermissionGranted,
    ScanArbiter,
    StreamAttached,
    StreamFailed,
    TorchChanged,
)
from erp_barcode.schemas.barcode import ProductOut
from erp_barcode.schemas.stock_taking import ItemOut
from erp_barcode.services.barcode_service import BarcodeService
from erp_barcode.services.stock_taking_service import StockTakingService


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter()

MODE_LOOKUP = "lookup"
MODE_STOCK_TAKING = "stock_taking"


def decode_jpeg(payload: str) -> Optional[np.ndarray]:
    """Base64 JPEG/PNG to a BGR image, or None if it does not decode."""
    try:
        img_data = base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError):
        return None
    if not img_data:
        return None
    nparr = np.frombuffer(img_data, np.uint8)
    return cv2.imdecode(nparr, cv2.IMREAD_COLOR)


class ScannerWebSocketHandler:
    """
    Handler for one live scanning connection.

    Manages the lifecycle of a scanning session including:
    - Authentication
    - Arbiter state changes reported by the browser
    - Frame decoding off the event loop
    - Lookup or stock taking for the accepted scan
    """

    def __init__(self, websocket: WebSocket, db: Session):
        self._websocket = websocket
        self._db = db
        self._state = websocket.app.state
        self._user: Optional[User] = None
        self._mode = MODE_LOOKUP
        self._session_id: Optional[str] = None
        self._arbiter: Optional[ScanArbiter] = None
        self._barcodes = BarcodeService(db, self._state.scan_log, self._state.validator)
        self._stock_taking = StockTakingService(db, self._barcodes)

    # =========================================================================
    # MESSAGES OUT
    # =========================================================================

    async def send_error(self, message: str, code: str = "ERROR") -> None:
        """Send error message to client."""
        await self._websocket.send_json({
            "type": "error",
            "code": code,
            "message": message
        })

    async def send_state(self) -> None:
        await self._websocket.send_json({"type": "state", **self._arbiter.state.to_dict()})

    # =========================================================================
    # SETUP
    # =========================================================================

    def authenticate(self, token: Optional[str]) -> None:
        self._user = authenticate_ws(self._websocket.app, self._db, token)

    def _build_arbiter(self, facing_mode: FacingMode) -> ScanArbiter:
        settings = self._state.settings
        return ScanArbiter(
            self._state.decoder_factory(),
            preprocessor=FramePreprocessor(settings.contrast_factor),
            interval=settings.scan_interval_seconds,
            cooldown=settings.scan_cooldown_seconds,
            facing_mode=facing_mode,
        )

    async def handle_init(self, data: dict) -> bool:
        """Handle init message from client."""
        if not isinstance(data, dict) or data.get("type") != "init":
            await self.send_error("First message must be init", "INIT_REQUIRED")
            return False

        mode = data.get("mode", MODE_LOOKUP)
        if mode not in (MODE_LOOKUP, MODE_STOCK_TAKING):
            await self.send_error(f"Unknown mode: {mode}", "INVALID_MODE")
            return False

        if mode == MODE_STOCK_TAKING:
            session_id = data.get("session_id")
            session = self._stock_taking.get_session(session_id or "", self._user.company_id)
            if not session.is_active:
                await self.send_error(
                    f"Stock taking session is {session.status.value}", "SESSION_NOT_ACTIVE"
                )
                return False
            self._session_id = session.id

        try:
            facing = FacingMode(data.get("facing_mode", FacingMode.ENVIRONMENT.value))
        except ValueError:
            facing = FacingMode.ENVIRONMENT

        self._mode = mode
        self._arbiter = self._build_arbiter(facing)
        self._arbiter.open()

        logger.info(f"Init: mode={mode}, session={self._session_id}, facing={facing.value}")

        await self._websocket.send_json({
            "type": "init",
            "mode": self._mode,
            "session_id": self._session_id,
            "user": self._user.username
        })
        await self.send_state()
        return True

    # =========================================================================
    # MESSAGES IN
    # =========================================================================

    async def handle_permission(self, data: dict) -> None:
        if data.get("granted"):
            self._arbiter.dispatch(PermissionGranted())
        else:
            message = data.get("message") or "Camera permission denied. Please allow camera access to scan barcodes."
            logger.warning(f"Camera permission denied by client: {message}")
            self._arbiter.dispatch(PermissionDenied(message))
        await self.send_state()

    async def handle_stream(self, data: dict) -> None:
        if data.get("status") == "attached":
            self._arbiter.dispatch(StreamAttached())
        else:
            message = data.get("message") or "Failed to access camera. Please check permissions."
            logger.warning(f"Camera stream error reported by client: {message}")
            self._arbiter.dispatch(StreamFailed(message))
        await self.send_state()

    async def handle_frame(self, data: dict) -> None:
        """Decode one pushed frame. Frames outside SCANNING are dropped."""
        if not self._arbiter.state.is_scanning:
            return

        frame = decode_jpeg(data.get("frame") or "")
        if frame is None:
            return

        result = await asyncio.to_thread(self._arbiter.decode_frame, frame)

        # The client may have closed the session while decoding
        if not self._arbiter.state.is_scanning:
            return

        if self._arbiter.accept(result):
            await self.handle_scan(result)
            self._arbiter.close()
            await self.send_state()

    async def handle_scan(self, result: DecodeResult) -> None:
        """Resolve an accepted decode and report it."""
        validator = self._state.validator
        symbology = validator.detect_format(result.text)

        message = {
            "type": "scan",
            "barcode": result.text.strip(),
            "format": symbology.value if symbology else None,
            "valid": True,
            "products": [],
            "item": None,
        }

        try:
            if self._mode == MODE_STOCK_TAKING:
                outcome = self._stock_taking.record_scan(
                    self._session_id, result.text, self._user.company_id, self._user
                )
                message["products"] = [ProductOut.model_validate(outcome.product).model_dump(mode="json")]
                message["item"] = ItemOut.from_item(outcome.item).model_dump(mode="json")
                message["is_update"] = outcome.is_update
            else:
                resolution = self._barcodes.resolve_scan(
                    result.text, self._user.company_id, scanned_by=self._user.id
                )
                message["products"] = [
                    ProductOut.model_validate(p).model_dump(mode="json") for p in resolution.products
                ]
        except AppException as e:
            if e.code == "INVALID_BARCODE":
                await self._websocket.send_json({
                    "type": "rejected",
                    "barcode": result.text,
                    "code": e.code,
                    "message": e.message
                })
            else:
                await self.send_error(e.message, e.code)
            return

        await self._websocket.send_json(message)

    async def handle_toggle_facing(self) -> None:
        self._arbiter.toggle_facing()
        await self.send_state()

    async def handle_torch(self, data: dict) -> None:
        self._arbiter.dispatch(TorchChanged(bool(data.get("enabled"))))
        await self.send_state()

    async def handle_open(self) -> None:
        self._arbiter.open()
        await self.send_state()

    async def handle_close(self) -> None:
        self._arbiter.close()
        await self.send_state()

    # =========================================================================
    # MAIN LOOP
    # =========================================================================

    async def run(self, token: Optional[str]) -> None:
        """Main handler loop."""
        await self._websocket.accept()
        logger.info("📱 Scanner WebSocket connected")

        try:
            self.authenticate(token)
        except AppException as e:
            await self.send_error(e.message, "AUTH_REQUIRED")
            await self._websocket.close()
            return

        logger.info(f"✅ User authenticated: {self._user.username}")

        try:
            init_data = await self._websocket.receive_json()
            if not await self.handle_init(init_data):
                await self._websocket.close()
                return

            while True:
                data = await self._websocket.receive_json()
                if not isinstance(data, dict):
                    await self.send_error("Messages must be JSON objects", "INVALID_MESSAGE")
                    continue

                msg_type = data.get("type")

                if msg_type == "frame":
                    await self.handle_frame(data)
                elif msg_type == "permission":
                    await self.handle_permission(data)
                elif msg_type == "stream":
                    await self.handle_stream(data)
                elif msg_type == "toggle_facing":
                    await self.handle_toggle_facing()
                elif msg_type == "torch":
                    await self.handle_torch(data)
                elif msg_type == "open":
                    await self.handle_open()
                elif msg_type == "close":
                    await self.handle_close()
                elif msg_type == "stop":
                    logger.info("🛑 Client requested stop")
                    break
                else:
                    await self.send_error(f"Unknown message type: {msg_type}", "UNKNOWN_MESSAGE")

            await self._websocket.close()

        except WebSocketDisconnect:
            logger.info("📱 Client disconnected")
        except AppException as e:
            logger.warning(f"Scanner WebSocket error: {e.message}")
            await self.send_error(e.message, e.code)
            await self._websocket.close()
        finally:
            if self._arbiter is not None and self._arbiter.state.is_open:
                self._arbiter.close()
            logger.info("✅ Scanner WebSocket closed")


@router.websocket("/ws/scan")
async def websocket_scan(
    websocket: WebSocket,
    token: str = Query(None),
    db: Session = Depends(get_db)
):
    """Real-time barcode scanning via WebSocket."""
    handler = ScannerWebSocketHandler(websocket, db)
    await handler.run(token)
