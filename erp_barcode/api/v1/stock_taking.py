"""
==============================================================================
Stock Taking Endpoints
==============================================================================

Session lifecycle and counting for physical inventory checks.

    POST   /stock-taking/sessions                     start a session
    GET    /stock-taking/sessions                     list (optional status)
    GET    /stock-taking/sessions/{id}                items + summary
    POST   /stock-taking/sessions/{id}/scan           +1 for the scanned product
    POST   /stock-taking/sessions/{id}/count          manual count
    DELETE /stock-taking/sessions/{id}/items/{item}   remove an item
    POST   /stock-taking/sessions/{id}/complete       close as completed
    POST   /stock-taking/sessions/{id}/cancel         close as cancelled

==============================================================================
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from erp_barcode.db.database import get_db
from erp_barcode.db.models import SessionStatus, StockTakingSession, User
from erp_barcode.core.dependencies import get_current_user
from erp_barcode.services.barcode_service import BarcodeService
from erp_barcode.services.stock_taking_service import CountOutcome, StockTakingService
from erp_barcode.schemas.common import MessageResponse
from erp_barcode.schemas.stock_taking import (
    CountRequest,
    CountResponse,
    ItemOut,
    ScanRequest,
    SessionBrief,
    SessionCloseRequest,
    SessionCreate,
    SessionDetail,
    SessionListResponse,
    SessionResponse,
    SummaryOut,
)


router = APIRouter(prefix="/stock-taking", tags=["Stock Taking"])


class StockTakingController:
    """Controller for stock taking operations."""

    def __init__(self, db: Session, request: Request):
        state = request.app.state
        barcodes = BarcodeService(db, state.scan_log, state.validator)
        self._service = StockTakingService(db, barcodes)

    def _detail(self, session: StockTakingSession) -> SessionDetail:
        summary = self._service.summary(session)
        brief = SessionBrief.model_validate(session)
        return SessionDetail(
            **brief.model_dump(),
            items=[ItemOut.from_item(item) for item in self._service.list_items(session)],
            summary=SummaryOut(**vars(summary))
        )

    def _count_response(self, outcome: CountOutcome) -> CountResponse:
        action = "updated" if outcome.is_update else "added"
        return CountResponse(
            is_update=outcome.is_update,
            item=ItemOut.from_item(outcome.item),
            message=f"{outcome.product.name} {action} (counted {outcome.item.counted_quantity})"
        )

    def create(self, data: SessionCreate, user: User) -> SessionResponse:
        session = self._service.create_session(
            user.company_id,
            data.session_name,
            warehouse_id=data.warehouse_id,
            started_by=user.id,
            notes=data.notes
        )
        return SessionResponse(session=self._detail(session))

    def list_all(self, status: Optional[SessionStatus], user: User) -> SessionListResponse:
        sessions = self._service.list_sessions(user.company_id, status)
        return SessionListResponse(
            sessions=[SessionBrief.model_validate(s) for s in sessions],
            total=len(sessions)
        )

    def get(self, session_id: str, user: User) -> SessionResponse:
        session = self._service.get_session(session_id, user.company_id)
        return SessionResponse(session=self._detail(session))

    def scan(self, session_id: str, data: ScanRequest, user: User) -> CountResponse:
        outcome = self._service.record_scan(session_id, data.barcode, user.company_id, user)
        return self._count_response(outcome)

    def count(self, session_id: str, data: CountRequest, user: User) -> CountResponse:
        outcome = self._service.record_manual_count(
            session_id,
            data.code,
            data.quantity,
            user.company_id,
            user,
            notes=data.notes
        )
        return self._count_response(outcome)

    def remove_item(self, session_id: str, item_id: str, user: User) -> MessageResponse:
        self._service.remove_item(session_id, item_id, user.company_id)
        return MessageResponse(message="Item removed")

    def complete(self, session_id: str, data: SessionCloseRequest, user: User) -> SessionResponse:
        self._service.complete_session(session_id, user.company_id, data.notes)
        return self.get(session_id, user)

    def cancel(self, session_id: str, data: SessionCloseRequest, user: User) -> SessionResponse:
        self._service.cancel_session(session_id, user.company_id, data.notes)
        return self.get(session_id, user)


@router.post("/sessions", response_model=SessionResponse)
async def create_session(
    body: SessionCreate,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Start a new stock taking session."""
    controller = StockTakingController(db, request)
    return controller.create(body, user)


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(
    request: Request,
    status: Optional[SessionStatus] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List the company's sessions, newest first."""
    controller = StockTakingController(db, request)
    return controller.list_all(status, user)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a session with its items and summary."""
    controller = StockTakingController(db, request)
    return controller.get(session_id, user)


@router.post("/sessions/{session_id}/scan", response_model=CountResponse)
async def scan_item(
    session_id: str,
    body: ScanRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Count one unit of the scanned product."""
    controller = StockTakingController(db, request)
    return controller.scan(session_id, body, user)


@router.post("/sessions/{session_id}/count", response_model=CountResponse)
async def count_item(
    session_id: str,
    body: CountRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Set the counted quantity of a product by barcode or SKU."""
    controller = StockTakingController(db, request)
    return controller.count(session_id, body, user)


@router.delete("/sessions/{session_id}/items/{item_id}", response_model=MessageResponse)
async def remove_item(
    session_id: str,
    item_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Remove an item from an active session."""
    controller = StockTakingController(db, request)
    return controller.remove_item(session_id, item_id, user)


@router.post("/sessions/{session_id}/complete", response_model=SessionResponse)
async def complete_session(
    session_id: str,
    request: Request,
    body: Optional[SessionCloseRequest] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Complete an active session."""
    controller = StockTakingController(db, request)
    return controller.complete(session_id, body or SessionCloseRequest(), user)


@router.post("/sessions/{session_id}/cancel", response_model=SessionResponse)
async def cancel_session(
    session_id: str,
    request: Request,
    body: Optional[SessionCloseRequest] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Cancel an active session."""
    controller = StockTakingController(db, request)
    return controller.cancel(session_id, body or SessionCloseRequest(), user)
