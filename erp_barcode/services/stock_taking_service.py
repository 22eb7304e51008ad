"""
==============================================================================
Stock Taking Service Module
==============================================================================

Physical inventory counts reconciled against system quantities.

This module implements:
- StockTakingService: session lifecycle and item counting
- Scan counting: each accepted scan of a product counts one more unit
- Manual counting: typed barcode/SKU with an explicit quantity

Session Lifecycle:
-----------------

    ┌────────┐ complete_session() ┌───────────┐
    │ ACTIVE │ ─────────────────▶ │ COMPLETED │
    └────────┘                    └───────────┘
        │
        │ cancel_session()        ┌───────────┐
        └───────────────────────▶ │ CANCELLED │
                                  └───────────┘

Only ACTIVE sessions accept item changes.

Repeat Scans:
------------
One item row exists per (session, product). Scanning a product already in
the session bumps ``scan_count`` and overwrites ``counted_quantity``. For
scans the new count is the previous count plus one, so two accepted scans
of the same label leave scan_count == 2 and counted_quantity == 2.

==============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from erp_barcode.core import exceptions
from erp_barcode.db.models import (
    Inventory,
    Product,
    ProductStatus,
    SessionStatus,
    StockTakingItem,
    StockTakingSession,
    User,
)
from erp_barcode.services.barcode_service import BarcodeService
from erp_barcode.utils.validators import QuantityValidator, SessionNameValidator


# Module logger
logger = logging.getLogger(__name__)

SCAN_TYPE_STOCK_TAKING = "stock_taking"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass
class SessionSummary:
    total_items: int
    total_counted: int
    total_system: int
    discrepancies: int


@dataclass
class CountOutcome:
    """Result of a scan or manual count."""

    item: StockTakingItem
    product: Product
    is_update: bool


class StockTakingService:
    """
    Service for stock taking sessions.

    Attributes:
        _db: Database session
        _barcodes: Lookup dispatcher used to resolve scanned codes
        _name_validator: Session name validator
        _quantity_validator: Counted quantity validator

    Example:
        >>> service = StockTakingService(db_session, barcode_service)
        >>> session = service.create_session(company_id, "Aisle 4 count", started_by=user.id)
        >>> outcome = service.record_scan(session.id, "4006381333931", company_id, user)
        >>> outcome.item.counted_quantity
        1
    """

    def __init__(self, db: Session, barcode_service: BarcodeService) -> None:
        self._db = db
        self._barcodes = barcode_service
        self._name_validator = SessionNameValidator()
        self._quantity_validator = QuantityValidator()

    # =========================================================================
    # SESSIONS
    # =========================================================================

    def create_session(
        self,
        company_id: str,
        session_name: str,
        warehouse_id: Optional[str] = None,
        started_by: Optional[str] = None,
        notes: Optional[str] = None
    ) -> StockTakingSession:
        """
        Start a new ACTIVE session.

        Raises:
            AppException: If the name is invalid
        """
        is_valid, normalized, error = self._name_validator.validate(session_name)
        if not is_valid:
            raise exceptions.invalid_session_name(session_name or "", error)

        session = StockTakingSession(
            company_id=company_id,
            session_name=normalized,
            warehouse_id=warehouse_id,
            started_by=started_by,
            notes=notes,
            status=SessionStatus.ACTIVE,
        )
        self._db.add(session)
        self._db.commit()
        self._db.refresh(session)

        logger.info(f"✅ Stock taking session started: {session.session_name} ({session.id})")
        return session

    def get_session(self, session_id: str, company_id: str) -> StockTakingSession:
        """
        Load a session of the company with its items.

        Raises:
            AppException: If the session does not exist for this company
        """
        session = (
            self._db.query(StockTakingSession)
            .options(selectinload(StockTakingSession.items).joinedload(StockTakingItem.product))
            .populate_existing()
            .filter(
                StockTakingSession.id == session_id,
                StockTakingSession.company_id == company_id
            )
            .first()
        )
        if not session:
            raise exceptions.session_not_found(session_id)
        return session

    def list_items(self, session: StockTakingSession) -> List[StockTakingItem]:
        """Items of a session, newest scan first."""
        return sorted(session.items, key=lambda item: item.scanned_at, reverse=True)

    def list_sessions(
        self,
        company_id: str,
        status: Optional[SessionStatus] = None
    ) -> List[StockTakingSession]:
        query = self._db.query(StockTakingSession).filter(
            StockTakingSession.company_id == company_id
        )
        if status is not None:
            query = query.filter(StockTakingSession.status == status)
        return query.order_by(StockTakingSession.started_at.desc()).all()

    def complete_session(
        self,
        session_id: str,
        company_id: str,
        notes: Optional[str] = None
    ) -> StockTakingSession:
        session = self._get_active(session_id, company_id)
        session.status = SessionStatus.COMPLETED
        session.completed_at = _utcnow()
        if notes is not None:
            session.notes = notes
        self._db.commit()

        summary = self.summary(session)
        logger.info(
            f"✅ Stock taking completed: {session.session_name} "
            f"({summary.total_items} items, {summary.discrepancies} discrepancies)"
        )
        return session

    def cancel_session(
        self,
        session_id: str,
        company_id: str,
        notes: Optional[str] = None
    ) -> StockTakingSession:
        session = self._get_active(session_id, company_id)
        session.status = SessionStatus.CANCELLED
        session.completed_at = _utcnow()
        if notes is not None:
            session.notes = notes
        self._db.commit()

        logger.info(f"❌ Stock taking cancelled: {session.session_name}")
        return session

    def summary(self, session: StockTakingSession) -> SessionSummary:
        items = session.items
        return SessionSummary(
            total_items=len(items),
            total_counted=sum(item.counted_quantity for item in items),
            total_system=sum(item.system_quantity for item in items),
            discrepancies=sum(1 for item in items if item.difference != 0),
        )

    # =========================================================================
    # ITEMS
    # =========================================================================

    def add_item(
        self,
        session: StockTakingSession,
        product_id: str,
        system_quantity: int,
        counted_quantity: int,
        barcode_scanned: Optional[str] = None,
        scanned_by: Optional[str] = None,
        notes: Optional[str] = None,
        warehouse_id: Optional[str] = None
    ) -> Tuple[StockTakingItem, bool]:
        """
        Insert or update the session's item for a product.

        An existing item gets scan_count + 1 and the new counted quantity.
        A new item starts with scan_count 1.

        Returns:
            Tuple of (item, is_update)

        Raises:
            AppException: If the session is not active or the quantity is invalid
        """
        if not session.is_active:
            raise exceptions.session_not_active(session.id, session.status.value)

        is_valid, error = self._quantity_validator.validate(counted_quantity)
        if not is_valid:
            raise exceptions.invalid_quantity(counted_quantity, error)

        item = (
            self._db.query(StockTakingItem)
            .filter(
                StockTakingItem.session_id == session.id,
                StockTakingItem.product_id == product_id
            )
            .first()
        )

        if item:
            item.counted_quantity = counted_quantity
            item.scan_count = item.scan_count + 1
            item.scanned_at = _utcnow()
            if notes is not None:
                item.notes = notes
            is_update = True
        else:
            item = StockTakingItem(
                session_id=session.id,
                product_id=product_id,
                warehouse_id=warehouse_id or session.warehouse_id,
                system_quantity=system_quantity,
                counted_quantity=counted_quantity,
                barcode_scanned=barcode_scanned,
                scan_count=1,
                scanned_by=scanned_by,
                notes=notes,
                scanned_at=_utcnow(),
            )
            self._db.add(item)
            is_update = False

        self._db.commit()
        self._db.refresh(item)

        logger.info(
            f"📦 Item {'updated' if is_update else 'added'}: {product_id} "
            f"(counted {item.counted_quantity}, scans {item.scan_count})"
        )
        return item, is_update

    def record_scan(
        self,
        session_id: str,
        barcode: str,
        company_id: str,
        user: Optional[User] = None
    ) -> CountOutcome:
        """
        Count one unit of the product an accepted scan resolves to.

        Raises:
            AppException: INVALID_BARCODE, LOOKUP_FAILED, PRODUCT_NOT_FOUND,
                SESSION_NOT_FOUND or SESSION_NOT_ACTIVE
        """
        session = self._get_active(session_id, company_id)

        resolution = self._barcodes.resolve_scan(
            barcode,
            company_id,
            scanned_by=user.id if user else None,
            session_id=session.id,
            scan_type=SCAN_TYPE_STOCK_TAKING,
        )
        if not resolution.products:
            raise exceptions.product_not_found(resolution.barcode)

        product = resolution.products[0]
        previous = self._existing_count(session.id, product.id)

        item, is_update = self.add_item(
            session,
            product.id,
            system_quantity=self.system_quantity(product, session.warehouse_id),
            counted_quantity=previous + 1,
            barcode_scanned=resolution.barcode,
            scanned_by=user.id if user else None,
        )
        return CountOutcome(item=item, product=product, is_update=is_update)

    def record_manual_count(
        self,
        session_id: str,
        code: str,
        quantity: int,
        company_id: str,
        user: Optional[User] = None,
        notes: Optional[str] = None
    ) -> CountOutcome:
        """
        Set the counted quantity of the product with this barcode or SKU.

        Typed codes are not checksum-validated because SKUs rarely are barcodes.
        """
        session = self._get_active(session_id, company_id)
        clean = (code or "").strip()

        product = (
            self._db.query(Product)
            .options(selectinload(Product.inventory))
            .filter(
                Product.company_id == company_id,
                Product.status == ProductStatus.ACTIVE,
                or_(Product.barcode == clean, Product.sku == clean)
            )
            .first()
        )
        if not product:
            raise exceptions.product_not_found(clean)

        item, is_update = self.add_item(
            session,
            product.id,
            system_quantity=self.system_quantity(product, session.warehouse_id),
            counted_quantity=quantity,
            barcode_scanned=clean,
            scanned_by=user.id if user else None,
            notes=notes,
        )
        return CountOutcome(item=item, product=product, is_update=is_update)

    def remove_item(self, session_id: str, item_id: str, company_id: str) -> None:
        session = self._get_active(session_id, company_id)

        item = (
            self._db.query(StockTakingItem)
            .filter(StockTakingItem.id == item_id, StockTakingItem.session_id == session.id)
            .first()
        )
        if not item:
            raise exceptions.item_not_found(item_id)

        self._db.delete(item)
        self._db.commit()
        logger.info(f"🗑️ Item removed from {session.session_name}: {item_id}")

    # =========================================================================
    # HELPERS
    # =========================================================================

    def system_quantity(self, product: Product, warehouse_id: Optional[str] = None) -> int:
        """Available quantity on hand, limited to one warehouse when given."""
        query = self._db.query(func.coalesce(func.sum(Inventory.available_quantity), 0)).filter(
            Inventory.product_id == product.id
        )
        if warehouse_id:
            query = query.filter(Inventory.warehouse_id == warehouse_id)
        return int(query.scalar() or 0)

    def _existing_count(self, session_id: str, product_id: str) -> int:
        counted = (
            self._db.query(StockTakingItem.counted_quantity)
            .filter(
                StockTakingItem.session_id == session_id,
                StockTakingItem.product_id == product_id
            )
            .scalar()
        )
        return counted or 0

    def _get_active(self, session_id: str, company_id: str) -> StockTakingSession:
        session = (
            self._db.query(StockTakingSession)
            .filter(
                StockTakingSession.id == session_id,
                StockTakingSession.company_id == company_id
            )
            .first()
        )
        if not session:
            raise exceptions.session_not_found(session_id)
        if not session.is_active:
            raise exceptions.session_not_active(session.id, session.status.value)
        return session
