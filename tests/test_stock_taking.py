"""
==============================================================================
Stock Taking Service Tests
==============================================================================

Session lifecycle, scan counting, manual counting and reconciliation.

==============================================================================
"""

from typing import Dict

import pytest
from sqlalchemy.orm import Session

from erp_barcode.core.exceptions import AppException
from erp_barcode.db import (
    BarcodeScanLog,
    DatabaseManager,
    ScanResult,
    SessionStatus,
    Warehouse,
)
from erp_barcode.services import BarcodeService, ScanLogQueue, ScanLogWriter, StockTakingService

from conftest import EAN13, EAN8


@pytest.fixture
def service(db: Session, db_manager: DatabaseManager) -> StockTakingService:
    queue = ScanLogQueue(ScanLogWriter(db_manager.session_factory))
    return StockTakingService(db, BarcodeService(db, queue))


@pytest.fixture
def session_x(service: StockTakingService, catalog: Dict):
    x = catalog["x"]
    return service.create_session(
        x["company"].id, "Aisle 4 count", warehouse_id=x["warehouse"].id, started_by=x["user"].id
    )


class TestSessions:
    """Tests for the session lifecycle."""

    def test_create_normalizes_name(self, service: StockTakingService, catalog: Dict):
        session = service.create_session(catalog["x"]["company"].id, "  Q3   Cycle Count ")
        assert session.session_name == "Q3 Cycle Count"
        assert session.status == SessionStatus.ACTIVE

    @pytest.mark.parametrize("name", ["", "ab", "-starts-with-dash", "semi;colon"])
    def test_invalid_names(self, service: StockTakingService, catalog: Dict, name: str):
        with pytest.raises(AppException) as exc_info:
            service.create_session(catalog["x"]["company"].id, name)
        assert exc_info.value.code == "INVALID_SESSION_NAME"

    def test_other_company_cannot_see_session(self, service: StockTakingService, catalog: Dict, session_x):
        with pytest.raises(AppException) as exc_info:
            service.get_session(session_x.id, catalog["y"]["company"].id)
        assert exc_info.value.code == "SESSION_NOT_FOUND"

    def test_complete(self, service: StockTakingService, catalog: Dict, session_x):
        company_id = catalog["x"]["company"].id
        completed = service.complete_session(session_x.id, company_id, notes="done")

        assert completed.status == SessionStatus.COMPLETED
        assert completed.completed_at is not None
        assert completed.notes == "done"

    def test_terminal_sessions_reject_changes(self, service: StockTakingService, catalog: Dict, session_x):
        x = catalog["x"]
        service.cancel_session(session_x.id, x["company"].id)

        with pytest.raises(AppException) as exc_info:
            service.record_scan(session_x.id, EAN13, x["company"].id, x["user"])
        assert exc_info.value.code == "SESSION_NOT_ACTIVE"
        assert exc_info.value.status_code == 409

        with pytest.raises(AppException):
            service.complete_session(session_x.id, x["company"].id)

    def test_list_sessions_by_status(self, service: StockTakingService, catalog: Dict, session_x):
        company_id = catalog["x"]["company"].id
        other = service.create_session(company_id, "Back room")
        service.complete_session(other.id, company_id)

        assert {s.id for s in service.list_sessions(company_id)} == {session_x.id, other.id}
        assert [s.id for s in service.list_sessions(company_id, SessionStatus.ACTIVE)] == [session_x.id]
        assert service.list_sessions(catalog["y"]["company"].id) == []


class TestScanCounting:
    """Tests for record_scan()."""

    def test_two_scans_count_two(self, service: StockTakingService, catalog: Dict, session_x):
        x = catalog["x"]

        first = service.record_scan(session_x.id, EAN13, x["company"].id, x["user"])
        second = service.record_scan(session_x.id, EAN13, x["company"].id, x["user"])

        assert first.is_update is False
        assert second.is_update is True
        assert second.item.id == first.item.id
        assert second.item.scan_count == 2
        assert second.item.counted_quantity == 2
        assert second.item.system_quantity == 48
        assert second.item.difference == -46
        assert second.item.barcode_scanned == EAN13
        assert second.item.scanned_by == x["user"].id

    def test_resolves_within_own_company(self, service: StockTakingService, catalog: Dict, session_x):
        x = catalog["x"]
        outcome = service.record_scan(session_x.id, EAN13, x["company"].id, x["user"])
        assert outcome.product.id == catalog["water"].id

    def test_scans_are_logged_as_stock_taking(
        self, db: Session, service: StockTakingService, catalog: Dict, session_x
    ):
        x = catalog["x"]
        service.record_scan(session_x.id, EAN13, x["company"].id, x["user"])

        row = db.query(BarcodeScanLog).one()
        assert row.scan_type == "stock_taking"
        assert row.session_id == session_x.id
        assert row.scan_result == ScanResult.SUCCESS

    def test_unknown_product(self, db: Session, service: StockTakingService, catalog: Dict, session_x):
        x = catalog["x"]
        with pytest.raises(AppException) as exc_info:
            service.record_scan(session_x.id, EAN8, x["company"].id, x["user"])

        assert exc_info.value.code == "PRODUCT_NOT_FOUND"
        assert db.query(BarcodeScanLog).one().scan_result == ScanResult.NOT_FOUND

    def test_invalid_barcode(self, service: StockTakingService, catalog: Dict, session_x):
        x = catalog["x"]
        with pytest.raises(AppException) as exc_info:
            service.record_scan(session_x.id, "   ", x["company"].id, x["user"])
        assert exc_info.value.code == "INVALID_BARCODE"

    def test_system_quantity_limited_to_session_warehouse(
        self, db: Session, service: StockTakingService, catalog: Dict
    ):
        x = catalog["x"]
        empty = Warehouse(company_id=x["company"].id, name="Overflow", code="WH-02")
        db.add(empty)
        db.commit()

        session = service.create_session(x["company"].id, "Overflow count", warehouse_id=empty.id)
        outcome = service.record_scan(session.id, EAN13, x["company"].id, x["user"])

        assert outcome.item.system_quantity == 0
        assert outcome.item.warehouse_id == empty.id

    def test_system_quantity_all_warehouses(self, service: StockTakingService, catalog: Dict):
        x = catalog["x"]
        session = service.create_session(x["company"].id, "Whole store")
        outcome = service.record_scan(session.id, EAN13, x["company"].id, x["user"])
        assert outcome.item.system_quantity == 48


class TestManualCounting:
    """Tests for record_manual_count() and add_item()."""

    def test_count_by_sku(self, service: StockTakingService, catalog: Dict, session_x):
        x = catalog["x"]
        outcome = service.record_manual_count(
            session_x.id, "LBL-A6-100", 150, x["company"].id, x["user"], notes="two boxes short"
        )

        assert outcome.product.id == catalog["labels"].id
        assert outcome.item.counted_quantity == 150
        assert outcome.item.system_quantity == 200
        assert outcome.item.notes == "two boxes short"

    def test_manual_count_overwrites_scanned_count(
        self, service: StockTakingService, catalog: Dict, session_x
    ):
        x = catalog["x"]
        service.record_scan(session_x.id, EAN13, x["company"].id, x["user"])
        outcome = service.record_manual_count(session_x.id, EAN13, 40, x["company"].id, x["user"])

        assert outcome.is_update is True
        assert outcome.item.counted_quantity == 40
        assert outcome.item.scan_count == 2

    def test_unknown_code(self, service: StockTakingService, catalog: Dict, session_x):
        x = catalog["x"]
        with pytest.raises(AppException) as exc_info:
            service.record_manual_count(session_x.id, "NOPE", 1, x["company"].id)
        assert exc_info.value.code == "PRODUCT_NOT_FOUND"

    def test_negative_quantity(self, service: StockTakingService, catalog: Dict, session_x):
        with pytest.raises(AppException) as exc_info:
            service.add_item(session_x, catalog["water"].id, system_quantity=48, counted_quantity=-1)
        assert exc_info.value.code == "INVALID_QUANTITY"

    def test_remove_item(self, service: StockTakingService, catalog: Dict, session_x):
        x = catalog["x"]
        outcome = service.record_scan(session_x.id, EAN13, x["company"].id, x["user"])

        service.remove_item(session_x.id, outcome.item.id, x["company"].id)

        assert service.get_session(session_x.id, x["company"].id).items == []
        with pytest.raises(AppException) as exc_info:
            service.remove_item(session_x.id, outcome.item.id, x["company"].id)
        assert exc_info.value.code == "ITEM_NOT_FOUND"


class TestSummary:
    """Tests for summary() and item ordering."""

    def test_summary(self, service: StockTakingService, catalog: Dict, session_x):
        x = catalog["x"]
        company_id = x["company"].id
        service.record_manual_count(session_x.id, EAN13, 48, company_id, x["user"])
        service.record_manual_count(session_x.id, "LBL-A6-100", 150, company_id, x["user"])

        session = service.get_session(session_x.id, company_id)
        summary = service.summary(session)

        assert summary.total_items == 2
        assert summary.total_counted == 198
        assert summary.total_system == 248
        assert summary.discrepancies == 1

    def test_items_newest_first(self, service: StockTakingService, catalog: Dict, session_x):
        x = catalog["x"]
        company_id = x["company"].id
        service.record_manual_count(session_x.id, EAN13, 1, company_id)
        service.record_manual_count(session_x.id, "LBL-A6-100", 1, company_id)

        items = service.list_items(service.get_session(session_x.id, company_id))
        assert [i.product_id for i in items] == [catalog["labels"].id, catalog["water"].id]
