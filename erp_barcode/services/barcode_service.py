"""
==============================================================================
Barcode Lookup Service Module
==============================================================================

Resolves scanned or typed barcodes to catalog products.

This module implements:
- BarcodeService.search_product_by_barcode: company catalog lookup + scan log
- BarcodeService.search_master_product_by_barcode: global catalog lookup
- BarcodeService.resolve_scan: validate, detect, look up, raise on failure
- BarcodeService.get_barcode_analytics: scan log aggregates

Matching:
--------
A product matches when any of barcode, ean_code, upc_code, gtin or sku
equals the trimmed input. Only ACTIVE products are returned. Every company
lookup hands exactly one entry to the scan log sink:

    >= 1 match      success
    no match        not_found
    query failure   error

==============================================================================
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from erp_barcode.barcode import BARCODE_MATCH_FIELDS, BarcodeValidator, Symbology, barcode_match_fields
from erp_barcode.core import exceptions
from erp_barcode.db.models import (
    BarcodeScanLog,
    Inventory,
    MasterProduct,
    Product,
    ProductStatus,
    ScanResult,
)
from erp_barcode.services.scan_log_service import ScanLogEntry, ScanLogSink


# Module logger
logger = logging.getLogger(__name__)

ANALYTICS_LOG_LIMIT = 1000

# The global catalog has no SKU column
MASTER_MATCH_FIELDS = tuple(f for f in BARCODE_MATCH_FIELDS if f != "sku")


@dataclass
class ProductLookup:
    """Lookup outcome. ``error`` is set only when the store call failed."""

    products: List = field(default_factory=list)
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return bool(self.products)


@dataclass
class ScanResolution:
    barcode: str
    symbology: Optional[Symbology]
    products: List[Product]


@dataclass
class ScanAnalytics:
    total_scans: int
    successful_scans: int
    failed_scans: int
    error_scans: int
    scans_by_type: Dict[str, int]
    scans_by_day: Dict[str, int]
    logs: List[BarcodeScanLog] = field(default_factory=list)


class BarcodeService:
    """
    Lookup dispatcher over the company and master catalogs.

    Attributes:
        _db: Database session
        _sink: Scan log sink (fire-and-forget)
        _validator: Barcode validator used by resolve_scan

    Example:
        >>> service = BarcodeService(db_session, scan_log_queue)
        >>> lookup = service.search_product_by_barcode("4006381333931", company_id)
        >>> [p.sku for p in lookup.products]
        ['SKU-001']
    """

    def __init__(
        self,
        db: Session,
        scan_log_sink: Optional[ScanLogSink] = None,
        validator: Optional[BarcodeValidator] = None
    ) -> None:
        self._db = db
        self._sink = scan_log_sink
        self._validator = validator or BarcodeValidator()

    @property
    def validator(self) -> BarcodeValidator:
        return self._validator

    # =========================================================================
    # COMPANY CATALOG
    # =========================================================================

    def search_product_by_barcode(
        self,
        barcode: str,
        company_id: str,
        scanned_by: Optional[str] = None,
        session_id: Optional[str] = None,
        scan_type: str = "product_lookup"
    ) -> ProductLookup:
        """
        Find active company products matching the barcode.

        Each product carries its inventory rows (with warehouse). Products
        without inventory are still returned.
        """
        clean = (barcode or "").strip()
        conditions = [
            getattr(Product, column) == value
            for column, value in barcode_match_fields(clean).items()
        ]

        try:
            products = (
                self._db.query(Product)
                .options(selectinload(Product.inventory).joinedload(Inventory.warehouse))
                .filter(
                    Product.company_id == company_id,
                    or_(*conditions),
                    Product.status == ProductStatus.ACTIVE
                )
                .order_by(Product.name)
                .all()
            )
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error(f"Error searching products for {clean!r}: {e}")
            self._log_scan(
                company_id, clean, ScanResult.ERROR, scan_type,
                scanned_by=scanned_by, session_id=session_id,
                metadata={"error": type(e).__name__}
            )
            return ProductLookup(products=[], error=str(e))

        result = ScanResult.SUCCESS if products else ScanResult.NOT_FOUND
        self._log_scan(
            company_id, clean, result, scan_type,
            product_id=products[0].id if products else None,
            scanned_by=scanned_by, session_id=session_id,
            metadata={"matches": len(products)}
        )

        logger.debug(f"Lookup {clean!r} for company {company_id}: {len(products)} match(es)")
        return ProductLookup(products=products)

    def _log_scan(
        self,
        company_id: str,
        barcode: str,
        scan_result: ScanResult,
        scan_type: str,
        product_id: Optional[str] = None,
        scanned_by: Optional[str] = None,
        session_id: Optional[str] = None,
        metadata: Optional[dict] = None
    ) -> None:
        if self._sink is None:
            return
        try:
            self._sink.emit(ScanLogEntry(
                company_id=company_id,
                barcode=barcode,
                scan_result=scan_result,
                scan_type=scan_type,
                product_id=product_id,
                session_id=session_id,
                scanned_by=scanned_by,
                metadata=metadata or {},
            ))
        except Exception as e:
            logger.error(f"Error emitting scan log for {barcode!r}: {e}")

    # =========================================================================
    # MASTER CATALOG
    # =========================================================================

    def search_master_product_by_barcode(self, barcode: str) -> ProductLookup:
        """Find active global catalog entries. Nothing is logged."""
        clean = (barcode or "").strip()
        conditions = [getattr(MasterProduct, column) == clean for column in MASTER_MATCH_FIELDS]

        try:
            products = (
                self._db.query(MasterProduct)
                .filter(or_(*conditions), MasterProduct.status == ProductStatus.ACTIVE)
                .order_by(MasterProduct.name)
                .all()
            )
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error(f"Error searching master products for {clean!r}: {e}")
            return ProductLookup(products=[], error=str(e))

        return ProductLookup(products=products)

    # =========================================================================
    # SCAN RESOLUTION
    # =========================================================================

    def resolve_scan(
        self,
        barcode: str,
        company_id: str,
        scanned_by: Optional[str] = None,
        session_id: Optional[str] = None,
        scan_type: str = "product_lookup"
    ) -> ScanResolution:
        """
        Validate an accepted scan and look it up.

        Raises:
            AppException: INVALID_BARCODE if no symbology accepts the string,
                LOOKUP_FAILED if the store call fails
        """
        clean = (barcode or "").strip()

        if not self._validator.validate(clean):
            logger.info(f"Rejected scan {barcode!r}: no symbology matched")
            raise exceptions.invalid_barcode(barcode)

        symbology = self._validator.detect_format(clean)
        lookup = self.search_product_by_barcode(
            clean, company_id,
            scanned_by=scanned_by, session_id=session_id, scan_type=scan_type
        )

        if lookup.error:
            raise exceptions.lookup_failed(clean, lookup.error)

        return ScanResolution(barcode=clean, symbology=symbology, products=lookup.products)

    # =========================================================================
    # ANALYTICS
    # =========================================================================

    def get_barcode_analytics(
        self,
        company_id: str,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None
    ) -> ScanAnalytics:
        """Aggregate the most recent scan logs of a company."""
        query = self._db.query(BarcodeScanLog).filter(BarcodeScanLog.company_id == company_id)

        if date_from is not None:
            query = query.filter(BarcodeScanLog.scanned_at >= date_from)
        if date_to is not None:
            query = query.filter(BarcodeScanLog.scanned_at <= date_to)

        logs = query.order_by(BarcodeScanLog.scanned_at.desc()).limit(ANALYTICS_LOG_LIMIT).all()

        results = Counter(log.scan_result for log in logs)
        return ScanAnalytics(
            total_scans=len(logs),
            successful_scans=results[ScanResult.SUCCESS],
            failed_scans=results[ScanResult.NOT_FOUND],
            error_scans=results[ScanResult.ERROR],
            scans_by_type=dict(Counter(log.scan_type for log in logs)),
            scans_by_day=dict(Counter(log.scanned_at.date().isoformat() for log in logs)),
            logs=logs,
        )
