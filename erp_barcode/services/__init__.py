"""
==============================================================================
Services Package - Business Logic Layer
==============================================================================

This package provides:
- AuthService: Login and token issuing
- BarcodeService: Lookup dispatcher over the company and master catalogs
- ScanLogQueue / ScanLogWriter: Fire-and-forget scan log recording
- StockTakingService: Stock taking sessions and counting

Architecture Pattern: Service Layer
----------------------------------
    ┌─────────────────┐     ┌──────────────────┐
    │ API / WebSocket │     │ ScanArbiter      │
    └────────┬────────┘     └────────┬─────────┘
             │   accepted scan text  │
    ┌────────▼───────────────────────▼─┐
    │ BarcodeService / StockTaking     │  ← Business Logic
    └────────┬──────────────┬──────────┘
             │              │ emit()
    ┌────────▼────────┐  ┌──▼───────────┐
    │   ORM session   │  │ ScanLogQueue │
    └─────────────────┘  └──────────────┘

Services receive their dependencies via constructor. Nothing here is a
module-level singleton.

==============================================================================
"""

from .auth_service import AuthService
from .barcode_service import BarcodeService, ProductLookup, ScanAnalytics, ScanResolution
from .scan_log_service import ScanLogEntry, ScanLogQueue, ScanLogWriter
from .stock_taking_service import CountOutcome, SessionSummary, StockTakingService

__all__ = [
    "AuthService",
    "BarcodeService",
    "ProductLookup",
    "ScanAnalytics",
    "ScanResolution",
    "ScanLogEntry",
    "ScanLogQueue",
    "ScanLogWriter",
    "CountOutcome",
    "SessionSummary",
    "StockTakingService",
]
