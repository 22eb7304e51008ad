"""
==============================================================================
Schemas Package - Pydantic Models
==============================================================================

Request and response schemas using Pydantic for validation.

This package provides:
- Common: Shared response schemas
- Auth: Authentication schemas
- Barcode: Validation, lookup and analytics schemas
- StockTaking: Stock taking session schemas

==============================================================================
"""

from .common import SuccessResponse, MessageResponse
from .auth import LoginRequest, TokenResponse, UserInfo, CurrentUserInfo, CurrentUserResponse
from .barcode import (
    BarcodeDetectResponse,
    BarcodeGenerateResponse,
    BarcodeValidateRequest,
    BarcodeValidateResponse,
    InventoryOut,
    MasterProductLookupResponse,
    MasterProductOut,
    ProductLookupResponse,
    ProductOut,
    ScanAnalyticsResponse,
    ScanLogOut,
    WarehouseOut,
)
from .stock_taking import (
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

__all__ = [
    "SuccessResponse",
    "MessageResponse",
    "LoginRequest",
    "TokenResponse",
    "UserInfo",
    "CurrentUserInfo",
    "CurrentUserResponse",
    "BarcodeDetectResponse",
    "BarcodeGenerateResponse",
    "BarcodeValidateRequest",
    "BarcodeValidateResponse",
    "InventoryOut",
    "MasterProductLookupResponse",
    "MasterProductOut",
    "ProductLookupResponse",
    "ProductOut",
    "ScanAnalyticsResponse",
    "ScanLogOut",
    "WarehouseOut",
    "CountRequest",
    "CountResponse",
    "ItemOut",
    "ScanRequest",
    "SessionBrief",
    "SessionCloseRequest",
    "SessionCreate",
    "SessionDetail",
    "SessionListResponse",
    "SessionResponse",
    "SummaryOut",
]
