"""
==============================================================================
Barcode Schemas Module
==============================================================================

Request and response schemas for barcode validation and product lookup.

Lookup responses nest inventory rows under each product:

    ProductOut
    ├── sku, name, brand, barcode, ean_code, upc_code, gtin, prices...
    └── inventory: List[InventoryOut]
                   └── warehouse: WarehouseOut (id, name, code)

==============================================================================
"""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from erp_barcode.db.models import ProductStatus, ScanResult


# =============================================================================
# VALIDATION SCHEMAS
# =============================================================================

class BarcodeValidateRequest(BaseModel):
    """Barcode validation request. ``format`` is optional."""
    barcode: str = Field(..., max_length=128)
    format: Optional[str] = Field(default=None, max_length=20)

    @field_validator("barcode")
    @classmethod
    def strip_barcode(cls, v: str) -> str:
        return v.strip()


class BarcodeValidateResponse(BaseModel):
    success: bool = Field(default=True)
    barcode: str
    valid: bool
    format: Optional[str] = None
    formatted: str


class BarcodeDetectResponse(BaseModel):
    success: bool = Field(default=True)
    barcode: str
    format: Optional[str] = None


class BarcodeGenerateResponse(BaseModel):
    success: bool = Field(default=True)
    format: str
    barcode: str
    formatted: str


# =============================================================================
# PRODUCT SCHEMAS
# =============================================================================

class WarehouseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    code: Optional[str] = None


class InventoryOut(BaseModel):
    """Stock of a product in one warehouse."""
    model_config = ConfigDict(from_attributes=True)

    warehouse_id: str
    quantity: int
    available_quantity: int
    warehouse: Optional[WarehouseOut] = None


class ProductOut(BaseModel):
    """Company product with its inventory rows."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    sku: str
    name: str
    description: Optional[str] = None
    brand: Optional[str] = None
    barcode: Optional[str] = None
    ean_code: Optional[str] = None
    upc_code: Optional[str] = None
    gtin: Optional[str] = None
    unit_of_measure: Optional[str] = None
    cost_price: Optional[float] = None
    selling_price: Optional[float] = None
    mrp: Optional[float] = None
    status: ProductStatus
    images: Optional[list] = None
    inventory: List[InventoryOut] = Field(default_factory=list)


class MasterProductOut(BaseModel):
    """Global catalog entry."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    brand: Optional[str] = None
    category: Optional[str] = None
    barcode: Optional[str] = None
    ean_code: Optional[str] = None
    upc_code: Optional[str] = None
    gtin: Optional[str] = None


class ProductLookupResponse(BaseModel):
    success: bool = Field(default=True)
    barcode: str
    total: int
    products: List[ProductOut]


class MasterProductLookupResponse(BaseModel):
    success: bool = Field(default=True)
    barcode: str
    total: int
    products: List[MasterProductOut]


# =============================================================================
# ANALYTICS SCHEMAS
# =============================================================================

class ScanLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    barcode: str
    scan_type: str
    scan_result: ScanResult
    product_id: Optional[str] = None
    session_id: Optional[str] = None
    scanned_by: Optional[str] = None
    scanned_at: datetime


class ScanAnalyticsResponse(BaseModel):
    """Aggregates over the most recent scan logs."""
    success: bool = Field(default=True)
    total_scans: int
    successful_scans: int
    failed_scans: int
    error_scans: int
    scans_by_type: Dict[str, int]
    scans_by_day: Dict[str, int]
    logs: List[ScanLogOut]
