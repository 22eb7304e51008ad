"""
==============================================================================
Stock Taking Schemas Module
==============================================================================

Request and response schemas for stock taking sessions.

Includes:
- Session creation with optional warehouse and notes
- Scan counting (one unit per accepted scan)
- Manual counting by barcode or SKU

==============================================================================
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from erp_barcode.db.models import SessionStatus
from erp_barcode.utils.validators import QuantityValidator


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class SessionCreate(BaseModel):
    """Session name rules are enforced by the service."""
    session_name: str = Field(..., max_length=200)
    warehouse_id: Optional[str] = Field(default=None, max_length=36)
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("notes")
    @classmethod
    def strip_notes(cls, v: Optional[str]) -> Optional[str]:
        if v:
            v = v.strip()
            return v if v else None
        return None


class ScanRequest(BaseModel):
    """An accepted scan to count."""
    barcode: str = Field(..., min_length=1, max_length=128)


class CountRequest(BaseModel):
    """Manual count of a product by barcode or SKU."""
    code: str = Field(..., min_length=1, max_length=128)
    quantity: int = Field(..., ge=0, le=QuantityValidator.MAX_QUANTITY)
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("code")
    @classmethod
    def strip_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Code cannot be blank")
        return v


class SessionCloseRequest(BaseModel):
    """Optional closing notes for complete/cancel."""
    notes: Optional[str] = Field(default=None, max_length=500)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class ItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: str
    warehouse_id: Optional[str] = None
    system_quantity: int
    counted_quantity: int
    difference: int
    barcode_scanned: Optional[str] = None
    scan_count: int
    scanned_by: Optional[str] = None
    notes: Optional[str] = None
    scanned_at: datetime
    product_name: Optional[str] = None
    product_sku: Optional[str] = None

    @classmethod
    def from_item(cls, item) -> "ItemOut":
        out = cls.model_validate(item)
        if item.product is not None:
            out.product_name = item.product.name
            out.product_sku = item.product.sku
        return out


class SummaryOut(BaseModel):
    total_items: int
    total_counted: int
    total_system: int
    discrepancies: int


class SessionBrief(BaseModel):
    """Session without items, for list views."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    session_name: str
    warehouse_id: Optional[str] = None
    started_by: Optional[str] = None
    status: SessionStatus
    notes: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None


class SessionDetail(SessionBrief):
    items: List[ItemOut] = Field(default_factory=list)
    summary: Optional[SummaryOut] = None


class SessionResponse(BaseModel):
    success: bool = Field(default=True)
    session: SessionDetail


class SessionListResponse(BaseModel):
    success: bool = Field(default=True)
    sessions: List[SessionBrief]
    total: int


class CountResponse(BaseModel):
    """Outcome of a scan or manual count."""
    success: bool = Field(default=True)
    is_update: bool
    item: ItemOut
    message: str
