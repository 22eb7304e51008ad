"""
==============================================================================
SQLAlchemy ORM Models Module
==============================================================================

ORM models for the barcode lookup and stock-taking tables.

This module defines:
- ProductStatus / ScanResult / SessionStatus: string enums
- Company, User: tenancy and the "current user" behind lookups
- Warehouse, Product, Inventory: the company-scoped catalog
- MasterProduct: the global catalog
- BarcodeScanLog: one row per company lookup attempt
- StockTakingSession, StockTakingItem: physical count sessions

Database Schema:
---------------

    ┌──────────────┐ 1:N ┌──────────────┐ 1:N ┌────────────────┐
    │  companies   │────▶│ erp_products │────▶│ erp_inventory  │
    └──────────────┘     └──────────────┘     └───────┬────────┘
           │                                          │ N:1
           │ 1:N                               ┌──────▼─────────┐
           ├──────────────────────────────────▶│ erp_warehouses │
           │                                   └────────────────┘
           │ 1:N
           ▼
    ┌───────────────────────┐ 1:N (CASCADE) ┌────────────────────┐
    │ stock_taking_sessions │──────────────▶│ stock_taking_items │
    └───────────────────────┘               └────────────────────┘

    ┌──────────────────┐   ┌─────────────────────┐
    │ master_products  │   │ barcode_scan_logs   │  (append only)
    └──────────────────┘   └─────────────────────┘

Stock Taking Session States:
---------------------------

    ┌────────┐ complete() ┌───────────┐
    │ ACTIVE │ ─────────▶ │ COMPLETED │
    └────────┘            └───────────┘
        │
        │ cancel()        ┌───────────┐
        └───────────────▶ │ CANCELLED │
                          └───────────┘

==============================================================================
"""

from __future__ import annotations

import enum
import uuid
from typing import List

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, relationship

from erp_barcode.db.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


# =============================================================================
# ENUMS
# =============================================================================

class ProductStatus(str, enum.Enum):
    """Catalog status. Only ACTIVE products are returned by lookups."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"

    def __str__(self) -> str:
        return self.value


class ScanResult(str, enum.Enum):
    """Outcome recorded for one lookup attempt."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


class SessionStatus(str, enum.Enum):
    """
    Stock taking session status.

    - ACTIVE: items can be scanned, counted and removed
    - COMPLETED: count finalized (terminal)
    - CANCELLED: count discarded (terminal)
    """

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.CANCELLED)


# =============================================================================
# TENANCY
# =============================================================================

class Company(Base):
    """Tenant that owns products, warehouses, sessions and scan logs."""

    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    users: Mapped[List["User"]] = relationship("User", back_populates="company")

    def __repr__(self) -> str:
        return f"Company(id={self.id!r}, name={self.name!r})"


class User(Base):
    """
    User account model.

    Attributes:
        id: Unique identifier (UUID)
        username: Unique login name (lowercase)
        password_hash: passlib hash
        company_id: Company whose catalog this user scans against
        is_active: Account status
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    company: Mapped["Company"] = relationship("Company", back_populates="users")

    def __repr__(self) -> str:
        return (
            f"User(id={self.id!r}, "
            f"username={self.username!r}, "
            f"company_id={self.company_id!r}, "
            f"is_active={self.is_active})"
        )

    def __str__(self) -> str:
        return self.username


# =============================================================================
# COMPANY CATALOG
# =============================================================================

class Warehouse(Base):
    __tablename__ = "erp_warehouses"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    code = Column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"Warehouse(id={self.id!r}, code={self.code!r})"


class Product(Base):
    """
    Company-scoped catalog product.

    Any of barcode, ean_code, upc_code, gtin or sku can match a scan.
    """

    __tablename__ = "erp_products"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    sku = Column(String(100), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    brand = Column(String(100), nullable=True)
    barcode = Column(String(64), nullable=True, index=True)
    ean_code = Column(String(64), nullable=True, index=True)
    upc_code = Column(String(64), nullable=True, index=True)
    gtin = Column(String(64), nullable=True, index=True)
    unit_of_measure = Column(String(20), nullable=True)
    cost_price = Column(Float, nullable=True)
    selling_price = Column(Float, nullable=True)
    mrp = Column(Float, nullable=True)
    status = Column(Enum(ProductStatus), default=ProductStatus.ACTIVE, nullable=False)
    images = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    inventory: Mapped[List["Inventory"]] = relationship(
        "Inventory",
        back_populates="product",
        cascade="all, delete-orphan"
    )

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE

    def __repr__(self) -> str:
        return f"Product(id={self.id!r}, sku={self.sku!r}, name={self.name!r})"


class Inventory(Base):
    """Per-warehouse stock of one product."""

    __tablename__ = "erp_inventory"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    product_id = Column(
        String(36),
        ForeignKey("erp_products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    warehouse_id = Column(String(36), ForeignKey("erp_warehouses.id"), nullable=False)
    quantity = Column(Integer, default=0, nullable=False)
    available_quantity = Column(Integer, default=0, nullable=False)

    product: Mapped["Product"] = relationship("Product", back_populates="inventory")
    warehouse: Mapped["Warehouse"] = relationship("Warehouse")

    def __repr__(self) -> str:
        return (
            f"Inventory(product_id={self.product_id!r}, "
            f"warehouse_id={self.warehouse_id!r}, "
            f"available={self.available_quantity})"
        )


class MasterProduct(Base):
    """Global catalog entry shared by all companies."""

    __tablename__ = "master_products"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    brand = Column(String(100), nullable=True)
    category = Column(String(100), nullable=True)
    barcode = Column(String(64), nullable=True, index=True)
    ean_code = Column(String(64), nullable=True, index=True)
    upc_code = Column(String(64), nullable=True, index=True)
    gtin = Column(String(64), nullable=True, index=True)
    status = Column(Enum(ProductStatus), default=ProductStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"MasterProduct(id={self.id!r}, name={self.name!r})"


# =============================================================================
# SCAN LOG
# =============================================================================

class BarcodeScanLog(Base):
    """
    One row per company lookup attempt.

    Rows are written by the scan log queue and never updated.
    """

    __tablename__ = "barcode_scan_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), nullable=False, index=True)
    barcode = Column(String(128), nullable=False, index=True)
    scan_type = Column(String(50), nullable=False, default="product_lookup")
    product_id = Column(String(36), nullable=True)
    session_id = Column(String(36), nullable=True)
    scanned_by = Column(String(36), nullable=True)
    scan_result = Column(Enum(ScanResult), nullable=False)
    # "metadata" is reserved on declarative classes
    scan_metadata = Column("metadata", JSON, nullable=True)
    scanned_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)

    def __repr__(self) -> str:
        return (
            f"BarcodeScanLog(barcode={self.barcode!r}, "
            f"scan_type={self.scan_type!r}, "
            f"result={self.scan_result.value!r})"
        )


# =============================================================================
# STOCK TAKING
# =============================================================================

class StockTakingSession(Base):
    """
    A named physical count.

    Items are accumulated while ACTIVE. COMPLETED and CANCELLED are final.
    """

    __tablename__ = "stock_taking_sessions"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    session_name = Column(String(100), nullable=False)
    warehouse_id = Column(String(36), ForeignKey("erp_warehouses.id"), nullable=True)
    started_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(Enum(SessionStatus), default=SessionStatus.ACTIVE, nullable=False)
    started_at = Column(DateTime, default=func.now(), nullable=False)
    completed_at = Column(DateTime, nullable=True)

    items: Mapped[List["StockTakingItem"]] = relationship(
        "StockTakingItem",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def __repr__(self) -> str:
        return (
            f"StockTakingSession(id={self.id!r}, "
            f"name={self.session_name!r}, "
            f"status={self.status.value!r})"
        )


class StockTakingItem(Base):
    """
    Counted product within a session.

    One row per (session, product). Repeat scans bump scan_count.
    """

    __tablename__ = "stock_taking_items"
    __table_args__ = (
        UniqueConstraint("session_id", "product_id", name="uq_stock_taking_item_product"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    session_id = Column(
        String(36),
        ForeignKey("stock_taking_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    product_id = Column(String(36), ForeignKey("erp_products.id"), nullable=False)
    warehouse_id = Column(String(36), ForeignKey("erp_warehouses.id"), nullable=True)
    system_quantity = Column(Integer, default=0, nullable=False)
    counted_quantity = Column(Integer, default=0, nullable=False)
    barcode_scanned = Column(String(128), nullable=True)
    scan_count = Column(Integer, default=1, nullable=False)
    scanned_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    notes = Column(Text, nullable=True)
    scanned_at = Column(DateTime, default=func.now(), nullable=False)

    session: Mapped["StockTakingSession"] = relationship(
        "StockTakingSession",
        back_populates="items"
    )
    product: Mapped["Product"] = relationship("Product")

    @property
    def difference(self) -> int:
        """Counted minus system quantity. Negative means shrinkage."""
        return (self.counted_quantity or 0) - (self.system_quantity or 0)

    def __repr__(self) -> str:
        return (
            f"StockTakingItem(product_id={self.product_id!r}, "
            f"system={self.system_quantity}, "
            f"counted={self.counted_quantity}, "
            f"scans={self.scan_count})"
        )
