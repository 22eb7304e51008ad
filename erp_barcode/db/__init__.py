"""
==============================================================================
Database Package
==============================================================================

SQLAlchemy database infrastructure and ORM models.

Architecture:
------------
├── database.py   - DatabaseManager class, session factory, get_db
├── models.py     - SQLAlchemy ORM model classes
└── init_db.py    - DatabaseInitializer for setup

Usage:
------
    from erp_barcode.db import DatabaseManager, Product

    db_manager = DatabaseManager("sqlite:///./storage/db/erp.db")
    with db_manager.session_scope() as session:
        products = session.query(Product).all()

==============================================================================
"""

from .database import DatabaseManager, Base, get_db
from .models import (
    BarcodeScanLog,
    Company,
    Inventory,
    MasterProduct,
    Product,
    ProductStatus,
    ScanResult,
    SessionStatus,
    StockTakingItem,
    StockTakingSession,
    User,
    Warehouse,
)
from .init_db import DatabaseInitializer, init_db

__all__ = [
    # Database management
    "DatabaseManager",
    "Base",
    "get_db",
    # Models
    "BarcodeScanLog",
    "Company",
    "Inventory",
    "MasterProduct",
    "Product",
    "StockTakingItem",
    "StockTakingSession",
    "User",
    "Warehouse",
    # Enums
    "ProductStatus",
    "ScanResult",
    "SessionStatus",
    # Initialization
    "DatabaseInitializer",
    "init_db",
]
