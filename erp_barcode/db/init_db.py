"""
==============================================================================
Database Initialization Module
==============================================================================

Database initialization and setup utilities.

This module implements:
- DatabaseInitializer: Class for database setup operations
- Table creation and verification
- Default company and admin user creation
- Development sample catalog

Initialization Flow:
-------------------
1. Create all tables from ORM models
2. Create the default company if no company exists
3. Create the default admin in that company if no user exists
4. Log initialization status

Security Notes:
--------------
- Default admin credentials should be changed immediately
- Credentials are loaded from environment variables
- Password is hashed before storage

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from erp_barcode.config import Settings
from erp_barcode.core.security import SecurityManager
from erp_barcode.db.database import DatabaseManager
from erp_barcode.db.models import (
    Company,
    Inventory,
    MasterProduct,
    Product,
    User,
    Warehouse,
)


# Module logger
logger = logging.getLogger(__name__)


# (sku, name, brand, barcode, ean_code, upc_code, available)
SAMPLE_PRODUCTS = [
    ("SKU-1001", "Sparkling Water 500ml", "Aqua", "4006381333931", "4006381333931", None, 48),
    ("SKU-1002", "Whole Wheat Crackers", "Crunch", "036000291452", None, "036000291452", 12),
    ("SKU-1003", "Ground Coffee 250g", "Roastery", "96385074", "96385074", None, 30),
    ("SKU-1004", "Shipping Labels A6", "PackIt", "LBL-A6-100", None, None, 200),
]


class DatabaseInitializer:
    """
    Database initialization manager.

    Attributes:
        _db_manager: DatabaseManager instance
        _security: SecurityManager for password hashing
        _settings: Application settings

    Example:
        >>> initializer = DatabaseInitializer(db_manager, security, settings)
        >>> initializer.initialize()
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        security: SecurityManager,
        settings: Settings
    ) -> None:
        self._db_manager = db_manager
        self._security = security
        self._settings = settings

    # =========================================================================
    # TABLE OPERATIONS
    # =========================================================================

    def create_tables(self) -> None:
        logger.info("Creating database tables...")
        self._db_manager.create_tables()
        logger.info("✅ Database tables created successfully")

    # =========================================================================
    # DEFAULT ACCOUNT
    # =========================================================================

    def create_default_admin(self) -> Optional[User]:
        """
        Create the default company and admin user on an empty database.

        Returns:
            Created User object, or None if any user already exists
        """
        with self._db_manager.session_scope() as session:
            if session.query(User).first():
                logger.info("Users already exist, skipping default admin")
                return None

            company = session.query(Company).first()
            if company is None:
                company = Company(name=self._settings.default_company_name)
                session.add(company)
                session.flush()
                logger.info(f"✅ Default company created: {company.name}")

            admin_user = User(
                username=self._settings.default_admin_username.lower(),
                password_hash=self._security.hash_password(
                    self._settings.default_admin_password
                ),
                company_id=company.id,
                is_active=True
            )
            session.add(admin_user)

        logger.info(f"✅ Default admin user created: {admin_user.username}")
        logger.warning("⚠️ Please change the default admin password immediately!")
        return admin_user

    # =========================================================================
    # INITIALIZATION METHODS
    # =========================================================================

    def initialize(self) -> None:
        """
        Perform full database initialization.

        Sample catalog data is added outside production when the company
        has no products yet.
        """
        logger.info("=" * 60)
        logger.info("Initializing database...")
        logger.info("=" * 60)

        self.create_tables()
        self.create_default_admin()

        if not self._settings.is_production:
            self.seed_sample_catalog()

        if self._db_manager.verify_connection():
            logger.info("✅ Database connection verified")
        else:
            logger.warning("⚠️ Database connection check failed")

        logger.info("Database initialization complete")

    # =========================================================================
    # DEVELOPMENT UTILITIES
    # =========================================================================

    def seed_sample_catalog(self) -> int:
        """
        Add a warehouse, a few products and master catalog rows.

        Returns:
            Number of products created (0 if the catalog is not empty)
        """
        if self._settings.is_production:
            logger.error("Cannot seed sample data in production!")
            raise RuntimeError("Sample data seeding not allowed in production")

        try:
            with self._db_manager.session_scope() as session:
                company = session.query(Company).first()
                if company is None or session.query(Product).first():
                    return 0

                warehouse = Warehouse(company_id=company.id, name="Main Warehouse", code="WH-01")
                session.add(warehouse)
                session.flush()

                for sku, name, brand, barcode, ean, upc, available in SAMPLE_PRODUCTS:
                    product = Product(
                        company_id=company.id,
                        sku=sku,
                        name=name,
                        brand=brand,
                        barcode=barcode,
                        ean_code=ean,
                        upc_code=upc,
                        unit_of_measure="pcs",
                    )
                    product.inventory.append(Inventory(
                        company_id=company.id,
                        warehouse_id=warehouse.id,
                        quantity=available,
                        available_quantity=available,
                    ))
                    session.add(product)

                    if ean or upc:
                        session.add(MasterProduct(
                            name=name,
                            brand=brand,
                            barcode=barcode,
                            ean_code=ean,
                            upc_code=upc,
                        ))
        except SQLAlchemyError as e:
            logger.error(f"Failed to seed sample catalog: {e}")
            raise

        logger.info(f"✅ Sample catalog seeded: {len(SAMPLE_PRODUCTS)} products")
        return len(SAMPLE_PRODUCTS)

    def get_stats(self) -> dict:
        """Row counts per table."""
        with self._db_manager.session_scope() as session:
            return {
                "companies": session.query(Company).count(),
                "users": session.query(User).count(),
                "products": session.query(Product).count(),
                "master_products": session.query(MasterProduct).count(),
            }


def init_db(db_manager: DatabaseManager, security: SecurityManager, settings: Settings) -> None:
    """Convenience wrapper used by the application lifespan."""
    DatabaseInitializer(db_manager, security, settings).initialize()
