"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides test database, client, catalog and authentication fixtures.

Each test gets its own SQLite file under ``tmp_path``. The app is built with
``create_app`` around that database and a scripted decoder. The client is
not entered as a context manager, so the lifespan does not run and scan
logs are written inline (deterministic for assertions).

==============================================================================
"""

import base64
from typing import Dict, Generator, Optional

import cv2
import numpy as np
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from erp_barcode.config import Settings
from erp_barcode.core.security import SecurityManager
from erp_barcode.db import (
    Company,
    DatabaseManager,
    Inventory,
    MasterProduct,
    Product,
    User,
    Warehouse,
)
from erp_barcode.main import create_app
from erp_barcode.scanner import DecodeResult


TEST_SECRET = "test-secret-key-0123456789abcdef"

EAN13 = "4006381333931"
UPCA = "036000291452"
EAN8 = "96385074"


# ============================================================================
# FAKES
# ============================================================================

class ScriptedDecoder:
    """Decoder that reports ``text`` for every raster, or nothing when None."""

    def __init__(self, text: Optional[str] = None):
        self.text = text
        self.calls = 0

    def decode(self, image: np.ndarray) -> Optional[DecodeResult]:
        self.calls += 1
        if self.text is None:
            return None
        return DecodeResult(text=self.text)


def encode_frame(width: int = 32, height: int = 24) -> str:
    """Base64 JPEG of a blank frame, as a browser would push it."""
    ok, buffer = cv2.imencode(".jpg", np.zeros((height, width, 3), dtype=np.uint8))
    assert ok
    return base64.b64encode(buffer.tobytes()).decode("ascii")


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        jwt_secret_key=TEST_SECRET,
        app_env="development",
        debug=False,
    )


@pytest.fixture
def db_manager(settings: Settings) -> Generator[DatabaseManager, None, None]:
    """Create a fresh database for each test."""
    manager = DatabaseManager(settings.database_url)
    manager.create_tables()
    yield manager
    manager.drop_tables()
    manager.dispose()


@pytest.fixture
def db(db_manager: DatabaseManager) -> Generator[Session, None, None]:
    session = db_manager.get_session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def security(settings: Settings) -> SecurityManager:
    return SecurityManager(settings)


# ============================================================================
# APP FIXTURES
# ============================================================================

@pytest.fixture
def decoder() -> ScriptedDecoder:
    return ScriptedDecoder()


@pytest.fixture
def app(settings: Settings, db_manager: DatabaseManager, decoder: ScriptedDecoder) -> FastAPI:
    return create_app(settings, database=db_manager, decoder_factory=lambda: decoder)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


# ============================================================================
# CATALOG FIXTURES
# ============================================================================

def _add_company(
    db: Session,
    security: SecurityManager,
    name: str,
    username: str
) -> Dict:
    company = Company(name=name)
    db.add(company)
    db.flush()

    user = User(
        username=username,
        password_hash=security.hash_password("secret123"),
        company_id=company.id,
        is_active=True
    )
    warehouse = Warehouse(company_id=company.id, name=f"{name} Main", code="WH-01")
    db.add_all([user, warehouse])
    db.flush()
    return {"company": company, "user": user, "warehouse": warehouse}


def _add_product(
    db: Session,
    company: Company,
    warehouse: Optional[Warehouse],
    sku: str,
    name: str,
    barcode: Optional[str],
    available: Optional[int] = None,
    **fields
) -> Product:
    product = Product(company_id=company.id, sku=sku, name=name, barcode=barcode, **fields)
    if warehouse is not None and available is not None:
        product.inventory.append(Inventory(
            company_id=company.id,
            warehouse_id=warehouse.id,
            quantity=available,
            available_quantity=available,
        ))
    db.add(product)
    db.flush()
    return product


@pytest.fixture
def catalog(db: Session, security: SecurityManager) -> Dict:
    """
    Two companies sharing an EAN-13 label.

    Company X: water (EAN13, 48 on hand), crackers (UPC-A in upc_code,
    no inventory), labels (SKU-only). Company Y: its own water (EAN13, 5).
    """
    x = _add_company(db, security, "Company X", "alice")
    y = _add_company(db, security, "Company Y", "bob")

    water = _add_product(db, x["company"], x["warehouse"], "SKU-1001", "Sparkling Water", EAN13, 48)
    crackers = _add_product(db, x["company"], None, "SKU-1002", "Crackers", None, upc_code=UPCA)
    labels = _add_product(db, x["company"], x["warehouse"], "LBL-A6-100", "Shipping Labels", None, 200)
    y_water = _add_product(db, y["company"], y["warehouse"], "Y-WATER", "Mineral Water", EAN13, 5)

    db.add(MasterProduct(name="Sparkling Water", brand="Aqua", barcode=EAN13, ean_code=EAN13))
    db.commit()

    return {
        "x": x,
        "y": y,
        "water": water,
        "crackers": crackers,
        "labels": labels,
        "y_water": y_water,
    }


# ============================================================================
# TOKEN FIXTURES
# ============================================================================

def _token(security: SecurityManager, user: User) -> str:
    return security.create_access_token({
        "sub": user.id,
        "username": user.username,
        "company_id": user.company_id
    })


@pytest.fixture
def x_token(security: SecurityManager, catalog: Dict) -> str:
    return _token(security, catalog["x"]["user"])


@pytest.fixture
def x_headers(x_token: str) -> Dict[str, str]:
    """Authorization headers for the Company X user."""
    return {"Authorization": f"Bearer {x_token}"}


@pytest.fixture
def y_headers(security: SecurityManager, catalog: Dict) -> Dict[str, str]:
    """Authorization headers for the Company Y user."""
    return {"Authorization": f"Bearer {_token(security, catalog['y']['user'])}"}


