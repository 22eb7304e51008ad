"""
==============================================================================
Product Lookup Endpoints
==============================================================================

Barcode lookup against the company catalog and the global master catalog.

Company lookups are scoped to the current user's company and write one
scan log entry each. A failing store call answers 502 LOOKUP_FAILED.

==============================================================================
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from erp_barcode.db.database import get_db
from erp_barcode.db.models import User
from erp_barcode.core.dependencies import get_current_user
from erp_barcode.core import exceptions
from erp_barcode.services.barcode_service import BarcodeService
from erp_barcode.schemas.barcode import (
    MasterProductLookupResponse,
    MasterProductOut,
    ProductLookupResponse,
    ProductOut,
)


router = APIRouter(prefix="/products", tags=["Products"])


class ProductController:
    """Controller for product lookup operations."""

    def __init__(self, db: Session, request: Request):
        state = request.app.state
        self._service = BarcodeService(db, state.scan_log, state.validator)

    def get_by_barcode(self, barcode: str, user: User) -> ProductLookupResponse:
        """Look up company products by any barcode column or SKU."""
        clean = barcode.strip()
        lookup = self._service.search_product_by_barcode(
            clean,
            user.company_id,
            scanned_by=user.id
        )

        if lookup.error:
            raise exceptions.lookup_failed(clean, lookup.error)

        return ProductLookupResponse(
            barcode=clean,
            total=len(lookup.products),
            products=[ProductOut.model_validate(p) for p in lookup.products]
        )

    def get_master_by_barcode(self, barcode: str) -> MasterProductLookupResponse:
        clean = barcode.strip()
        lookup = self._service.search_master_product_by_barcode(clean)

        if lookup.error:
            raise exceptions.lookup_failed(clean, lookup.error)

        return MasterProductLookupResponse(
            barcode=clean,
            total=len(lookup.products),
            products=[MasterProductOut.model_validate(p) for p in lookup.products]
        )


@router.get("/barcode/{barcode}", response_model=ProductLookupResponse)
async def get_product_by_barcode(
    barcode: str,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get company products matching a barcode, with inventory."""
    controller = ProductController(db, request)
    return controller.get_by_barcode(barcode, user)


@router.get("/master/barcode/{barcode}", response_model=MasterProductLookupResponse)
async def get_master_product_by_barcode(
    barcode: str,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get global catalog entries matching a barcode."""
    controller = ProductController(db, request)
    return controller.get_master_by_barcode(barcode)
