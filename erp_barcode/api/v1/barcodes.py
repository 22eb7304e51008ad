"""
==============================================================================
Barcode Utility Endpoints
==============================================================================

Validation, format detection, test barcode generation and scan analytics.

==============================================================================
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from erp_barcode.barcode import BarcodeValidator, Symbology
from erp_barcode.db.database import get_db
from erp_barcode.db.models import User
from erp_barcode.core.dependencies import get_current_user
from erp_barcode.core import exceptions
from erp_barcode.services.barcode_service import BarcodeService
from erp_barcode.schemas.barcode import (
    BarcodeDetectResponse,
    BarcodeGenerateResponse,
    BarcodeValidateRequest,
    BarcodeValidateResponse,
    ScanAnalyticsResponse,
    ScanLogOut,
)


router = APIRouter(prefix="/barcodes", tags=["Barcodes"])


def _format_name(symbology: Optional[Symbology]) -> Optional[str]:
    return symbology.value if symbology else None


class BarcodeController:
    """Controller for barcode utilities."""

    def __init__(self, validator: BarcodeValidator):
        self._validator = validator

    def validate(self, body: BarcodeValidateRequest) -> BarcodeValidateResponse:
        detected = self._validator.detect_format(body.barcode)
        return BarcodeValidateResponse(
            barcode=body.barcode,
            valid=self._validator.validate(body.barcode, body.format),
            format=_format_name(detected),
            formatted=self._validator.format(body.barcode, body.format)
        )

    def detect(self, barcode: str) -> BarcodeDetectResponse:
        clean = barcode.strip()
        return BarcodeDetectResponse(
            barcode=clean,
            format=_format_name(self._validator.detect_format(clean))
        )

    def generate(self, barcode_format: str) -> BarcodeGenerateResponse:
        """Generate a test barcode. Only EAN-13, EAN-8 and UPC-A are generated."""
        symbology = Symbology.parse(barcode_format)
        if symbology not in BarcodeValidator.GENERATED_PAYLOAD_LENGTHS:
            raise exceptions.unsupported_format(barcode_format)

        barcode = self._validator.generate(symbology)
        return BarcodeGenerateResponse(
            format=symbology.value,
            barcode=barcode,
            formatted=self._validator.format(barcode, symbology)
        )


@router.post("/validate", response_model=BarcodeValidateResponse)
async def validate_barcode(
    body: BarcodeValidateRequest,
    request: Request,
    user: User = Depends(get_current_user)
):
    """Validate a barcode, optionally against an explicit format."""
    controller = BarcodeController(request.app.state.validator)
    return controller.validate(body)


@router.get("/detect/{barcode}", response_model=BarcodeDetectResponse)
async def detect_barcode(
    barcode: str,
    request: Request,
    user: User = Depends(get_current_user)
):
    """Detect the symbology of a barcode."""
    controller = BarcodeController(request.app.state.validator)
    return controller.detect(barcode)


@router.get("/generate", response_model=BarcodeGenerateResponse)
async def generate_barcode(
    request: Request,
    format: str = Query(Symbology.EAN_13.value, max_length=20),
    user: User = Depends(get_current_user)
):
    """Generate a random test barcode with a valid check digit."""
    controller = BarcodeController(request.app.state.validator)
    return controller.generate(format)


@router.get("/analytics", response_model=ScanAnalyticsResponse)
async def get_scan_analytics(
    request: Request,
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Scan log aggregates for the current user's company."""
    service = BarcodeService(db, validator=request.app.state.validator)
    analytics = service.get_barcode_analytics(user.company_id, date_from, date_to)

    return ScanAnalyticsResponse(
        total_scans=analytics.total_scans,
        successful_scans=analytics.successful_scans,
        failed_scans=analytics.failed_scans,
        error_scans=analytics.error_scans,
        scans_by_type=analytics.scans_by_type,
        scans_by_day=analytics.scans_by_day,
        logs=[ScanLogOut.model_validate(log) for log in analytics.logs]
    )
