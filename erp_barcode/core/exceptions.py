"""
Application Exception Handling

Single AppException class for all application errors with FastAPI integration.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class AppException(Exception):
    """
    Unified application exception for all error scenarios.

    Provides consistent error response format across the API, the
    WebSocket scanner and the scan pipeline.

    Usage:
        raise AppException("Camera permission denied", "CAMERA_PERMISSION_DENIED", 403)
        raise AppException("Invalid barcode", "INVALID_BARCODE", 422, {"barcode": "abc"})

    Error Codes:
        Camera:
            - CAMERA_PERMISSION_DENIED (403)
            - CAMERA_STREAM_ERROR (503)

        Barcode:
            - INVALID_BARCODE (422)
            - UNSUPPORTED_FORMAT (400)
            - LOOKUP_FAILED (502)
            - PRODUCT_NOT_FOUND (404)

        Stock taking:
            - SESSION_NOT_FOUND (404)
            - SESSION_NOT_ACTIVE (409)
            - ITEM_NOT_FOUND (404)
            - INVALID_SESSION_NAME (400)
            - INVALID_QUANTITY (400)

        Authentication:
            - INVALID_CREDENTIALS (401)
            - TOKEN_EXPIRED (401)
            - TOKEN_INVALID (401)
            - ACCOUNT_DISABLED (403)

        General:
            - INTERNAL_ERROR (500)
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "INVALID_BARCODE")
            status_code: HTTP status code (default: 400)
            details: Additional error context (optional)
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        error_dict = {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "timestamp": self.timestamp
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Convert AppException to consistent JSON error response."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)


# ============================================
# CAMERA
# ============================================

def camera_permission_denied() -> AppException:
    """Camera could not be opened or access was refused."""
    return AppException(
        "Camera permission denied. Please allow camera access to scan barcodes.",
        "CAMERA_PERMISSION_DENIED",
        403
    )


def camera_stream_error(reason: Optional[str] = None) -> AppException:
    """Camera stream failed after permission was granted."""
    details = {"reason": reason} if reason else {}
    return AppException(
        "Failed to access camera. Please check permissions.",
        "CAMERA_STREAM_ERROR",
        503,
        details
    )


# ============================================
# BARCODE
# ============================================

def invalid_barcode(barcode: str, barcode_format: Optional[str] = None) -> AppException:
    """Decoded or typed string does not match any known symbology."""
    details: Dict[str, Any] = {"barcode": barcode}
    if barcode_format:
        details["format"] = barcode_format
        message = f"Invalid {barcode_format} barcode: {barcode!r}"
    else:
        message = f"Invalid barcode: {barcode!r}"
    return AppException(message, "INVALID_BARCODE", 422, details)


def unsupported_format(barcode_format: str) -> AppException:
    return AppException(
        f"Unsupported barcode format: {barcode_format}",
        "UNSUPPORTED_FORMAT",
        400,
        {"format": barcode_format}
    )


def lookup_failed(barcode: str, reason: Optional[str] = None) -> AppException:
    """Backend product store call failed."""
    details: Dict[str, Any] = {"barcode": barcode}
    if reason:
        details["reason"] = reason
    return AppException(
        f"Product lookup failed for barcode {barcode!r}",
        "LOOKUP_FAILED",
        502,
        details
    )


def product_not_found(barcode: str) -> AppException:
    return AppException(
        f"No product found with barcode/SKU: {barcode}",
        "PRODUCT_NOT_FOUND",
        404,
        {"barcode": barcode}
    )


# ============================================
# STOCK TAKING
# ============================================

def session_not_found(session_id: Optional[str] = None) -> AppException:
    details = {"session_id": session_id} if session_id else {}
    return AppException("Stock taking session not found", "SESSION_NOT_FOUND", 404, details)


def session_not_active(session_id: str, status: str) -> AppException:
    return AppException(
        f"Stock taking session is {status}",
        "SESSION_NOT_ACTIVE",
        409,
        {"session_id": session_id, "status": status}
    )


def item_not_found(item_id: Optional[str] = None) -> AppException:
    details = {"item_id": item_id} if item_id else {}
    return AppException("Stock taking item not found", "ITEM_NOT_FOUND", 404, details)


def invalid_session_name(name: str, reason: str) -> AppException:
    return AppException(
        f"Invalid session name: {reason}",
        "INVALID_SESSION_NAME",
        400,
        {"session_name": name, "reason": reason}
    )


def invalid_quantity(quantity: int, reason: str) -> AppException:
    return AppException(
        f"Invalid quantity: {reason}",
        "INVALID_QUANTITY",
        400,
        {"quantity": quantity, "reason": reason}
    )


# ============================================
# AUTHENTICATION
# ============================================

def invalid_credentials() -> AppException:
    return AppException("Invalid username or password", "INVALID_CREDENTIALS", 401)


def token_expired() -> AppException:
    return AppException("Token has expired", "TOKEN_EXPIRED", 401)


def token_invalid() -> AppException:
    return AppException("Invalid or malformed token", "TOKEN_INVALID", 401)


def account_disabled() -> AppException:
    return AppException("Account has been disabled", "ACCOUNT_DISABLED", 403)


def internal_error(message: str = "Internal server error") -> AppException:
    return AppException(message, "INTERNAL_ERROR", 500)
