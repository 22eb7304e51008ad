"""
==============================================================================
WebSocket Package
==============================================================================

Real-time WebSocket handlers for barcode scanning.

Handlers:
---------
- scanner: Live scanning with the browser as camera (lookup or stock taking)

==============================================================================
"""

from .scanner import router as scanner_router

__all__ = ["scanner_router"]
