"""
==============================================================================
API v1 Endpoints
==============================================================================

Version 1 of the REST API.

Routers:
--------
- health: Health check endpoints
- auth: Authentication endpoints
- products: Company and master catalog barcode lookup
- barcodes: Validation, detection, generation, analytics
- stock_taking: Stock taking sessions

==============================================================================
"""

from . import health, auth, products, barcodes, stock_taking

__all__ = ["health", "auth", "products", "barcodes", "stock_taking"]
