"""
==============================================================================
Core Package
==============================================================================

Core utilities and infrastructure for the application.

This package provides:
- Custom exception handling with consistent error responses
- JWT token management and password hashing
- FastAPI dependencies for authentication

Modules:
--------
- exceptions: AppException class and error factory functions
- security: SecurityManager for auth operations
- dependencies: FastAPI dependency injection functions

Usage:
------
    from erp_barcode.core import exceptions
    raise exceptions.invalid_barcode("abc")

==============================================================================
"""

from .exceptions import (
    AppException,
    register_exception_handlers,
)
from .security import SecurityManager
from .dependencies import (
    AuthenticationManager,
    authenticate_ws,
    get_current_user,
)

__all__ = [
    # Exceptions
    "AppException",
    "register_exception_handlers",
    # Security
    "SecurityManager",
    # Dependencies
    "AuthenticationManager",
    "authenticate_ws",
    "get_current_user",
]
