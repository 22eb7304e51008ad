"""
==============================================================================
FastAPI Dependencies Module
==============================================================================

Dependency injection for authentication.

Dependency Hierarchy:
--------------------
                    ┌─────────────────┐
                    │   get_db()      │
                    └────────┬────────┘
                             │
                    ┌────────▼────────┐
                    │get_current_user │
                    └─────────────────┘

The security manager is read from ``request.app.state``. WebSocket handlers
call ``authenticate_ws`` with the ``token`` query parameter instead.

Usage Examples:
--------------
    @router.get("/auth/me")
    async def me(user: User = Depends(get_current_user)):
        return {"username": user.username}

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from erp_barcode.core import exceptions
from erp_barcode.core.security import SecurityManager
from erp_barcode.db.database import get_db
from erp_barcode.db.models import User


# Module logger
logger = logging.getLogger(__name__)

# HTTP Bearer security scheme for Swagger UI
security_scheme = HTTPBearer(auto_error=False)


class AuthenticationManager:
    """
    Resolves a JWT to an active user.

    Example:
        >>> auth = AuthenticationManager(security_manager, db_session)
        >>> user = auth.authenticate_from_token(token)
    """

    def __init__(self, security: SecurityManager, db: Session) -> None:
        self._security = security
        self._db = db

    def authenticate_from_token(self, token: Optional[str]) -> User:
        """
        Verify the token and load its user.

        Raises:
            AppException: TOKEN_INVALID, TOKEN_EXPIRED or ACCOUNT_DISABLED
        """
        if not token:
            logger.debug("No token provided")
            raise exceptions.token_invalid()

        payload = self._security.verify_token(token)

        if not payload:
            logger.debug("Token verification failed")
            raise exceptions.token_expired()

        user_id = payload.get("sub")

        if not user_id:
            logger.warning("Token payload missing 'sub' claim")
            raise exceptions.token_invalid()

        user = self._db.query(User).filter(User.id == user_id).first()

        if not user:
            logger.warning(f"User not found for token: {user_id}")
            raise exceptions.token_invalid()

        if not user.is_active:
            logger.warning(f"Disabled user attempted access: {user.username}")
            raise exceptions.account_disabled()

        return user


# =============================================================================
# FASTAPI DEPENDENCY FUNCTIONS
# =============================================================================

def get_security(request: Request) -> SecurityManager:
    return request.app.state.security


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Get the authenticated user from the Authorization header.

    Raises:
        AppException: If authentication fails
    """
    token = credentials.credentials if credentials else None
    return AuthenticationManager(get_security(request), db).authenticate_from_token(token)


def authenticate_ws(app, db: Session, token: Optional[str]) -> User:
    """
    Authenticate a WebSocket connection from its ``token`` query parameter.

    WebSocket handshakes cannot carry the bearer header from browsers.
    """
    return AuthenticationManager(app.state.security, db).authenticate_from_token(token)
