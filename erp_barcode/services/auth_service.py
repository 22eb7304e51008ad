"""
==============================================================================
Authentication Service Module
==============================================================================

Login and access token issuing for scanner users.

Authentication Flow:
-------------------
    ┌─────────────┐
    │   Login     │
    │  Request    │
    └──────┬──────┘
           │
    ┌──────▼──────┐     ┌─────────────┐
    │ Find User   │────▶│ Not Found   │ → INVALID_CREDENTIALS
    └──────┬──────┘     └─────────────┘
           │
    ┌──────▼──────┐     ┌─────────────┐
    │  Verify     │────▶│  Password   │ → INVALID_CREDENTIALS
    │  Password   │     │   Wrong     │
    └──────┬──────┘     └─────────────┘
           │
    ┌──────▼──────┐     ┌─────────────┐
    │   Check     │────▶│  Account    │ → ACCOUNT_DISABLED
    │   Active    │     │  Disabled   │
    └──────┬──────┘     └─────────────┘
           │
    ┌──────▼──────┐
    │ Issue Token │  (sub, username, company_id)
    └─────────────┘

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Tuple

from sqlalchemy.orm import Session

from erp_barcode.core import exceptions
from erp_barcode.core.security import SecurityManager
from erp_barcode.db.models import User


# Module logger
logger = logging.getLogger(__name__)


class AuthService:
    """
    Authentication service.

    Attributes:
        _db: Database session for user queries
        _security: SecurityManager for hashing and tokens

    Example:
        >>> auth_service = AuthService(db_session, security)
        >>> user, access_token = auth_service.authenticate("admin", "admin123")
    """

    def __init__(self, db: Session, security: SecurityManager) -> None:
        self._db = db
        self._security = security

    def authenticate(self, username: str, password: str) -> Tuple[User, str]:
        """
        Authenticate user with username and password.

        Returns:
            Tuple of (User, access_token)

        Raises:
            AppException: INVALID_CREDENTIALS if user not found or password wrong
            AppException: ACCOUNT_DISABLED if user is inactive
        """
        normalized_username = username.lower().strip()

        user = self._db.query(User).filter(User.username == normalized_username).first()

        if not user:
            logger.warning(f"Login failed: user not found - {normalized_username}")
            raise exceptions.invalid_credentials()

        if not self._security.verify_password(password, user.password_hash):
            logger.warning(f"Login failed: invalid password - {normalized_username}")
            raise exceptions.invalid_credentials()

        if not user.is_active:
            logger.warning(f"Login failed: account disabled - {normalized_username}")
            raise exceptions.account_disabled()

        access_token = self.issue_token(user)

        logger.info(f"✅ User authenticated: {user.username}")
        return user, access_token

    def issue_token(self, user: User) -> str:
        return self._security.create_access_token({
            "sub": user.id,
            "username": user.username,
            "company_id": user.company_id,
        })

    def get_token_expiry_seconds(self) -> int:
        return self._security.get_access_token_expire_seconds()
