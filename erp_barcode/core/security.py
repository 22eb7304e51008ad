"""
==============================================================================
Security Module - Authentication & Cryptography
==============================================================================

JWT access tokens and password hashing for the "current user" provider.

Token Structure:
---------------
{
    "sub": "user-uuid",           # Subject (user ID)
    "username": "john",           # Username for convenience
    "company_id": "company-uuid", # Company that scopes lookups
    "type": "access",             # Token type
    "exp": 1234567890,            # Expiration timestamp
    "iat": 1234567890             # Issued at timestamp
}

Passwords are hashed with passlib's pbkdf2_sha256 scheme.

==============================================================================
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from erp_barcode.config import Settings


# Module logger
logger = logging.getLogger(__name__)


class SecurityManager:
    """
    Password hashing and JWT token handling.

    One instance is built per application by ``create_app`` and kept on
    ``app.state.security``.

    Example:
        >>> security = SecurityManager(settings)
        >>> hashed = security.hash_password("secret123")
        >>> security.verify_password("secret123", hashed)
        True
        >>> token = security.create_access_token({"sub": "user-id"})
        >>> security.verify_token(token)["sub"]
        'user-id'
    """

    TOKEN_TYPE_ACCESS = "access"

    HASH_SCHEMES = ["pbkdf2_sha256"]

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._pwd_context = CryptContext(schemes=self.HASH_SCHEMES, deprecated="auto")

    # =========================================================================
    # PASSWORD HASHING
    # =========================================================================

    def hash_password(self, plain_password: str) -> str:
        """
        Hash a plain text password.

        Raises:
            ValueError: If the password is empty
        """
        if not plain_password:
            raise ValueError("Password cannot be empty")
        return self._pwd_context.hash(plain_password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a plain text password against a stored hash."""
        try:
            return self._pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.warning(f"Password verification error: {type(e).__name__}")
            return False

    # =========================================================================
    # JWT TOKENS
    # =========================================================================

    def create_access_token(
        self,
        data: Dict[str, Any],
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Create a signed access token.

        Args:
            data: Payload data (must include 'sub' for user ID)
            expires_delta: Custom lifetime (defaults to settings)

        Returns:
            Encoded JWT string
        """
        payload = data.copy()
        now = datetime.now(timezone.utc)
        expire = now + (
            expires_delta
            or timedelta(minutes=self._settings.access_token_expire_minutes)
        )

        payload.update({
            "type": self.TOKEN_TYPE_ACCESS,
            "exp": expire,
            "iat": now
        })

        return jwt.encode(
            payload,
            self._settings.jwt_secret_key,
            algorithm=self._settings.jwt_algorithm
        )

    def verify_token(
        self,
        token: str,
        token_type: str = TOKEN_TYPE_ACCESS
    ) -> Optional[Dict[str, Any]]:
        """
        Verify signature, expiry and type of a token.

        Returns:
            Decoded payload if valid, None otherwise
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.jwt_secret_key,
                algorithms=[self._settings.jwt_algorithm]
            )
        except JWTError as e:
            logger.debug(f"Token verification failed: {e}")
            return None

        if payload.get("type") != token_type:
            logger.warning(
                f"Token type mismatch: expected {token_type}, "
                f"got {payload.get('type')}"
            )
            return None

        return payload

    def get_access_token_expire_seconds(self) -> int:
        return self._settings.access_token_expire_minutes * 60
