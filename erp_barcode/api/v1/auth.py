"""
==============================================================================
Authentication Endpoints
==============================================================================

User login and current user details.

==============================================================================
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from erp_barcode.db.database import get_db
from erp_barcode.db.models import User
from erp_barcode.core.dependencies import get_current_user, get_security
from erp_barcode.services.auth_service import AuthService
from erp_barcode.schemas.auth import (
    LoginRequest,
    TokenResponse,
    UserInfo,
    CurrentUserResponse,
    CurrentUserInfo,
)


router = APIRouter(prefix="/auth", tags=["Authentication"])


class AuthController:
    """Controller for authentication operations."""

    def __init__(self, db: Session, request: Request):
        self._service = AuthService(db, get_security(request))

    def login(self, request: LoginRequest) -> TokenResponse:
        """Authenticate user and generate an access token."""
        user, access_token = self._service.authenticate(
            request.username,
            request.password
        )

        return TokenResponse(
            access_token=access_token,
            expires_in=self._service.get_token_expiry_seconds(),
            user=UserInfo.model_validate(user)
        )


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """Authenticate user and get an access token."""
    controller = AuthController(db, request)
    return controller.login(body)


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_info(user: User = Depends(get_current_user)):
    """Get current authenticated user information."""
    return CurrentUserResponse(user=CurrentUserInfo.model_validate(user))
