"""
==============================================================================
Authentication Schemas Module
==============================================================================

Request and response schemas for authentication endpoints.

==============================================================================
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator


class LoginRequest(BaseModel):
    """Login credentials."""
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        return v.lower().strip()


class UserInfo(BaseModel):
    """Basic user info for token response."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    company_id: str


class TokenResponse(BaseModel):
    """Token response after authentication."""
    success: bool = Field(default=True)
    access_token: str
    token_type: str = Field(default="bearer")
    expires_in: int
    user: UserInfo


class CurrentUserInfo(BaseModel):
    """Detailed current user information."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    company_id: str
    is_active: bool
    created_at: datetime


class CurrentUserResponse(BaseModel):
    """Current user details response."""
    success: bool = Field(default=True)
    user: CurrentUserInfo
