"""
==============================================================================
Common Schemas Module
==============================================================================

Shared response schemas used across all API endpoints.

==============================================================================
"""

from typing import Any, Optional
from pydantic import BaseModel, Field


class SuccessResponse(BaseModel):
    """Standard success response wrapper."""
    success: bool = Field(default=True)
    data: Optional[Any] = Field(default=None)


class MessageResponse(BaseModel):
    """Simple message response."""
    success: bool = Field(default=True)
    message: str
