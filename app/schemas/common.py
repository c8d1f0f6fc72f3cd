"""
Common Schemas
==============

Shared Pydantic schemas used across the application.
"""

from typing import Optional

from pydantic import BaseModel


class MessageResponse(BaseModel):
    """Response carrying only a status message."""

    success: bool = True
    message: str


class ErrorDetail(BaseModel):
    """Error detail structure."""

    code: str
    message: str
    kind: Optional[str] = None
    field: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    error: ErrorDetail
