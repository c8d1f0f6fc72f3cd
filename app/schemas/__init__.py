"""
Pydantic Schemas
================

Request/response schemas for API validation.
"""

from app.schemas.common import ErrorResponse, MessageResponse

__all__ = [
    "ErrorResponse",
    "MessageResponse",
]
