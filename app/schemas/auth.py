"""
Authentication Schemas
======================

Pydantic schemas for authentication and account endpoints.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


class UserRegister(BaseModel):
    """Request schema for user registration."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(min_length=8, max_length=100)
    username: str = Field(alias="userName", min_length=8, max_length=255)
    first_name: str = Field(alias="firstName", min_length=1, max_length=255)
    last_name: Optional[str] = Field(None, alias="lastName", max_length=255)


class UserLogin(BaseModel):
    """Request schema for user login."""

    email: EmailStr
    password: str = Field(min_length=8)


class UserUpdate(BaseModel):
    """Request schema for profile updates."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(None, alias="firstName", max_length=255)
    last_name: Optional[str] = Field(None, alias="lastName", max_length=255)

    @model_validator(mode="after")
    def require_one_name(self) -> "UserUpdate":
        if not (self.first_name or "").strip() and not (self.last_name or "").strip():
            raise ValueError(
                "At least one of firstName and lastName must be provided and non-empty"
            )
        return self


class TokenResponse(BaseModel):
    """Response schema for tokens."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class AuthResponse(BaseModel):
    """Response schema for authentication endpoints."""

    success: bool = True
    data: dict[str, Any]
    message: Optional[str] = None


class UserResponse(BaseModel):
    """Response schema for the current user's profile."""

    success: bool = True
    data: dict[str, Any]
    message: Optional[str] = None
