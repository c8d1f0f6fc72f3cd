"""
Tag Schemas
===========

Pydantic schemas for tag endpoints.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

HEX_COLOR_PATTERN = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"


class TagCreate(BaseModel):
    """Request schema for creating a personal tag."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=3, max_length=255)
    color: str = Field(
        pattern=HEX_COLOR_PATTERN,
        description="3 or 6 digit hex code, e.g. #FFF or #FFFFFF",
    )


class TagUpdate(BaseModel):
    """Request schema for a partial tag update."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=3, max_length=255)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)

    @model_validator(mode="after")
    def require_one_field(self) -> "TagUpdate":
        if self.name is None and self.color is None:
            raise ValueError("Either name or color must be provided to update the tag")
        return self


class TagResponse(BaseModel):
    """Response wrapper for a single tag."""

    success: bool = True
    data: dict[str, Any]
    message: Optional[str] = None


class TagListResponse(BaseModel):
    """Response wrapper for a list of tags."""

    success: bool = True
    data: list[dict[str, Any]]
    message: Optional[str] = None
