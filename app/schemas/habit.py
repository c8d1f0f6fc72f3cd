"""
Habit Schemas
=============

Pydantic schemas for habit and completion endpoints.

Update requests distinguish an omitted field from a supplied one through
``model_fields_set``: omitting ``tagIds`` leaves a habit's tags alone,
while ``"tagIds": []`` clears them.
"""

from typing import Any, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.habit import HabitFrequency

# Largest value a PostgreSQL INTEGER column holds
MAX_TARGET_COUNT = 2_147_483_647


# =============================================================================
# Request Schemas
# =============================================================================

class HabitCreate(BaseModel):
    """Request schema for creating a habit."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    frequency: HabitFrequency
    target_count: int = Field(alias="targetCount", gt=0, le=MAX_TARGET_COUNT, strict=True)
    is_active: Optional[bool] = Field(None, alias="isActive")
    tag_ids: Optional[list[uuid.UUID]] = Field(None, alias="tagIds")


class HabitUpdate(BaseModel):
    """
    Request schema for a partial habit update.

    Only fields present in the request body are applied.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    frequency: Optional[HabitFrequency] = None
    target_count: Optional[int] = Field(
        None, alias="targetCount", gt=0, le=MAX_TARGET_COUNT, strict=True
    )
    is_active: Optional[bool] = Field(None, alias="isActive")
    tag_ids: Optional[list[uuid.UUID]] = Field(None, alias="tagIds")

    @field_validator("name", "frequency", "target_count", "is_active", "tag_ids", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        """Explicit null is not a value for these fields; omit them instead."""
        if v is None:
            raise ValueError("must not be null")
        return v

    @model_validator(mode="after")
    def require_one_field(self) -> "HabitUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update.")
        return self

    @property
    def tag_ids_supplied(self) -> bool:
        """True when the request carried ``tagIds`` (even an empty list)."""
        return "tag_ids" in self.model_fields_set

    def scalar_changes(self) -> dict[str, Any]:
        """Column -> value for every supplied scalar field."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name != "tag_ids"
        }


class HabitComplete(BaseModel):
    """Request schema for recording a completion."""

    model_config = ConfigDict(str_strip_whitespace=True)

    note: Optional[str] = Field(None, min_length=1)


# =============================================================================
# Response Schemas
# =============================================================================

class HabitResponse(BaseModel):
    """Response wrapper for a single habit with its tags."""

    success: bool = True
    data: dict[str, Any]
    message: Optional[str] = None


class HabitListResponse(BaseModel):
    """Response wrapper for a list of habits with their tags."""

    success: bool = True
    data: list[dict[str, Any]]
    message: Optional[str] = None


class EntryResponse(BaseModel):
    """Response wrapper for a completion entry."""

    success: bool = True
    data: dict[str, Any]
    message: str = "New entry added for habit"
