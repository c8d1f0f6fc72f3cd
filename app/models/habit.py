"""
Habit Models
============

SQLAlchemy models for habits and their completion entries.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, SoftDeleteMixin, TimestampMixin, utc_now

if TYPE_CHECKING:
    from app.models.tag import HabitTag
    from app.models.user import User


# =============================================================================
# Enums
# =============================================================================

class HabitFrequency(str, Enum):
    """How often a habit is meant to be completed."""
    DAILY = "daily"
    MONTHLY = "monthly"
    ANNUALLY = "annually"


# =============================================================================
# Models
# =============================================================================

class Habit(Base, TimestampMixin, SoftDeleteMixin):
    """
    Habit model.

    Owned exclusively by one user. Soft-deleting a habit leaves its
    entries and tag associations in place.
    """

    __tablename__ = "habits"

    # Primary Key
    habit_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Foreign Key
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )

    # Habit details
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    frequency: Mapped[HabitFrequency] = mapped_column(
        SQLEnum(
            HabitFrequency,
            name="habitfrequency",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    target_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    # Relationships
    user: Mapped["User"] = relationship(
        "User",
        back_populates="habits",
        lazy="raise",
    )
    entries: Mapped[list["Entry"]] = relationship(
        "Entry",
        back_populates="habit",
        lazy="raise",
        passive_deletes=True,
    )
    habit_tags: Mapped[list["HabitTag"]] = relationship(
        "HabitTag",
        back_populates="habit",
        lazy="raise",
        passive_deletes=True,
    )

    # Constraints and Indexes
    __table_args__ = (
        CheckConstraint("target_count > 0", name="ck_habit_target_count_positive"),
        Index("idx_habit_user_deleted", "user_id", "deleted_at"),
    )

    def __repr__(self) -> str:
        return f"<Habit(habit_id={self.habit_id}, name={self.name[:30]})>"

    def to_api_dict(self) -> dict:
        """Serialize scalar fields to the camelCase API format."""
        return {
            "id": str(self.habit_id),
            "userId": str(self.user_id),
            "name": self.name,
            "description": self.description,
            "frequency": self.frequency.value,
            "targetCount": self.target_count,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class Entry(Base):
    """
    Completion entry for a habit.

    Immutable once created; a habit may have any number of entries.
    """

    __tablename__ = "entries"

    # Primary Key
    entry_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Foreign Key
    habit_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("habits.habit_id", ondelete="CASCADE"),
        nullable=False,
    )

    completion_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )
    note: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    habit: Mapped["Habit"] = relationship(
        "Habit",
        back_populates="entries",
        lazy="raise",
    )

    __table_args__ = (
        Index("idx_entry_habit_completion", "habit_id", "completion_date"),
    )

    def __repr__(self) -> str:
        return f"<Entry(entry_id={self.entry_id}, habit_id={self.habit_id})>"

    def to_api_dict(self) -> dict:
        return {
            "id": str(self.entry_id),
            "habitId": str(self.habit_id),
            "completionDate": self.completion_date.isoformat() if self.completion_date else None,
            "note": self.note,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
