"""
Tag Models
==========

SQLAlchemy models for tags and the habit <-> tag association table.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional
import uuid

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, SoftDeleteMixin, TimestampMixin, utc_now

if TYPE_CHECKING:
    from app.models.habit import Habit
    from app.models.user import User


class Tag(Base, TimestampMixin, SoftDeleteMixin):
    """
    Tag model.

    A tag with ``created_by_id`` set is personal to that user. A tag with
    no creator is a system tag: visible to everyone, mutable by no one.
    """

    __tablename__ = "tags"

    # Primary Key
    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Foreign Key (NULL = system tag)
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=True,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    color: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="",
    )

    # Relationships
    created_by: Mapped[Optional["User"]] = relationship(
        "User",
        back_populates="tags",
        lazy="raise",
    )
    habit_tags: Mapped[list["HabitTag"]] = relationship(
        "HabitTag",
        back_populates="tag",
        lazy="raise",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_tag_creator_deleted", "created_by_id", "deleted_at"),
    )

    def __repr__(self) -> str:
        return f"<Tag(tag_id={self.tag_id}, name={self.name})>"

    @property
    def is_system(self) -> bool:
        return self.created_by_id is None

    def to_api_dict(self) -> dict:
        return {
            "id": str(self.tag_id),
            "name": self.name,
            "color": self.color,
            "createdById": str(self.created_by_id) if self.created_by_id else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class HabitTag(Base, SoftDeleteMixin):
    """
    Association row linking a habit to a tag.

    At most one live (deleted_at IS NULL) row may exist per (habit, tag).
    ``position`` records the order in which tags were supplied.
    """

    __tablename__ = "habit_tags"

    # Primary Key
    habit_tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Foreign Keys
    habit_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("habits.habit_id", ondelete="CASCADE"),
        nullable=False,
    )
    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tags.tag_id", ondelete="CASCADE"),
        nullable=False,
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
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
        back_populates="habit_tags",
        lazy="raise",
    )
    tag: Mapped["Tag"] = relationship(
        "Tag",
        back_populates="habit_tags",
        lazy="raise",
    )

    __table_args__ = (
        Index(
            "uq_habit_tag_live",
            "habit_id",
            "tag_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("idx_habit_tag_tag", "tag_id"),
    )

    def __repr__(self) -> str:
        return f"<HabitTag(habit_id={self.habit_id}, tag_id={self.tag_id})>"
