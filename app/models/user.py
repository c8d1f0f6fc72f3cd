"""
User Model
==========

SQLAlchemy model for user accounts.
"""

from typing import TYPE_CHECKING, Optional
import uuid

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, SoftDeleteMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.habit import Habit
    from app.models.tag import Tag


class User(Base, TimestampMixin, SoftDeleteMixin):
    """
    User account model.

    Users are soft-deleted (deleted_at set) and never hard-deleted by the
    application; a hard delete cascades to habits and personal tags at the
    storage layer.
    """

    __tablename__ = "users"

    # Primary Key
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Account fields
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    username: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Profile fields
    first_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    last_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    # Relationships
    habits: Mapped[list["Habit"]] = relationship(
        "Habit",
        back_populates="user",
        lazy="raise",
        passive_deletes=True,
    )
    tags: Mapped[list["Tag"]] = relationship(
        "Tag",
        back_populates="created_by",
        lazy="raise",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User(user_id={self.user_id}, email={self.email})>"

    def to_api_dict(self) -> dict:
        """Serialize to the API response format (password hash omitted)."""
        return {
            "id": str(self.user_id),
            "email": self.email,
            "userName": self.username,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_creator_dict(self) -> dict:
        """Minimal projection used for a tag's ``createdBy`` view."""
        return {
            "id": str(self.user_id),
            "firstName": self.first_name,
            "lastName": self.last_name,
        }
