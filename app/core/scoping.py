"""
Scoping & Soft Delete
=====================

Stateless filters and guards applied before every habit/tag read or write.

- Habits are visible only to their owner and only while not deleted.
- Tags are visible to their creator, system tags (no creator) to everyone,
  and only while not deleted.
- Deletion sets ``deleted_at``; it is never cleared.
"""

from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import ColumnElement, and_, or_

from app.core.errors import AlreadyDeletedError, ErrorCodes, ForbiddenError, NotFoundError
from app.db.base import SoftDeleteMixin, utc_now
from app.models.habit import Habit
from app.models.tag import Tag


def live(model) -> ColumnElement[bool]:
    """``deleted_at IS NULL`` for any soft-deletable model or alias."""
    return model.deleted_at.is_(None)


def habit_scope(actor_id: uuid.UUID) -> ColumnElement[bool]:
    """Habits the actor may read or write."""
    return and_(Habit.user_id == actor_id, live(Habit))


def tag_scope(actor_id: uuid.UUID) -> ColumnElement[bool]:
    """Tags the actor may read: their own plus system tags."""
    return and_(
        or_(Tag.created_by_id == actor_id, Tag.created_by_id.is_(None)),
        live(Tag),
    )


def soft_delete(
    row: SoftDeleteMixin,
    code: str = ErrorCodes.HABIT_ALREADY_DELETED,
    message: str = "Resource has already been deleted",
    now: Optional[datetime] = None,
) -> datetime:
    """
    Mark ``row`` deleted.

    Raises:
        AlreadyDeletedError: if the row was already deleted.
    """
    if row.deleted_at is not None:
        raise AlreadyDeletedError(code=code, message=message)

    row.deleted_at = now or utc_now()
    return row.deleted_at


def ensure_tag_mutable(tag: Tag, actor_id: uuid.UUID, action: str = "modified") -> None:
    """
    Guard for tag update/delete.

    System tags reject every actor with ForbiddenError. A personal tag
    belonging to someone else is reported as not found so its existence
    does not leak across tenants.
    """
    if tag.is_system:
        raise ForbiddenError(
            code=ErrorCodes.TAG_SYSTEM_IMMUTABLE,
            message=f"System tags cannot be {action} by users",
        )
    if tag.created_by_id != actor_id:
        raise NotFoundError(code=ErrorCodes.TAG_NOT_FOUND, message="Tag not found")
