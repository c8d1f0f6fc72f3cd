"""
Tag Service
===========

Business logic for personal and system tags.

Reads return ``(Tag, User | None)`` pairs: the tag with its creator, or
``None`` as creator for system tags.
"""

import logging
import uuid

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.aggregation import attach_single
from app.core.errors import ErrorCodes, NotFoundError
from app.core.scoping import ensure_tag_mutable, soft_delete, tag_scope
from app.db.session import atomic
from app.models.tag import Tag
from app.models.user import User
from app.schemas.tag import TagCreate, TagUpdate

logger = logging.getLogger(__name__)

TagView = tuple[Tag, User | None]


class TagService:
    """Service for tag operations. The acting user is always explicit."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _projection() -> Select:
        return (
            select(Tag, User)
            .outerjoin(User, Tag.created_by_id == User.user_id)
            .order_by(Tag.created_at, Tag.tag_id)
            .execution_options(populate_existing=True)
        )

    async def list_tags(self, actor_id: uuid.UUID) -> list[TagView]:
        """The actor's own tags plus every system tag."""
        result = await self.db.execute(self._projection().where(tag_scope(actor_id)))
        return attach_single(result.all())

    async def get_tag(self, actor_id: uuid.UUID, tag_id: uuid.UUID) -> TagView:
        """
        One visible tag with its creator.

        Raises:
            NotFoundError: missing, deleted, or another user's personal tag.
        """
        stmt = self._projection().where(Tag.tag_id == tag_id, tag_scope(actor_id))
        result = await self.db.execute(stmt)
        views = attach_single(result.all())
        if not views:
            raise NotFoundError(code=ErrorCodes.TAG_NOT_FOUND, message="Tag not found")
        return views[0]

    async def create_tag(self, actor_id: uuid.UUID, data: TagCreate) -> TagView:
        """Create a personal tag owned by the actor."""
        async with atomic(self.db):
            tag = Tag(name=data.name, color=data.color, created_by_id=actor_id)
            self.db.add(tag)
            await self.db.flush()

        logger.info("Tag %s created by user %s", tag.tag_id, actor_id)
        return await self.get_tag(actor_id, tag.tag_id)

    async def update_tag(
        self,
        actor_id: uuid.UUID,
        tag_id: uuid.UUID,
        data: TagUpdate,
    ) -> TagView:
        """
        Partially update one of the actor's tags.

        Raises:
            NotFoundError: tag missing, deleted or owned by someone else.
            ForbiddenError: tag is a system tag.
        """
        async with atomic(self.db):
            tag = await self._lock_tag(tag_id)
            ensure_tag_mutable(tag, actor_id, action="updated")
            if tag.is_deleted:
                raise NotFoundError(code=ErrorCodes.TAG_NOT_FOUND, message="Tag not found")

            if data.name is not None:
                tag.name = data.name
            if data.color is not None:
                tag.color = data.color
            await self.db.flush()

        logger.info("Tag %s updated by user %s", tag_id, actor_id)
        return await self.get_tag(actor_id, tag_id)

    async def delete_tag(self, actor_id: uuid.UUID, tag_id: uuid.UUID) -> None:
        """
        Soft-delete one of the actor's tags.

        Raises:
            NotFoundError: tag missing or owned by someone else.
            ForbiddenError: tag is a system tag.
            AlreadyDeletedError: tag was already deleted.
        """
        async with atomic(self.db):
            tag = await self._lock_tag(tag_id)
            ensure_tag_mutable(tag, actor_id, action="deleted")
            soft_delete(
                tag,
                code=ErrorCodes.TAG_ALREADY_DELETED,
                message="Tag has already been deleted",
            )
            await self.db.flush()

        logger.info("Tag %s deleted by user %s", tag_id, actor_id)

    async def _lock_tag(self, tag_id: uuid.UUID) -> Tag:
        stmt = (
            select(Tag)
            .where(Tag.tag_id == tag_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        tag = result.scalar_one_or_none()
        if tag is None:
            raise NotFoundError(code=ErrorCodes.TAG_NOT_FOUND, message="Tag not found")
        return tag
