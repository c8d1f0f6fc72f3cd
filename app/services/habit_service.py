"""
Habit Service
=============

Business logic for habits, their tag sets and completion entries.

Every mutation runs as one unit of work (``atomic``): a habit's scalar
fields and its tag associations are committed together or not at all.
Reads go through ``_projection`` (habits LEFT JOIN live habit_tags LEFT
JOIN live tags) and the row aggregator, so callers always receive the
authoritative nested view re-queried after commit.
"""

import logging
from typing import Optional, Sequence
import uuid

from sqlalchemy import Select, and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.aggregation import Aggregate, aggregate_children, aggregate_one
from app.core.errors import ErrorCodes, HabitInactiveError, NotFoundError
from app.core.scoping import habit_scope, live, soft_delete, tag_scope
from app.db.base import utc_now
from app.db.session import atomic
from app.models.habit import Entry, Habit
from app.models.tag import HabitTag, Tag
from app.schemas.habit import HabitCreate, HabitUpdate

logger = logging.getLogger(__name__)

HabitView = Aggregate[Habit, Tag]


class HabitService:
    """Service for habit operations. The acting user is always explicit."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # Reads
    # =========================================================================

    @staticmethod
    def _projection() -> Select:
        """Flat (Habit, Tag | None) rows, ordered for stable aggregation."""
        return (
            select(Habit, Tag)
            .outerjoin(
                HabitTag,
                and_(HabitTag.habit_id == Habit.habit_id, live(HabitTag)),
            )
            .outerjoin(
                Tag,
                and_(Tag.tag_id == HabitTag.tag_id, live(Tag)),
            )
            .order_by(
                Habit.created_at,
                Habit.habit_id,
                HabitTag.position,
                HabitTag.created_at,
            )
            .execution_options(populate_existing=True)
        )

    async def list_habits(self, actor_id: uuid.UUID) -> list[HabitView]:
        """All of the actor's live habits, each with its tags."""
        stmt = self._projection().where(habit_scope(actor_id))
        result = await self.db.execute(stmt)
        return aggregate_children(result.all())

    async def get_habit(self, actor_id: uuid.UUID, habit_id: uuid.UUID) -> HabitView:
        """
        One habit with its tags.

        Raises:
            NotFoundError: no live habit with this id belongs to the actor.
        """
        stmt = self._projection().where(
            Habit.habit_id == habit_id,
            habit_scope(actor_id),
        )
        result = await self.db.execute(stmt)
        view = aggregate_one(result.all(), habit_id)
        if view is None:
            raise NotFoundError(code=ErrorCodes.HABIT_NOT_FOUND, message="Habit not found")
        return view

    async def list_habits_by_tag(
        self,
        actor_id: uuid.UUID,
        tag_id: uuid.UUID,
    ) -> list[HabitView]:
        """The actor's habits carrying ``tag_id``, each with its full tag list."""
        await self._require_tags(actor_id, [tag_id])

        tagged = select(HabitTag.habit_id).where(
            HabitTag.tag_id == tag_id,
            live(HabitTag),
        )
        stmt = self._projection().where(
            habit_scope(actor_id),
            Habit.habit_id.in_(tagged),
        )
        result = await self.db.execute(stmt)
        return aggregate_children(result.all())

    async def list_entries(
        self,
        actor_id: uuid.UUID,
        habit_id: uuid.UUID,
    ) -> list[Entry]:
        """Completion entries for one of the actor's habits, newest first."""
        await self._load_habit(actor_id, habit_id)

        stmt = (
            select(Entry)
            .where(Entry.habit_id == habit_id)
            .order_by(Entry.completion_date.desc(), Entry.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create_habit(self, actor_id: uuid.UUID, data: HabitCreate) -> HabitView:
        """
        Insert a habit and its tag associations as one unit.

        Duplicate tag ids are collapsed, keeping first-given order.

        Raises:
            NotFoundError: a tag id is not visible to the actor.
        """
        tag_ids = _distinct(data.tag_ids or [])

        async with atomic(self.db):
            if tag_ids:
                await self._require_tags(actor_id, tag_ids)

            habit = Habit(
                user_id=actor_id,
                name=data.name,
                description=data.description,
                frequency=data.frequency,
                target_count=data.target_count,
                is_active=True if data.is_active is None else data.is_active,
            )
            self.db.add(habit)
            await self.db.flush()

            if tag_ids:
                self._link_tags(habit.habit_id, tag_ids)
                await self.db.flush()

        logger.info(
            "Habit %s created by user %s with %d tag(s)",
            habit.habit_id,
            actor_id,
            len(tag_ids),
        )
        return await self.get_habit(actor_id, habit.habit_id)

    async def update_habit(
        self,
        actor_id: uuid.UUID,
        habit_id: uuid.UUID,
        data: HabitUpdate,
    ) -> HabitView:
        """
        Apply a partial update and, when supplied, replace the tag set.

        Order within the unit is fixed: scalar update first, then tag-set
        replacement. If the habit is missing, not owned or deleted the whole
        unit is rolled back and the tag set is left untouched. Omitting
        ``tagIds`` keeps the current tags; ``[]`` removes them all.

        Raises:
            NotFoundError: habit or a supplied tag is not visible to the actor.
        """
        changes = data.scalar_changes()

        async with atomic(self.db):
            if changes:
                stmt = (
                    update(Habit)
                    .where(Habit.habit_id == habit_id, habit_scope(actor_id))
                    .values(**changes)
                    .returning(Habit.habit_id)
                    .execution_options(synchronize_session=False)
                )
                result = await self.db.execute(stmt)
                if result.scalar_one_or_none() is None:
                    raise NotFoundError(
                        code=ErrorCodes.HABIT_NOT_FOUND,
                        message="Habit not found",
                    )
            else:
                await self._load_habit(actor_id, habit_id, for_update=True)

            if data.tag_ids_supplied:
                tag_ids = _distinct(data.tag_ids or [])
                if tag_ids:
                    await self._require_tags(actor_id, tag_ids)
                await self._replace_tags(habit_id, tag_ids)

        logger.info(
            "Habit %s updated by user %s (fields=%s, tags_replaced=%s)",
            habit_id,
            actor_id,
            sorted(changes),
            data.tag_ids_supplied,
        )
        return await self.get_habit(actor_id, habit_id)

    async def delete_habit(self, actor_id: uuid.UUID, habit_id: uuid.UUID) -> None:
        """
        Soft-delete a habit. Entries and tag associations are kept.

        Raises:
            NotFoundError: habit missing or owned by someone else.
            AlreadyDeletedError: habit was already deleted.
        """
        async with atomic(self.db):
            stmt = (
                select(Habit)
                .where(Habit.habit_id == habit_id, Habit.user_id == actor_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            result = await self.db.execute(stmt)
            habit = result.scalar_one_or_none()

            if habit is None:
                raise NotFoundError(code=ErrorCodes.HABIT_NOT_FOUND, message="Habit not found")

            soft_delete(
                habit,
                code=ErrorCodes.HABIT_ALREADY_DELETED,
                message="Habit has already been deleted",
            )
            await self.db.flush()

        logger.info("Habit %s deleted by user %s", habit_id, actor_id)

    async def complete_habit(
        self,
        actor_id: uuid.UUID,
        habit_id: uuid.UUID,
        note: Optional[str] = None,
    ) -> Entry:
        """
        Record one completion entry for an active habit.

        Raises:
            NotFoundError: habit missing, not owned or deleted.
            HabitInactiveError: habit exists but is_active is false.
        """
        async with atomic(self.db):
            habit = await self._load_habit(actor_id, habit_id, for_update=True)

            if not habit.is_active:
                raise HabitInactiveError()

            entry = Entry(habit_id=habit.habit_id, note=note)
            self.db.add(entry)
            await self.db.flush()

        logger.info("Entry %s recorded for habit %s", entry.entry_id, habit_id)
        return entry

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _load_habit(
        self,
        actor_id: uuid.UUID,
        habit_id: uuid.UUID,
        for_update: bool = False,
    ) -> Habit:
        stmt = (
            select(Habit)
            .where(Habit.habit_id == habit_id, habit_scope(actor_id))
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()

        result = await self.db.execute(stmt)
        habit = result.scalar_one_or_none()
        if habit is None:
            raise NotFoundError(code=ErrorCodes.HABIT_NOT_FOUND, message="Habit not found")
        return habit

    async def _require_tags(
        self,
        actor_id: uuid.UUID,
        tag_ids: Sequence[uuid.UUID],
    ) -> None:
        """Every id must name a live tag that is the actor's own or a system tag."""
        stmt = select(Tag.tag_id).where(Tag.tag_id.in_(tag_ids), tag_scope(actor_id))
        result = await self.db.execute(stmt)
        found = set(result.scalars().all())

        missing = [str(tag_id) for tag_id in tag_ids if tag_id not in found]
        if missing:
            raise NotFoundError(
                code=ErrorCodes.TAG_NOT_FOUND,
                message="Tag not found",
                tag_ids=missing,
            )

    def _link_tags(self, habit_id: uuid.UUID, tag_ids: Sequence[uuid.UUID]) -> None:
        self.db.add_all(
            HabitTag(habit_id=habit_id, tag_id=tag_id, position=position)
            for position, tag_id in enumerate(tag_ids)
        )

    async def _replace_tags(
        self,
        habit_id: uuid.UUID,
        tag_ids: Sequence[uuid.UUID],
    ) -> None:
        """Full overwrite: retire every live association, then link the new list."""
        await self.db.execute(
            update(HabitTag)
            .where(HabitTag.habit_id == habit_id, live(HabitTag))
            .values(deleted_at=utc_now())
            .execution_options(synchronize_session=False)
        )

        if tag_ids:
            self._link_tags(habit_id, tag_ids)
            await self.db.flush()


def _distinct(ids: Sequence[uuid.UUID]) -> list[uuid.UUID]:
    """Drop repeated ids, keeping the first occurrence of each."""
    return list(dict.fromkeys(ids))
