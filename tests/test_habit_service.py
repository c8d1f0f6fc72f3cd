"""
Habit Service Tests
===================

Tests for habit CRUD, tag-set replacement and completion including:
- Tag order and de-duplication on create
- Omitted vs empty tagIds on update
- All-or-nothing updates (scalar fields and tags commit together)
- Soft delete and the already-deleted distinction
- Completion of inactive habits
- Tenant isolation
"""

import uuid
from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from app.core.errors import (
    AlreadyDeletedError,
    ErrorCodes,
    HabitInactiveError,
    NotFoundError,
)
from app.models import Entry, HabitTag
from app.schemas.habit import HabitCreate, HabitUpdate
from app.services.habit_service import HabitService
from app.services.tag_service import TagService
from tests.factories import make_habit, make_tag, make_user


def _create(name: str = "exercise", **fields) -> HabitCreate:
    return HabitCreate.model_validate(
        {"name": name, "frequency": "daily", "targetCount": 1, **fields}
    )


def _update(**fields) -> HabitUpdate:
    return HabitUpdate.model_validate(fields)


def _tag_ids(view) -> list[uuid.UUID]:
    return [tag.tag_id for tag in view.children]


async def _entry_count(session, habit_id) -> int:
    result = await session.execute(
        select(func.count()).select_from(Entry).where(Entry.habit_id == habit_id)
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# End-to-end scenario
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_tag_clear_and_repeated_completion_scenario(db_session):
    """Create tagged habit, clear its tags, complete it twice."""
    user = await make_user(db_session)
    service = HabitService(db_session)
    tag = await make_tag(db_session, owner=user, name="health")

    created = await service.create_habit(
        user.user_id, _create(tagIds=[str(tag.tag_id)])
    )
    habit_id = created.parent.habit_id

    view = await service.get_habit(user.user_id, habit_id)
    assert _tag_ids(view) == [tag.tag_id]

    await service.update_habit(user.user_id, habit_id, _update(tagIds=[]))
    view = await service.get_habit(user.user_id, habit_id)
    assert view.children == []

    first = await service.complete_habit(user.user_id, habit_id)
    assert first.habit_id == habit_id
    assert await _entry_count(db_session, habit_id) == 1

    second = await service.complete_habit(user.user_id, habit_id, note="again")
    assert second.entry_id != first.entry_id
    assert await _entry_count(db_session, habit_id) == 2


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

class TestCreateHabit:
    """Tests for HabitService.create_habit"""

    @pytest.mark.asyncio
    async def test_tags_keep_given_order_without_duplicates(self, db_session):
        user = await make_user(db_session)
        a = await make_tag(db_session, owner=user, name="alpha")
        b = await make_tag(db_session, owner=user, name="beta")

        view = await HabitService(db_session).create_habit(
            user.user_id, _create(tagIds=[str(b.tag_id), str(b.tag_id), str(a.tag_id)])
        )

        assert _tag_ids(view) == [b.tag_id, a.tag_id]

    @pytest.mark.asyncio
    async def test_without_tags_returns_empty_list(self, db_session):
        user = await make_user(db_session)

        view = await HabitService(db_session).create_habit(user.user_id, _create())

        assert view.children == []
        assert view.parent.is_active is True
        assert view.parent.user_id == user.user_id

    @pytest.mark.asyncio
    async def test_system_tag_can_be_attached(self, db_session):
        user = await make_user(db_session)
        system = await make_tag(db_session, owner=None, name="health")

        view = await HabitService(db_session).create_habit(
            user.user_id, _create(tagIds=[str(system.tag_id)])
        )

        assert _tag_ids(view) == [system.tag_id]

    @pytest.mark.asyncio
    async def test_unknown_tag_rolls_back_the_habit(self, db_session):
        user_id = (await make_user(db_session)).user_id
        service = HabitService(db_session)

        with pytest.raises(NotFoundError) as exc_info:
            await service.create_habit(user_id, _create(tagIds=[str(uuid.uuid4())]))

        assert exc_info.value.code == ErrorCodes.TAG_NOT_FOUND
        assert await service.list_habits(user_id) == []

    @pytest.mark.asyncio
    async def test_another_users_tag_is_not_visible(self, db_session):
        owner = await make_user(db_session)
        intruder = await make_user(db_session)
        tag = await make_tag(db_session, owner=owner)

        with pytest.raises(NotFoundError):
            await HabitService(db_session).create_habit(
                intruder.user_id, _create(tagIds=[str(tag.tag_id)])
            )


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

class TestUpdateHabit:
    """Tests for HabitService.update_habit"""

    @pytest.mark.asyncio
    async def test_omitted_tag_ids_keep_tags(self, db_session):
        user = await make_user(db_session)
        tag = await make_tag(db_session, owner=user)
        habit = await make_habit(db_session, user, tags=(tag,))

        view = await HabitService(db_session).update_habit(
            user.user_id, habit.habit_id, _update(name="renamed")
        )

        assert view.parent.name == "renamed"
        assert _tag_ids(view) == [tag.tag_id]

    @pytest.mark.asyncio
    async def test_tag_ids_replace_whole_set_in_order(self, db_session):
        user = await make_user(db_session)
        a = await make_tag(db_session, owner=user, name="alpha")
        b = await make_tag(db_session, owner=user, name="beta")
        c = await make_tag(db_session, owner=user, name="gamma")
        habit = await make_habit(db_session, user, tags=(a, b))

        view = await HabitService(db_session).update_habit(
            user.user_id,
            habit.habit_id,
            _update(tagIds=[str(c.tag_id), str(a.tag_id)]),
        )

        assert _tag_ids(view) == [c.tag_id, a.tag_id]

    @pytest.mark.asyncio
    async def test_relinking_same_tag_keeps_history(self, db_session):
        user = await make_user(db_session)
        tag = await make_tag(db_session, owner=user)
        habit = await make_habit(db_session, user, tags=(tag,))
        service = HabitService(db_session)

        await service.update_habit(user.user_id, habit.habit_id, _update(tagIds=[str(tag.tag_id)]))
        view = await service.update_habit(
            user.user_id, habit.habit_id, _update(tagIds=[str(tag.tag_id)])
        )

        assert _tag_ids(view) == [tag.tag_id]
        result = await db_session.execute(
            select(func.count()).select_from(HabitTag).where(HabitTag.habit_id == habit.habit_id)
        )
        # One live row plus two retired ones
        assert result.scalar_one() == 3

    @pytest.mark.asyncio
    async def test_scalar_fields_only_change_when_supplied(self, db_session):
        user = await make_user(db_session)
        habit = await make_habit(db_session, user, name="read")

        view = await HabitService(db_session).update_habit(
            user.user_id, habit.habit_id, _update(targetCount=3, isActive=False)
        )

        assert view.parent.name == "read"
        assert view.parent.target_count == 3
        assert view.parent.is_active is False

    @pytest.mark.asyncio
    async def test_missing_tag_rolls_back_scalar_changes(self, db_session):
        user = await make_user(db_session)
        tag = await make_tag(db_session, owner=user)
        habit = await make_habit(db_session, user, name="read", tags=(tag,))
        # Rollback expires loaded instances; keep plain ids
        user_id, habit_id, tag_id = user.user_id, habit.habit_id, tag.tag_id
        service = HabitService(db_session)

        with pytest.raises(NotFoundError) as exc_info:
            await service.update_habit(
                user_id,
                habit_id,
                _update(name="renamed", tagIds=[str(uuid.uuid4())]),
            )

        assert exc_info.value.code == ErrorCodes.TAG_NOT_FOUND
        view = await service.get_habit(user_id, habit_id)
        assert view.parent.name == "read"
        assert _tag_ids(view) == [tag_id]

    @pytest.mark.asyncio
    async def test_foreign_habit_is_not_found_and_untouched(self, db_session):
        owner = await make_user(db_session)
        intruder = await make_user(db_session)
        tag = await make_tag(db_session, owner=owner)
        habit = await make_habit(db_session, owner, name="read", tags=(tag,))
        owner_id, intruder_id = owner.user_id, intruder.user_id
        habit_id, tag_id = habit.habit_id, tag.tag_id
        service = HabitService(db_session)

        with pytest.raises(NotFoundError) as exc_info:
            await service.update_habit(
                intruder_id, habit_id, _update(name="hijacked", tagIds=[])
            )
        assert exc_info.value.code == ErrorCodes.HABIT_NOT_FOUND

        # Tag-only updates verify ownership too
        with pytest.raises(NotFoundError):
            await service.update_habit(intruder_id, habit_id, _update(tagIds=[]))

        view = await service.get_habit(owner_id, habit_id)
        assert view.parent.name == "read"
        assert _tag_ids(view) == [tag_id]

    @pytest.mark.asyncio
    async def test_deleted_habit_cannot_be_updated(self, db_session):
        user = await make_user(db_session)
        habit = await make_habit(db_session, user)
        service = HabitService(db_session)
        await service.delete_habit(user.user_id, habit.habit_id)

        with pytest.raises(NotFoundError):
            await service.update_habit(user.user_id, habit.habit_id, _update(name="x"))


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestReads:
    """Tests for list/get/by-tag reads"""

    @pytest.mark.asyncio
    async def test_list_returns_only_own_live_habits(self, db_session):
        user = await make_user(db_session)
        other = await make_user(db_session)
        kept = await make_habit(db_session, user, name="kept")
        gone = await make_habit(db_session, user, name="gone")
        await make_habit(db_session, other, name="theirs")
        service = HabitService(db_session)
        await service.delete_habit(user.user_id, gone.habit_id)

        views = await service.list_habits(user.user_id)

        assert [v.parent.habit_id for v in views] == [kept.habit_id]

    @pytest.mark.asyncio
    async def test_list_with_no_habits_is_empty(self, db_session):
        user = await make_user(db_session)

        assert await HabitService(db_session).list_habits(user.user_id) == []

    @pytest.mark.asyncio
    async def test_get_foreign_habit_is_not_found(self, db_session):
        owner = await make_user(db_session)
        intruder = await make_user(db_session)
        habit = await make_habit(db_session, owner)

        with pytest.raises(NotFoundError):
            await HabitService(db_session).get_habit(intruder.user_id, habit.habit_id)

    @pytest.mark.asyncio
    async def test_deleted_tag_drops_out_of_habit(self, db_session):
        user = await make_user(db_session)
        a = await make_tag(db_session, owner=user, name="alpha")
        b = await make_tag(db_session, owner=user, name="beta")
        habit = await make_habit(db_session, user, tags=(a, b))
        await TagService(db_session).delete_tag(user.user_id, a.tag_id)

        view = await HabitService(db_session).get_habit(user.user_id, habit.habit_id)

        assert _tag_ids(view) == [b.tag_id]

    @pytest.mark.asyncio
    async def test_by_tag_returns_full_tag_lists(self, db_session):
        user = await make_user(db_session)
        a = await make_tag(db_session, owner=user, name="alpha")
        b = await make_tag(db_session, owner=user, name="beta")
        tagged = await make_habit(db_session, user, name="tagged", tags=(a, b))
        await make_habit(db_session, user, name="untagged")

        views = await HabitService(db_session).list_habits_by_tag(user.user_id, b.tag_id)

        assert [v.parent.habit_id for v in views] == [tagged.habit_id]
        assert _tag_ids(views[0]) == [a.tag_id, b.tag_id]

    @pytest.mark.asyncio
    async def test_by_unknown_tag_is_not_found(self, db_session):
        user = await make_user(db_session)

        with pytest.raises(NotFoundError) as exc_info:
            await HabitService(db_session).list_habits_by_tag(user.user_id, uuid.uuid4())

        assert exc_info.value.code == ErrorCodes.TAG_NOT_FOUND


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

class TestDeleteHabit:
    """Tests for HabitService.delete_habit"""

    @pytest.mark.asyncio
    async def test_second_delete_reports_already_deleted(self, db_session):
        user = await make_user(db_session)
        habit = await make_habit(db_session, user)
        service = HabitService(db_session)

        await service.delete_habit(user.user_id, habit.habit_id)

        with pytest.raises(AlreadyDeletedError) as exc_info:
            await service.delete_habit(user.user_id, habit.habit_id)

        assert exc_info.value.kind == "already_deleted"
        assert exc_info.value.code == ErrorCodes.HABIT_ALREADY_DELETED

    @pytest.mark.asyncio
    async def test_delete_keeps_entries_and_associations(self, db_session):
        user = await make_user(db_session)
        tag = await make_tag(db_session, owner=user)
        habit = await make_habit(db_session, user, tags=(tag,))
        service = HabitService(db_session)
        await service.complete_habit(user.user_id, habit.habit_id)

        await service.delete_habit(user.user_id, habit.habit_id)

        assert await _entry_count(db_session, habit.habit_id) == 1
        result = await db_session.execute(
            select(HabitTag).where(HabitTag.habit_id == habit.habit_id)
        )
        assert result.scalar_one().deleted_at is None

    @pytest.mark.asyncio
    async def test_foreign_or_unknown_habit_is_not_found(self, db_session):
        owner = await make_user(db_session)
        intruder = await make_user(db_session)
        habit = await make_habit(db_session, owner)
        owner_id = owner.user_id
        service = HabitService(db_session)

        with pytest.raises(NotFoundError):
            await service.delete_habit(intruder.user_id, habit.habit_id)
        with pytest.raises(NotFoundError):
            await service.delete_habit(owner_id, uuid.uuid4())


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

class TestCompleteHabit:
    """Tests for HabitService.complete_habit and list_entries"""

    @pytest.mark.asyncio
    async def test_inactive_habit_creates_no_entry(self, db_session):
        user = await make_user(db_session)
        habit = await make_habit(db_session, user, is_active=False)
        habit_id = habit.habit_id

        with pytest.raises(HabitInactiveError) as exc_info:
            await HabitService(db_session).complete_habit(user.user_id, habit_id)

        assert exc_info.value.kind == "inactive"
        assert exc_info.value.status_code == 400
        assert await _entry_count(db_session, habit_id) == 0

    @pytest.mark.asyncio
    async def test_deleted_habit_is_not_found(self, db_session):
        user = await make_user(db_session)
        habit = await make_habit(db_session, user)
        service = HabitService(db_session)
        await service.delete_habit(user.user_id, habit.habit_id)

        with pytest.raises(NotFoundError):
            await service.complete_habit(user.user_id, habit.habit_id)

    @pytest.mark.asyncio
    async def test_note_is_stored(self, db_session):
        user = await make_user(db_session)
        habit = await make_habit(db_session, user)

        entry = await HabitService(db_session).complete_habit(
            user.user_id, habit.habit_id, note="30 minutes"
        )

        assert entry.note == "30 minutes"
        assert entry.completion_date is not None

    @pytest.mark.asyncio
    async def test_entries_are_listed_for_owner_only(self, db_session):
        owner = await make_user(db_session)
        intruder = await make_user(db_session)
        habit = await make_habit(db_session, owner)
        service = HabitService(db_session)
        await service.complete_habit(owner.user_id, habit.habit_id, note="one")
        await service.complete_habit(owner.user_id, habit.habit_id, note="two")

        entries = await service.list_entries(owner.user_id, habit.habit_id)

        assert {e.note for e in entries} == {"one", "two"}
        with pytest.raises(NotFoundError):
            await service.list_entries(intruder.user_id, habit.habit_id)

    @pytest.mark.asyncio
    async def test_completion_locks_the_habit_row(self, db_session):
        user = await make_user(db_session)
        habit = await make_habit(db_session, user)
        service = HabitService(db_session)

        with patch.object(service, "_load_habit", wraps=service._load_habit) as load:
            await service.complete_habit(user.user_id, habit.habit_id)

        load.assert_awaited_once_with(user.user_id, habit.habit_id, for_update=True)
