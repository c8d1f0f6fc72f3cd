"""
User Service Tests
==================

Registration, authentication and account deactivation.
"""

import pytest
from sqlalchemy import func, select

from app.core.errors import AlreadyDeletedError, ConflictError
from app.db.seed import DEMO_EMAIL, DEMO_PASSWORD, SEED_DAYS, seed
from app.models import Entry
from app.schemas.auth import UserRegister, UserUpdate
from app.services.habit_service import HabitService
from app.services.user_service import UserService
from tests.factories import make_user


def _registration(**overrides) -> UserRegister:
    return UserRegister.model_validate(
        {
            "email": "jane@example.com",
            "password": "Password@123",
            "userName": "janedoe01",
            "firstName": "Jane",
            **overrides,
        }
    )


class TestRegisterAndAuthenticate:
    """Tests for UserService.register / authenticate"""

    @pytest.mark.asyncio
    async def test_password_is_hashed_and_verifiable(self, db_session):
        service = UserService(db_session)

        user = await service.register(_registration())

        assert user.password_hash != "Password@123"
        assert user.last_name == ""
        assert await service.authenticate("jane@example.com", "Password@123") is not None
        assert await service.authenticate("jane@example.com", "Password@124") is None
        assert await service.authenticate("nobody@example.com", "Password@123") is None

    @pytest.mark.asyncio
    async def test_duplicate_username_conflicts(self, db_session):
        service = UserService(db_session)
        await service.register(_registration())

        with pytest.raises(ConflictError):
            await service.register(_registration(email="other@example.com"))


class TestDeactivate:
    """Tests for UserService.deactivate / update_profile"""

    @pytest.mark.asyncio
    async def test_deactivated_user_cannot_sign_in(self, db_session):
        user = await make_user(db_session, email="gone@example.com", password="Password@123")
        service = UserService(db_session)

        await service.deactivate(user)

        assert await service.get_user_by_id(user.user_id) is None
        assert await service.authenticate("gone@example.com", "Password@123") is None
        with pytest.raises(AlreadyDeletedError):
            await service.deactivate(user)

    @pytest.mark.asyncio
    async def test_blank_names_are_ignored(self, db_session):
        user = await make_user(db_session)

        updated = await UserService(db_session).update_profile(
            user, UserUpdate(firstName="  Ada ", lastName="   ")
        )

        assert updated.first_name == "Ada"
        assert updated.last_name == "User"


@pytest.mark.asyncio
async def test_seed_creates_demo_account(db_session):
    await make_user(db_session)

    user = await seed(db_session)

    assert user.email == DEMO_EMAIL
    assert await UserService(db_session).authenticate(DEMO_EMAIL, DEMO_PASSWORD) is not None

    views = await HabitService(db_session).list_habits(user.user_id)
    assert [v.parent.name for v in views] == ["exercise"]
    assert [t.name for t in views[0].children] == ["health"]
    assert views[0].children[0].is_system

    result = await db_session.execute(select(func.count()).select_from(Entry))
    assert result.scalar_one() == SEED_DAYS
