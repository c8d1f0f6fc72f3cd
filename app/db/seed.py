"""
Development Seed Data
=====================

Wipes the habit tables and loads a demo account::

    python -m app.db.seed

Creates ``testuser@test.com`` / ``Password@123456``, a system ``health``
tag, a daily ``exercise`` habit tagged with it and one completion entry
for each of the last seven days.
"""

import asyncio
import logging
from datetime import timedelta

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import hash_password
from app.db.base import utc_now
from app.db.session import atomic, close_db, get_session_factory
from app.models import Entry, Habit, HabitFrequency, HabitTag, Tag, User

logger = logging.getLogger(__name__)

DEMO_EMAIL = "testuser@test.com"
DEMO_PASSWORD = "Password@123456"
SEED_DAYS = 7


async def seed(session: AsyncSession) -> User:
    """Replace all data with the demo account. Returns the demo user."""
    async with atomic(session):
        # Children first so the wipe does not depend on ON DELETE CASCADE
        for model in (Entry, HabitTag, Habit, Tag, User):
            await session.execute(delete(model))

        user = User(
            email=DEMO_EMAIL,
            username="testuser",
            password_hash=hash_password(DEMO_PASSWORD),
            first_name="test",
            last_name="user",
        )
        tag = Tag(name="health", color="#f0f0f0")
        session.add_all([user, tag])
        await session.flush()

        habit = Habit(
            user_id=user.user_id,
            name="exercise",
            description="do exercise",
            frequency=HabitFrequency.DAILY,
            target_count=1,
        )
        session.add(habit)
        await session.flush()

        session.add(HabitTag(habit_id=habit.habit_id, tag_id=tag.tag_id, position=0))

        today = utc_now().replace(hour=12, minute=0, second=0, microsecond=0)
        session.add_all(
            Entry(
                habit_id=habit.habit_id,
                note="completed workout",
                completion_date=today - timedelta(days=i),
            )
            for i in range(SEED_DAYS)
        )
        await session.flush()

    logger.info("Seeded demo user %s with habit %s", user.user_id, habit.habit_id)
    return user


async def main() -> None:
    session_factory = get_session_factory()
    try:
        async with session_factory() as session:
            await seed(session)
    finally:
        await close_db()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
