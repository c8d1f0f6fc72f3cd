"""
Database Models
===============

SQLAlchemy ORM models for all database entities.

All models are imported here to ensure they are registered
with SQLAlchemy's metadata for migrations and relationships.
"""

from app.models.user import User
from app.models.habit import Entry, Habit, HabitFrequency
from app.models.tag import HabitTag, Tag

__all__ = [
    # User
    "User",
    # Habit
    "Habit",
    "HabitFrequency",
    "Entry",
    # Tag
    "Tag",
    "HabitTag",
]
