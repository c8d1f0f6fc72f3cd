"""
Database Module
===============

Provides database session management and base model.
"""

from app.db.base import Base
from app.db.session import atomic, close_db, get_db, init_db

__all__ = ["Base", "atomic", "get_db", "init_db", "close_db"]
