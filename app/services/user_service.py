"""
User Service
============

Business logic for registration, authentication and account management.
"""

import logging
from typing import Optional
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, ErrorCodes, is_unique_violation
from app.core.scoping import live, soft_delete
from app.core.security import hash_password, verify_password
from app.db.session import atomic
from app.models.user import User
from app.schemas.auth import UserRegister, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    """Service for user account operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a non-deleted user by email address."""
        stmt = select(User).where(User.email == email, live(User))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get a non-deleted user by ID."""
        stmt = select(User).where(User.user_id == user_id, live(User))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def register(self, user_data: UserRegister) -> User:
        """
        Create a new user account.

        Raises:
            ConflictError: email or username already taken.
        """
        user = User(
            email=str(user_data.email),
            username=user_data.username,
            password_hash=hash_password(user_data.password),
            first_name=user_data.first_name,
            last_name=user_data.last_name or "",
        )

        try:
            async with atomic(self.db):
                self.db.add(user)
                await self.db.flush()
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise ConflictError(
                    code=ErrorCodes.AUTH_ACCOUNT_EXISTS,
                    message="Account with this email or username already exists",
                ) from exc
            raise

        logger.info("User %s registered", user.user_id)
        return user

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate user by email and password.

        Returns:
            User if authentication successful, None otherwise
        """
        user = await self.get_user_by_email(email)

        if user is None:
            return None

        if not verify_password(password, user.password_hash):
            return None

        return user

    async def update_profile(self, user: User, data: UserUpdate) -> User:
        """Update first/last name; only supplied, non-empty names are written."""
        async with atomic(self.db):
            if data.first_name is not None and data.first_name.strip():
                user.first_name = data.first_name.strip()
            if data.last_name is not None and data.last_name.strip():
                user.last_name = data.last_name.strip()
            await self.db.flush()

        return user

    async def deactivate(self, user: User) -> None:
        """
        Soft-delete the account. Tokens issued for it stop resolving.

        Raises:
            AlreadyDeletedError: account was already deleted.
        """
        async with atomic(self.db):
            soft_delete(
                user,
                code=ErrorCodes.USER_ALREADY_DELETED,
                message="Account has already been deleted",
            )
            await self.db.flush()

        logger.info("User %s deactivated", user.user_id)
