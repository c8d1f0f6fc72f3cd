"""
Common Dependencies
===================

Shared dependencies used across the application.

The authenticated user is resolved once per request and handed to route
handlers, which pass its id explicitly into every service call.
"""

import logging
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import AuthenticationError, ErrorCodes
from app.core.security import subject_from_token
from app.db.session import get_db
from app.models.user import User
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]

# Security scheme for JWT authentication
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: DBSession,
) -> User:
    """
    Get current authenticated user.

    Raises 401 if the token is missing, invalid, expired, or names a
    deleted account.
    """
    if credentials is None:
        raise AuthenticationError(
            code=ErrorCodes.AUTH_INVALID_TOKEN,
            message="Not authenticated",
        )

    user_id = subject_from_token(credentials.credentials)
    user = await UserService(db).get_user_by_id(user_id) if user_id else None

    if user is None:
        raise AuthenticationError(
            code=ErrorCodes.AUTH_INVALID_TOKEN,
            message="Invalid or expired token",
        )

    # Picked up by the transaction enrichment middleware
    request.state.user_id = user.user_id
    return user


# Type alias for authenticated user dependency
CurrentUser = Annotated[User, Depends(get_current_user)]
