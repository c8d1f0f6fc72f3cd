"""
Authentication API Endpoints
============================

Handles user registration and login.
"""

import logging

from fastapi import APIRouter, status

from app.core.errors import AuthenticationError, ErrorCodes
from app.core.security import create_token_for_user
from app.dependencies import DBSession
from app.schemas.auth import AuthResponse, UserLogin, UserRegister
from app.schemas.common import ErrorResponse
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Email or username already registered"},
    },
)
async def register(
    user_data: UserRegister,
    db: DBSession,
):
    """
    Register a new user account and return an access token.
    """
    user = await UserService(db).register(user_data)

    tokens = create_token_for_user(user_id=user.user_id, email=user.email)

    return AuthResponse(
        success=True,
        data={
            "user": user.to_api_dict(),
            "tokens": tokens,
        },
        message="Account created successfully",
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
    },
)
async def login(
    credentials: UserLogin,
    db: DBSession,
):
    """
    Authenticate user and return an access token.
    """
    user = await UserService(db).authenticate(
        email=str(credentials.email),
        password=credentials.password,
    )

    if user is None:
        logger.info("Failed login attempt")
        raise AuthenticationError(
            code=ErrorCodes.AUTH_INVALID_CREDENTIALS,
            message="Invalid email or password",
        )

    tokens = create_token_for_user(user_id=user.user_id, email=user.email)

    return AuthResponse(
        success=True,
        data={
            "user": user.to_api_dict(),
            "tokens": tokens,
        },
        message="Login successful",
    )
