"""
Users API Endpoints
===================

Account management for the authenticated user.
"""

from fastapi import APIRouter

from app.dependencies import CurrentUser, DBSession
from app.schemas.auth import UserResponse, UserUpdate
from app.schemas.common import ErrorResponse, MessageResponse
from app.services.user_service import UserService

router = APIRouter()


@router.get(
    "/me",
    response_model=UserResponse,
)
async def get_me(current_user: CurrentUser):
    """
    Get the authenticated user's profile.
    """
    return UserResponse(
        success=True,
        data=current_user.to_api_dict(),
        message="User details found",
    )


@router.patch(
    "/me",
    response_model=UserResponse,
)
async def update_me(
    profile_data: UserUpdate,
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Update first and/or last name. Empty names are ignored.
    """
    user = await UserService(db).update_profile(current_user, profile_data)

    return UserResponse(
        success=True,
        data=user.to_api_dict(),
        message="User updated successfully",
    )


@router.delete(
    "/me",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "Account already deleted"}},
)
async def delete_me(
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Soft-delete the account. Existing tokens stop working.
    """
    await UserService(db).deactivate(current_user)

    return MessageResponse(success=True, message="User deleted successfully")
