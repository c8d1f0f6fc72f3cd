"""
Habits API Endpoints
====================

Handles habit CRUD, tag-set updates, completion and entry listing.

Endpoints:
    GET    /habits                      — List the user's habits with tags
    POST   /habits                      — Create a habit (optionally tagged)
    GET    /habits/tag/{tag_id}         — Habits carrying a tag
    GET    /habits/{habit_id}           — One habit with tags
    PATCH  /habits/{habit_id}           — Partial update / tag-set replace
    DELETE /habits/{habit_id}           — Soft-delete
    POST   /habits/{habit_id}/complete  — Record a completion entry
    GET    /habits/{habit_id}/entries   — Completion history
"""

from typing import Optional
import uuid

from fastapi import APIRouter, status

from app.dependencies import CurrentUser, DBSession
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.habit import (
    EntryResponse,
    HabitComplete,
    HabitCreate,
    HabitListResponse,
    HabitResponse,
    HabitUpdate,
)
from app.services.habit_service import HabitService, HabitView

router = APIRouter()


def habit_to_response(view: HabitView) -> dict:
    """Nested habit view: scalar fields plus its tags."""
    return {
        **view.parent.to_api_dict(),
        "tags": [tag.to_api_dict() for tag in view.children],
    }


@router.get(
    "",
    response_model=HabitListResponse,
)
async def list_habits(
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Get all of the user's habits with their tags.
    """
    views = await HabitService(db).list_habits(current_user.user_id)

    return HabitListResponse(
        success=True,
        data=[habit_to_response(v) for v in views],
        message="User habits found",
    )


@router.post(
    "",
    response_model=HabitResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse, "description": "Tag not found"}},
)
async def create_habit(
    habit_data: HabitCreate,
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Create a new habit, optionally attaching tags in the same transaction.
    """
    view = await HabitService(db).create_habit(current_user.user_id, habit_data)

    return HabitResponse(
        success=True,
        data=habit_to_response(view),
        message="New habit added successfully",
    )


@router.get(
    "/tag/{tag_id}",
    response_model=HabitListResponse,
    responses={404: {"model": ErrorResponse, "description": "Tag not found"}},
)
async def list_habits_by_tag(
    tag_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Get the user's habits carrying a tag.
    """
    views = await HabitService(db).list_habits_by_tag(current_user.user_id, tag_id)

    return HabitListResponse(
        success=True,
        data=[habit_to_response(v) for v in views],
        message="Habits found by tag",
    )


@router.get(
    "/{habit_id}",
    response_model=HabitResponse,
    responses={404: {"model": ErrorResponse, "description": "Habit not found"}},
)
async def get_habit(
    habit_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Get a specific habit by ID.
    """
    view = await HabitService(db).get_habit(current_user.user_id, habit_id)

    return HabitResponse(
        success=True,
        data=habit_to_response(view),
        message="Habit details found",
    )


@router.patch(
    "/{habit_id}",
    response_model=HabitResponse,
    responses={404: {"model": ErrorResponse, "description": "Habit or tag not found"}},
)
async def update_habit(
    habit_id: uuid.UUID,
    habit_data: HabitUpdate,
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Update a habit.

    Only supplied fields change. Supplying ``tagIds`` replaces the whole
    tag set (``[]`` clears it); omitting it keeps the current tags.
    """
    view = await HabitService(db).update_habit(current_user.user_id, habit_id, habit_data)

    return HabitResponse(
        success=True,
        data=habit_to_response(view),
        message="Habit updated successfully",
    )


@router.delete(
    "/{habit_id}",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Habit already deleted"},
        404: {"model": ErrorResponse, "description": "Habit not found"},
    },
)
async def delete_habit(
    habit_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Soft-delete a habit.
    """
    await HabitService(db).delete_habit(current_user.user_id, habit_id)

    return MessageResponse(success=True, message="Habit deleted successfully")


@router.post(
    "/{habit_id}/complete",
    response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Habit inactive"},
        404: {"model": ErrorResponse, "description": "Habit not found"},
    },
)
async def complete_habit(
    habit_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
    completion: Optional[HabitComplete] = None,
):
    """
    Record a completion entry for an active habit.
    """
    entry = await HabitService(db).complete_habit(
        current_user.user_id,
        habit_id,
        note=completion.note if completion else None,
    )

    return EntryResponse(success=True, data=entry.to_api_dict())


@router.get(
    "/{habit_id}/entries",
    responses={404: {"model": ErrorResponse, "description": "Habit not found"}},
)
async def list_entries(
    habit_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Get the completion history of a habit, newest first.
    """
    entries = await HabitService(db).list_entries(current_user.user_id, habit_id)

    return {
        "success": True,
        "data": [e.to_api_dict() for e in entries],
    }
