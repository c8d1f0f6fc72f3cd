"""
Tags API Endpoints
==================

Personal tags are owned by the user who created them. System tags have no
owner, are visible to everyone and cannot be changed through the API.
"""

import uuid

from fastapi import APIRouter, status

from app.dependencies import CurrentUser, DBSession
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.tag import TagCreate, TagListResponse, TagResponse, TagUpdate
from app.services.tag_service import TagService, TagView

router = APIRouter()


def tag_to_response(view: TagView) -> dict:
    tag, creator = view
    return {
        **tag.to_api_dict(),
        "createdBy": creator.to_creator_dict() if creator is not None else None,
    }


@router.get(
    "",
    response_model=TagListResponse,
)
async def list_tags(
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Get the user's own tags plus all system tags.
    """
    views = await TagService(db).list_tags(current_user.user_id)

    return TagListResponse(
        success=True,
        data=[tag_to_response(v) for v in views],
        message="Tags found",
    )


@router.post(
    "",
    response_model=TagResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_tag(
    tag_data: TagCreate,
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Create a personal tag.
    """
    view = await TagService(db).create_tag(current_user.user_id, tag_data)

    return TagResponse(
        success=True,
        data=tag_to_response(view),
        message="New tag created successfully",
    )


@router.get(
    "/{tag_id}",
    response_model=TagResponse,
    responses={404: {"model": ErrorResponse, "description": "Tag not found"}},
)
async def get_tag(
    tag_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
):
    view = await TagService(db).get_tag(current_user.user_id, tag_id)

    return TagResponse(
        success=True,
        data=tag_to_response(view),
        message="Tag details found",
    )


@router.patch(
    "/{tag_id}",
    response_model=TagResponse,
    responses={
        403: {"model": ErrorResponse, "description": "System tag"},
        404: {"model": ErrorResponse, "description": "Tag not found"},
    },
)
async def update_tag(
    tag_id: uuid.UUID,
    tag_data: TagUpdate,
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Update the name and/or color of a personal tag.
    """
    view = await TagService(db).update_tag(current_user.user_id, tag_id, tag_data)

    return TagResponse(
        success=True,
        data=tag_to_response(view),
        message="Tag updated successfully",
    )


@router.delete(
    "/{tag_id}",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Tag already deleted"},
        403: {"model": ErrorResponse, "description": "System tag"},
        404: {"model": ErrorResponse, "description": "Tag not found"},
    },
)
async def delete_tag(
    tag_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Soft-delete a personal tag. Habits keep their association rows but the
    tag no longer appears in their tag lists.
    """
    await TagService(db).delete_tag(current_user.user_id, tag_id)

    return MessageResponse(success=True, message="Tag deleted successfully")
