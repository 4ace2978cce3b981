"""Comment API endpoints.

Provides routes for:
- Listing and looking up comments
- Creating comments
- Moderation (approve, unapprove, full edit)
- Soft deletion, single and bulk purge of pending or spam comments

Rights are enforced by CommentService; PermissionDeniedError is turned into
a 403 by the application's exception handler.
"""

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Query, status

from blogengine.auth.dependencies import CurrentCaller
from blogengine.config import get_settings

from .dependencies import CommentServiceDep, handle_comment_error
from .models import CommentType
from .schemas import (
    CommentItem,
    CreateCommentRequest,
    MessageResponse,
    UpdateCommentRequest,
)
from .service import CommentError


logger = structlog.get_logger(__name__)


router = APIRouter(prefix="/v1/comments", tags=["comments"])


@router.get(
    "",
    response_model=list[CommentItem],
    summary="List comments",
)
def list_comments(
    comment_service: CommentServiceDep,
    caller: CurrentCaller,
    comment_type: Annotated[str, Query(alias="type")] = CommentType.ALL.value,
    take: Annotated[int | None, Query(ge=0)] = None,
    skip: Annotated[int, Query(ge=0)] = 0,
    filter_expr: Annotated[str, Query(alias="filter", max_length=1000)] = "",
    order_expr: Annotated[str, Query(alias="order", max_length=200)] = "",
) -> list[CommentItem]:
    """List comments of the given type.

    ``take=0`` returns every matching comment. Unknown types list all
    comments.
    """
    if take is None:
        take = get_settings().comments_default_page_size

    try:
        return comment_service.list_comments(
            caller,
            comment_type=comment_type,
            take=take,
            skip=skip,
            filter_expr=filter_expr,
            order_expr=order_expr,
        )
    except CommentError as e:
        raise handle_comment_error(e) from e


@router.get(
    "/{comment_id}",
    response_model=CommentItem,
    summary="Get comment",
)
def get_comment(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    caller: CurrentCaller,
) -> CommentItem:
    """Get a single comment, deleted comments included."""
    item = comment_service.find_by_id(caller, comment_id)
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Comment not found",
        )
    return item


@router.post(
    "",
    response_model=CommentItem,
    status_code=status.HTTP_201_CREATED,
    summary="Create comment",
)
def create_comment(
    data: CreateCommentRequest,
    comment_service: CommentServiceDep,
    caller: CurrentCaller,
) -> CommentItem:
    """Create a comment on a post.

    Content is HTML-encoded before storage. Blank author and email are taken
    from the caller's profile and account.
    """
    item = comment_service.add(caller, data)
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Comment could not be created",
        )
    return item


@router.put(
    "/{comment_id}",
    response_model=MessageResponse,
    summary="Update or moderate comment",
)
def update_comment(
    comment_id: UUID,
    data: UpdateCommentRequest,
    comment_service: CommentServiceDep,
    caller: CurrentCaller,
    action: Annotated[str, Query(max_length=20)] = "",
) -> MessageResponse:
    """Approve, unapprove or fully edit a comment.

    The id in the path takes precedence over the id in the body.
    """
    data = data.model_copy(update={"id": comment_id})

    try:
        updated = comment_service.update(caller, data, action)
    except CommentError as e:
        raise handle_comment_error(e) from e

    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Comment not found",
        )
    return MessageResponse(message="Comment updated")


@router.delete(
    "/{comment_id}",
    response_model=MessageResponse,
    summary="Delete comment",
)
def delete_comment(
    comment_id: UUID,
    comment_service: CommentServiceDep,
    caller: CurrentCaller,
) -> MessageResponse:
    """Soft-delete a comment."""
    if not comment_service.remove(caller, comment_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Comment not found",
        )
    return MessageResponse(message="Comment deleted")


@router.delete(
    "/purge/{comment_type}",
    response_model=MessageResponse,
    summary="Delete all pending or spam comments",
)
def purge_comments(
    comment_type: str,
    comment_service: CommentServiceDep,
    caller: CurrentCaller,
) -> MessageResponse:
    """Soft-delete every pending or every spam comment on published posts."""
    try:
        comment_service.delete_all(caller, comment_type)
    except CommentError as e:
        raise handle_comment_error(e) from e

    return MessageResponse(message=f"All {comment_type} comments deleted")
