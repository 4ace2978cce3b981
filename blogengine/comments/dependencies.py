"""FastAPI dependencies for the comment API.

Provides dependency injection for:
- Comment service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import CommentError, CommentService


def get_comment_service(request: Request) -> CommentService:
    """Get comment service from app state."""
    service = getattr(request.app.state, "comment_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Comment service not available",
        )
    return service


# Type aliases for dependency injection
CommentServiceDep = Annotated[CommentService, Depends(get_comment_service)]


def handle_comment_error(error: CommentError) -> HTTPException:
    """Convert comment errors to HTTP exceptions."""
    status_map = {
        "invalid_comment_type": status.HTTP_400_BAD_REQUEST,
        "invalid_expression": status.HTTP_400_BAD_REQUEST,
        "invalid_paging": status.HTTP_400_BAD_REQUEST,
        "invalid_website": status.HTTP_400_BAD_REQUEST,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
