"""Pydantic schemas for the comment API.

Request models validate input; ``CommentItem`` is the projection returned to
callers and never exposes the post back-reference or store handles.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


MAX_CONTENT_LENGTH = 10000

# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateCommentRequest(BaseModel):
    """Request to create a comment on a post.

    Blank author and email are filled from the caller's profile and account.
    """

    post_id: UUID
    parent_id: UUID | None = None
    author: str | None = Field(None, max_length=200)
    email: str | None = Field(None, max_length=320)
    website: str | None = Field(None, max_length=2000)
    content: str = Field(..., min_length=1, max_length=MAX_CONTENT_LENGTH)
    is_approved: bool = False

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        """Strip whitespace and validate content."""
        v = v.strip()
        if not v:
            msg = "Content cannot be empty"
            raise ValueError(msg)
        return v


class UpdateCommentRequest(BaseModel):
    """Full update of a comment, or the target of a moderation action.

    The three ``is_*`` hints drive the moderation state; when several are set
    they apply in the order pending, approved, spam.
    """

    id: UUID
    content: str = Field("", max_length=MAX_CONTENT_LENGTH)
    author: str = Field("", max_length=200)
    email: str = Field("", max_length=320)
    website: str | None = Field(None, max_length=2000)
    is_pending: bool = False
    is_approved: bool = False
    is_spam: bool = False


# ==============================================================================
# Response Schemas
# ==============================================================================


class CommentItem(BaseModel):
    """Client-facing projection of a comment."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    parent_id: UUID | None = None
    post_id: UUID | None = None
    post_title: str | None = None
    relative_link: str | None = None
    author: str
    email: str
    website: str | None = None
    content: str
    ip: str | None = None
    date_created: datetime
    is_approved: bool = False
    is_spam: bool = False
    is_pending: bool = False
    is_deleted: bool = False
    is_pingback: bool = False
    has_children: bool = False

    @classmethod
    def from_comment(
        cls, comment: Any, siblings: Iterable[Any] = ()
    ) -> "CommentItem":
        """Create projection from a Comment entity.

        Args:
            comment: Comment entity
            siblings: Comments listed alongside; used to flag replies
        """
        post = comment.post
        return cls(
            id=comment.id,
            parent_id=comment.parent_id,
            post_id=post.id if post is not None else None,
            post_title=post.title if post is not None else None,
            relative_link=(
                f"{post.relative_link}#id_{comment.id}" if post is not None else None
            ),
            author=comment.author,
            email=comment.email,
            website=comment.website,
            content=comment.content,
            ip=comment.ip,
            date_created=comment.date_created,
            is_approved=comment.is_approved,
            is_spam=comment.is_spam,
            is_pending=comment.is_pending,
            is_deleted=comment.is_deleted,
            is_pingback=comment.is_pingback,
            has_children=any(s.parent_id == comment.id for s in siblings),
        )


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str
    success: bool = True

