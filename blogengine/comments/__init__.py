"""Comment repository.

Provides:
- Comment entity and moderation state
- Filter and order expressions for listings
- CommentService with rights-checked queries and mutations

Note: Router is not exported here to avoid circular imports.
Import directly from blogengine.comments.router when needed.
"""

from .models import (
    COMMENTS_TABLES_CQL,
    Comment,
    CommentType,
    ModerationAction,
    ModerationState,
)
from .service import CommentError, CommentService


__all__ = [
    "COMMENTS_TABLES_CQL",
    "Comment",
    "CommentError",
    "CommentService",
    "CommentType",
    "ModerationAction",
    "ModerationState",
]
