"""Comment entity and moderation state.

A comment carries three independent flags:

- ``is_approved`` / ``is_spam``: the moderation category (pending when both
  are false); transitions always clear the opposite flag
- ``is_deleted``: soft delete, orthogonal to the category

Comments are owned by a Post (see ``blogengine.posts.models``) and keep a
non-owning back-reference to it for navigation.
"""

import html
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4


if TYPE_CHECKING:
    from blogengine.posts.models import Post


# Email markers used by the pingback/trackback receivers
PINGBACK_EMAILS = frozenset({"pingback", "trackback"})


class CommentType(str, Enum):
    """Comment subsets selectable in listings."""

    ALL = "all"
    PENDING = "pending"
    SPAM = "spam"
    PINGBACK = "pingback"
    APPROVED = "approved"


class ModerationAction(str, Enum):
    """Update actions with a dedicated moderation shortcut."""

    APPROVE = "approve"
    UNAPPROVE = "unapprove"


class ModerationState(str, Enum):
    """Derived moderation state of a single comment."""

    PENDING = "pending"
    APPROVED = "approved"
    SPAM = "spam"
    DELETED = "deleted"


# Comments stored per post, clustered in insertion order
POST_COMMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.post_comments (
    post_id UUID,
    date_created TIMESTAMP,
    comment_id UUID,
    parent_id UUID,
    author TEXT,
    email TEXT,
    website TEXT,
    content TEXT,
    ip TEXT,
    is_approved BOOLEAN,
    is_spam BOOLEAN,
    is_deleted BOOLEAN,
    PRIMARY KEY ((post_id), date_created, comment_id)
) WITH CLUSTERING ORDER BY (date_created ASC, comment_id ASC)
"""

COMMENTS_TABLES_CQL = [POST_COMMENTS_TABLE_CQL]


def encode_content(content: str) -> str:
    """HTML-attribute-encode comment text so it renders inert in markup."""
    return html.escape(content, quote=True)


def resolve_moderation_flags(
    is_approved: bool,
    is_spam: bool,
    *,
    pending: bool = False,
    approved: bool = False,
    spam: bool = False,
) -> tuple[bool, bool]:
    """Apply moderation hints to the current (is_approved, is_spam) pair.

    Hints are applied in the fixed order pending, approved, spam; when a
    caller sets several of them the last one applied wins. With no hint set
    the current flags are returned unchanged.
    """
    if pending:
        is_approved, is_spam = False, False
    if approved:
        is_approved, is_spam = True, False
    if spam:
        is_approved, is_spam = False, True
    return is_approved, is_spam


@dataclass
class Comment:
    """Comment entity."""

    id: UUID
    author: str
    email: str
    content: str
    date_created: datetime
    parent_id: UUID | None = None
    website: str | None = None
    ip: str | None = None
    is_approved: bool = False
    is_spam: bool = False
    is_deleted: bool = False
    post: "Post | None" = field(default=None, repr=False, compare=False)

    @property
    def is_pingback(self) -> bool:
        """Automated notification from another site linking to the post."""
        return (self.email or "").strip().lower() in PINGBACK_EMAILS

    @property
    def is_pending(self) -> bool:
        return not self.is_approved and not self.is_spam and not self.is_deleted

    @property
    def state(self) -> ModerationState:
        if self.is_deleted:
            return ModerationState.DELETED
        if self.is_spam:
            return ModerationState.SPAM
        if self.is_approved:
            return ModerationState.APPROVED
        return ModerationState.PENDING

    @property
    def post_id(self) -> UUID | None:
        return self.post.id if self.post is not None else None

    def approve(self) -> None:
        self.is_approved, self.is_spam = True, False

    def mark_spam(self) -> None:
        self.is_approved, self.is_spam = False, True

    @classmethod
    def from_row(cls, row: Any, post: "Post | None" = None) -> "Comment":
        """Create Comment from Cassandra row."""
        return cls(
            id=row.comment_id,
            parent_id=row.parent_id,
            author=row.author or "",
            email=row.email or "",
            website=row.website,
            content=row.content or "",
            ip=row.ip,
            date_created=_as_utc(row.date_created),
            is_approved=bool(row.is_approved),
            is_spam=bool(row.is_spam),
            is_deleted=bool(row.is_deleted),
            post=post,
        )


def create_comment(
    author: str,
    email: str,
    content: str,
    parent_id: UUID | None = None,
    website: str | None = None,
    ip: str | None = None,
    is_approved: bool = False,
) -> Comment:
    """Factory for a new comment with a fresh id and creation time.

    Content is stored as given; callers encode it first when it comes from
    untrusted input.
    """
    return Comment(
        id=uuid4(),
        parent_id=parent_id,
        author=author,
        email=email,
        website=website,
        content=content,
        ip=ip,
        date_created=datetime.now(UTC),
        is_approved=is_approved,
    )


def _as_utc(value: datetime) -> datetime:
    # Cassandra returns naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
