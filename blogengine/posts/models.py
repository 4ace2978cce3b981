"""Post entity owning an ordered collection of comments.

The post is the unit of persistence: every change to its comment set stamps
``date_modified`` and is committed through ``save()``, which delegates to the
store the post is bound to.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from blogengine.comments.models import Comment


if TYPE_CHECKING:
    from blogengine.posts.store import PostStore


POST_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts (
    post_id UUID PRIMARY KEY,
    title TEXT,
    slug TEXT,
    author TEXT,
    is_published BOOLEAN,
    is_deleted BOOLEAN,
    date_created TIMESTAMP,
    date_modified TIMESTAMP
)
"""

POSTS_TABLES_CQL = [POST_TABLE_CQL]


class PostNotBoundError(RuntimeError):
    """Post was saved before being registered with a store."""


@dataclass
class Post:
    """Blog post with its comments.

    ``all_comments`` keeps insertion order and includes deleted comments;
    every other view is derived from it.
    """

    id: UUID
    title: str
    author: str
    slug: str = ""
    is_published: bool = True
    is_deleted: bool = False
    date_created: datetime = field(default_factory=lambda: datetime.now(UTC))
    date_modified: datetime = field(default_factory=lambda: datetime.now(UTC))
    all_comments: list[Comment] = field(default_factory=list, repr=False)
    store: "PostStore | None" = field(default=None, repr=False, compare=False)

    # ==========================================================================
    # Derived views
    # ==========================================================================

    @property
    def comments(self) -> list[Comment]:
        """Every comment that is not deleted."""
        return [c for c in self.all_comments if not c.is_deleted]

    @property
    def approved_comments(self) -> list[Comment]:
        return [
            c
            for c in self.comments
            if c.is_approved and not c.is_spam and not c.is_pingback
        ]

    @property
    def not_approved_comments(self) -> list[Comment]:
        """Pending comments: neither approved nor spam."""
        return [
            c
            for c in self.comments
            if not c.is_approved and not c.is_spam and not c.is_pingback
        ]

    @property
    def spam_comments(self) -> list[Comment]:
        return [c for c in self.comments if c.is_spam]

    @property
    def pingbacks(self) -> list[Comment]:
        return [
            c for c in self.comments if c.is_pingback and c.is_approved and not c.is_spam
        ]

    @property
    def relative_link(self) -> str:
        return f"/post/{self.slug or self.id}"

    # ==========================================================================
    # Mutations
    # ==========================================================================

    def touch(self) -> None:
        """Mark the post as modified now."""
        self.date_modified = datetime.now(UTC)

    def add_comment(self, comment: Comment) -> Comment:
        """Attach a comment to this post and return the stored entity."""
        comment.post = self
        self.all_comments.append(comment)
        self.touch()
        return comment

    def remove_comment(self, comment: Comment, persist: bool = True) -> None:
        """Soft-delete a comment of this post.

        Args:
            comment: Comment owned by this post
            persist: Save the post right away; sweeps pass False and save
                once after the loop.
        """
        if comment.post is not self and comment not in self.all_comments:
            msg = f"Comment {comment.id} does not belong to post {self.id}"
            raise ValueError(msg)

        comment.is_deleted = True
        self.touch()
        if persist:
            self.save()

    def save(self) -> None:
        """Durably commit the post and its comments."""
        if self.store is None:
            msg = f"Post {self.id} is not bound to a store"
            raise PostNotBoundError(msg)
        self.store.save(self)

    @classmethod
    def from_row(cls, row: Any) -> "Post":
        """Create Post from Cassandra row (comments are attached separately)."""
        created = row.date_created or datetime.now(UTC)
        if created.tzinfo is None:
            created = created.replace(tzinfo=UTC)
        modified = row.date_modified or created
        if modified.tzinfo is None:
            modified = modified.replace(tzinfo=UTC)
        return cls(
            id=row.post_id,
            title=row.title or "",
            slug=row.slug or "",
            author=row.author or "",
            is_published=bool(row.is_published),
            is_deleted=bool(row.is_deleted),
            date_created=created,
            date_modified=modified,
        )


def create_post(
    title: str,
    author: str,
    slug: str = "",
    is_published: bool = True,
) -> Post:
    """Factory for a new post with a fresh id."""
    return Post(
        id=uuid4(),
        title=title,
        author=author,
        slug=slug,
        is_published=is_published,
    )
