"""Post/comment stores.

The comment service never touches a process-wide collection; it receives a
store handle. Both implementations keep the posts in memory for reads. The
Cassandra store loads everything on startup and writes through on ``save``.
"""

from abc import ABC, abstractmethod
from collections import Counter
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from cassandra.query import BatchStatement, BatchType

from blogengine.comments.models import Comment
from blogengine.posts.models import Post


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from blogengine.auth.schemas import Caller


logger = structlog.get_logger(__name__)


class PostStore(ABC):
    """Query and persistence surface used by the comment service."""

    @abstractmethod
    def posts(self) -> list[Post]:
        """Every post, in store order."""

    @abstractmethod
    def add_post(self, post: Post) -> Post:
        """Register a post and bind it to this store."""

    @abstractmethod
    def save(self, post: Post) -> None:
        """Durably commit a post and its comments."""

    def get(self, post_id: UUID) -> Post | None:
        return next((p for p in self.posts() if p.id == post_id), None)

    def applicable_posts(
        self, caller: "Caller", include_unpublished: bool = False
    ) -> list[Post]:
        """Posts the caller is allowed to see.

        Args:
            caller: Current caller
            include_unpublished: The caller may see unpublished and deleted
                posts of every author.

        Returns:
            All posts when ``include_unpublished``, otherwise published live
            posts plus the caller's own posts.
        """
        posts = self.posts()
        if include_unpublished:
            return posts

        name = caller.name.lower()
        return [
            p
            for p in posts
            if (p.is_published and not p.is_deleted)
            or (name and p.author.lower() == name)
        ]


class InMemoryPostStore(PostStore):
    """Process-local store, used in development and tests.

    ``save_counts`` records how many times each post was committed.
    """

    def __init__(self, posts: list[Post] | None = None):
        self._posts: list[Post] = []
        self.save_counts: Counter[UUID] = Counter()
        for post in posts or []:
            self.add_post(post)

    def posts(self) -> list[Post]:
        return list(self._posts)

    def add_post(self, post: Post) -> Post:
        post.store = self
        for comment in post.all_comments:
            comment.post = post
        self._posts.append(post)
        return post

    def save(self, post: Post) -> None:
        self.save_counts[post.id] += 1
        logger.debug("post_saved", post_id=str(post.id), backend="memory")


class CassandraPostStore(PostStore):
    """Store backed by the ``posts`` and ``post_comments`` tables."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._posts: list[Post] = []
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._select_posts = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.posts
        """)

        self._select_comments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.post_comments
            WHERE post_id = ?
        """)

        self._upsert_post = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.posts
            (post_id, title, slug, author, is_published, is_deleted,
             date_created, date_modified)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._upsert_comment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.post_comments
            (post_id, date_created, comment_id, parent_id, author, email,
             website, content, ip, is_approved, is_spam, is_deleted)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

    def load(self) -> int:
        """Load every post with its comments into memory.

        Returns:
            Number of posts loaded
        """
        posts: list[Post] = []
        for row in self.session.execute(self._select_posts):
            post = Post.from_row(row)
            post.store = self
            for comment_row in self.session.execute(self._select_comments, [post.id]):
                post.all_comments.append(Comment.from_row(comment_row, post))
            posts.append(post)

        posts.sort(key=lambda p: p.date_created, reverse=True)
        self._posts = posts
        logger.info("posts_loaded", count=len(posts), backend="cassandra")
        return len(posts)

    def posts(self) -> list[Post]:
        return list(self._posts)

    def add_post(self, post: Post) -> Post:
        post.store = self
        for comment in post.all_comments:
            comment.post = post
        self._posts.append(post)
        self.save(post)
        return post

    def save(self, post: Post) -> None:
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(
            self._upsert_post,
            [
                post.id,
                post.title,
                post.slug,
                post.author,
                post.is_published,
                post.is_deleted,
                post.date_created,
                post.date_modified,
            ],
        )
        for comment in post.all_comments:
            batch.add(
                self._upsert_comment,
                [
                    post.id,
                    comment.date_created,
                    comment.id,
                    comment.parent_id,
                    comment.author,
                    comment.email,
                    comment.website,
                    comment.content,
                    comment.ip,
                    comment.is_approved,
                    comment.is_spam,
                    comment.is_deleted,
                ],
            )

        self.session.execute(batch)
        logger.debug(
            "post_saved",
            post_id=str(post.id),
            comments=len(post.all_comments),
            backend="cassandra",
        )
