"""Posts and the stores that hold them."""

from .models import POSTS_TABLES_CQL, Post, PostNotBoundError, create_post
from .store import CassandraPostStore, InMemoryPostStore, PostStore


__all__ = [
    "POSTS_TABLES_CQL",
    "CassandraPostStore",
    "InMemoryPostStore",
    "Post",
    "PostNotBoundError",
    "PostStore",
    "create_post",
]
