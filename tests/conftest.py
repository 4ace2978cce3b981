"""Shared fixtures for the test suite."""

import os


# Settings are cached on first use; pin them before the app is imported.
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_REQUESTS", "false")

from collections.abc import Callable  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from blogengine.accounts import Account, AuthorProfile, InMemoryAccountDirectory  # noqa: E402
from blogengine.auth.permissions import SecurityGate, UserRole  # noqa: E402
from blogengine.auth.schemas import Caller  # noqa: E402
from blogengine.auth.security import create_access_token  # noqa: E402
from blogengine.comments.models import Comment  # noqa: E402
from blogengine.comments.service import CommentService  # noqa: E402
from blogengine.posts.models import Post, create_post  # noqa: E402
from blogengine.posts.store import InMemoryPostStore  # noqa: E402


T0 = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def make_comment(
    author: str,
    minutes: int,
    email: str | None = None,
    is_approved: bool = False,
    is_spam: bool = False,
    is_deleted: bool = False,
    parent: Comment | None = None,
) -> Comment:
    """Comment created ``minutes`` after T0."""
    return Comment(
        id=uuid4(),
        author=author,
        email=email if email is not None else f"{author.lower()}@example.com",
        content=f"Comment by {author}",
        date_created=T0 + timedelta(minutes=minutes),
        parent_id=parent.id if parent else None,
        is_approved=is_approved,
        is_spam=is_spam,
        is_deleted=is_deleted,
    )


def _with_comments(post: Post, *comments: Comment) -> Post:
    post.all_comments.extend(comments)
    return post


@pytest.fixture
def blog() -> SimpleNamespace:
    """Three posts with comments in every moderation state.

    * ``hello`` by alice (published): approved, pending, spam, pingback,
      deleted and a reply to the approved comment
    * ``second`` by bob (published): one pending, one spam
    * ``draft`` by carol (unpublished): one pending, one spam
    """
    approved = make_comment("Bob", 1, is_approved=True)
    pending = make_comment("Carol", 2)
    spam = make_comment("Spammer", 3, is_spam=True)
    pingback = make_comment("Other Blog", 4, email="pingback", is_approved=True)
    deleted = make_comment("Dave", 5, is_approved=True, is_deleted=True)
    reply = make_comment("Erin", 6, is_approved=True, parent=approved)

    second_pending = make_comment("Frank", 7)
    second_spam = make_comment("Spam Two", 8, is_spam=True)

    draft_pending = make_comment("Gina", 9)
    draft_spam = make_comment("Spam Three", 10, is_spam=True)

    hello = _with_comments(
        create_post("Hello", "alice", slug="hello"),
        approved,
        pending,
        spam,
        pingback,
        deleted,
        reply,
    )
    second = _with_comments(
        create_post("Second", "bob", slug="second"), second_pending, second_spam
    )
    draft = _with_comments(
        create_post("Draft", "carol", slug="draft", is_published=False),
        draft_pending,
        draft_spam,
    )

    store = InMemoryPostStore([hello, second, draft])

    return SimpleNamespace(
        store=store,
        hello=hello,
        second=second,
        draft=draft,
        approved=approved,
        pending=pending,
        spam=spam,
        pingback=pingback,
        deleted=deleted,
        reply=reply,
        second_pending=second_pending,
        second_spam=second_spam,
        draft_pending=draft_pending,
        draft_spam=draft_spam,
    )


@pytest.fixture
def accounts() -> InMemoryAccountDirectory:
    """Accounts for alice (with a display name) and the editor (without)."""
    return InMemoryAccountDirectory(
        accounts=[
            Account(user_name="alice", email="alice@example.com", role="author"),
            Account(user_name="editor", email="editor@example.com", role="editor"),
        ],
        profiles=[AuthorProfile(user_name="alice", display_name="Alice Author")],
    )


@pytest.fixture
def comment_service(blog: SimpleNamespace, accounts: InMemoryAccountDirectory) -> CommentService:
    return CommentService(store=blog.store, accounts=accounts, gate=SecurityGate())


# ==============================================================================
# Callers
# ==============================================================================


@pytest.fixture
def anonymous() -> Caller:
    return Caller.anonymous(ip_address="203.0.113.7")


@pytest.fixture
def alice() -> Caller:
    return Caller(
        name="alice",
        email="alice@example.com",
        role=UserRole.AUTHOR.value,
        is_authenticated=True,
        ip_address="198.51.100.1",
    )


@pytest.fixture
def editor() -> Caller:
    return Caller(
        name="editor",
        email="editor@example.com",
        role=UserRole.EDITOR.value,
        is_authenticated=True,
    )


@pytest.fixture
def admin() -> Caller:
    return Caller(name="root", role=UserRole.ADMIN.value, is_authenticated=True)


@pytest.fixture
def nobody() -> Caller:
    """Authenticated caller whose role grants no rights."""
    return Caller(name="mallory", role="suspended", is_authenticated=True)


# ==============================================================================
# HTTP
# ==============================================================================


@pytest.fixture
def app(comment_service: CommentService) -> FastAPI:
    from blogengine.main import create_app  # noqa: PLC0415

    app = create_app()
    app.state.comment_service = comment_service
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Build an Authorization header for a user name and role."""

    def _headers(name: str, role: str) -> dict[str, str]:
        token = create_access_token(
            {"sub": name, "email": f"{name}@example.com", "role": role}
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
