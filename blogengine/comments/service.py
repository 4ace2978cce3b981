"""Comment repository service.

Business logic for:
- Listing comments with type selection, filtering, ordering and paging
- Creating comments on behalf of the caller
- Moderation transitions (approve / unapprove / full update)
- Soft deletion, single and in bulk

Every operation checks the caller's rights through the SecurityGate before
touching the store. Persistence happens through ``Post.save()`` after each
mutation; there is no rollback if the save fails after the in-memory change.
"""

from typing import TYPE_CHECKING
from urllib.parse import urlparse
from uuid import UUID

import structlog

from blogengine.accounts.service import AccountDirectory
from blogengine.auth.permissions import PermissionDeniedError, Right, SecurityGate
from blogengine.auth.schemas import Caller

from .expressions import (
    InvalidExpressionError,
    apply_order,
    compile_filter,
    parse_order,
)
from .models import (
    Comment,
    CommentType,
    ModerationAction,
    create_comment,
    encode_content,
    resolve_moderation_flags,
)
from .schemas import CommentItem, CreateCommentRequest, UpdateCommentRequest


if TYPE_CHECKING:
    from blogengine.posts.models import Post
    from blogengine.posts.store import PostStore


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CommentError(Exception):
    """Base comment error."""

    def __init__(self, message: str, code: str = "comment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidCommentTypeError(CommentError):
    """Comment type not accepted by the operation."""

    def __init__(self, comment_type: str):
        super().__init__(
            f"Unsupported comment type: {comment_type!r}", "invalid_comment_type"
        )


class InvalidFilterError(CommentError):
    """Filter or order expression is malformed."""

    def __init__(self, message: str):
        super().__init__(message, "invalid_expression")


class InvalidWebsiteError(CommentError):
    """Website is not an absolute URL."""

    def __init__(self, website: str):
        super().__init__(f"Invalid website URL: {website!r}", "invalid_website")


class InvalidPagingError(CommentError):
    """Negative take or skip."""

    def __init__(self, take: int, skip: int):
        super().__init__(
            f"take and skip must not be negative (take={take}, skip={skip})",
            "invalid_paging",
        )


# Comment types accepted by delete_all
SWEEPABLE_TYPES = (CommentType.PENDING, CommentType.SPAM)


def parse_website(website: str | None) -> str | None:
    """Validate a website as an absolute URL; blank clears it.

    Raises:
        InvalidWebsiteError: If the value is not an absolute http(s) URL
    """
    if website is None or not website.strip():
        return None

    website = website.strip()
    parsed = urlparse(website)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidWebsiteError(website)
    return website


# ==============================================================================
# Comment Service
# ==============================================================================


class CommentService:
    """Comment repository over an injected post store."""

    DEFAULT_FILTER = "1==1"
    DEFAULT_ORDER = "DateCreated desc"

    def __init__(
        self,
        store: "PostStore",
        accounts: AccountDirectory,
        gate: SecurityGate | None = None,
    ):
        self.store = store
        self.accounts = accounts
        self.gate = gate or SecurityGate()

    # ==========================================================================
    # Queries
    # ==========================================================================

    def list_comments(
        self,
        caller: Caller,
        comment_type: CommentType | str = CommentType.ALL,
        take: int = 10,
        skip: int = 0,
        filter_expr: str = "",
        order_expr: str = "",
    ) -> list[CommentItem]:
        """List comments visible to the caller.

        Args:
            caller: Current caller
            comment_type: Subset to select; unknown values select all
            take: Page size, 0 returns every matching comment
            skip: Number of matching comments to skip
            filter_expr: Filter expression, defaults to ``1==1``
            order_expr: Order expression, defaults to ``DateCreated desc``

        Raises:
            PermissionDeniedError: Caller cannot view public comments
            InvalidFilterError: Filter or order cannot be parsed
            InvalidPagingError: Negative take or skip
        """
        self.gate.require(caller, Right.VIEW_PUBLIC_COMMENTS)
        if take < 0 or skip < 0:
            raise InvalidPagingError(take, skip)

        try:
            predicate = compile_filter(filter_expr or self.DEFAULT_FILTER)
            order_keys = parse_order(order_expr or self.DEFAULT_ORDER)
        except InvalidExpressionError as e:
            raise InvalidFilterError(str(e)) from e

        selected = self._select(caller, self._comment_type(comment_type))

        try:
            matching = apply_order(filter(predicate, selected), order_keys)
        except InvalidExpressionError as e:
            raise InvalidFilterError(str(e)) from e

        page = matching[skip:] if take == 0 else matching[skip : skip + take]

        return [CommentItem.from_comment(c, page) for c in page]

    def find_by_id(self, caller: Caller, comment_id: UUID) -> CommentItem | None:
        """Find a comment by id, deleted comments included.

        Returns:
            Projection of the first match, None if no post holds the id
        """
        self.gate.require(caller, Right.VIEW_PUBLIC_COMMENTS)

        for post in self.store.posts():
            comments = post.all_comments
            for comment in comments:
                if comment.id == comment_id:
                    return CommentItem.from_comment(comment, comments)
        return None

    # ==========================================================================
    # Mutations
    # ==========================================================================

    def add(self, caller: Caller, item: CreateCommentRequest) -> CommentItem | None:
        """Create a comment on a post.

        Best effort: a missing post or any failure while building or saving
        the comment is logged and reported as None.

        Raises:
            PermissionDeniedError: Caller cannot create comments
        """
        self.gate.require(caller, Right.CREATE_COMMENTS)

        try:
            post = self.store.get(item.post_id)
            if post is None:
                logger.warning(
                    "comment_post_not_found",
                    component="comments.service.add",
                    post_id=str(item.post_id),
                )
                return None

            comment = create_comment(
                author=self._author_for(caller, item.author),
                email=self._email_for(caller, item.email),
                content=encode_content(item.content),
                parent_id=item.parent_id,
                website=parse_website(item.website),
                ip=caller.ip_address,
                is_approved=item.is_approved,
            )

            stored = post.add_comment(comment)
            post.save()
        except Exception:
            logger.exception(
                "comment_add_failed",
                component="comments.service.add",
                post_id=str(item.post_id),
            )
            return None

        logger.info(
            "comment_added",
            comment_id=str(stored.id),
            post_id=str(post.id),
            is_approved=stored.is_approved,
        )
        return CommentItem.from_comment(stored, post.comments)

    def update(
        self, caller: Caller, item: UpdateCommentRequest, action: str = ""
    ) -> bool:
        """Edit a comment or change its moderation state.

        ``approve`` and ``unapprove`` only flip the moderation flags; any
        other action overwrites the editable fields and applies the moderation
        hints carried by ``item``.

        Returns:
            True when the comment was found and saved, False otherwise

        Raises:
            PermissionDeniedError: Caller cannot moderate comments
            InvalidWebsiteError: Full update with a malformed website
        """
        self.gate.require(caller, Right.MODERATE_COMMENTS)

        found = self._locate(item.id, include_deleted=False)
        if found is None:
            return False
        post, comment = found

        if action == ModerationAction.APPROVE.value:
            comment.approve()
        elif action == ModerationAction.UNAPPROVE.value:
            # Unapproving is treated as marking spam
            comment.mark_spam()
        else:
            website = parse_website(item.website)
            comment.content = item.content
            comment.author = item.author
            comment.email = item.email
            comment.website = website
            comment.is_approved, comment.is_spam = resolve_moderation_flags(
                comment.is_approved,
                comment.is_spam,
                pending=item.is_pending,
                approved=item.is_approved,
                spam=item.is_spam,
            )

        post.touch()
        post.save()

        logger.info(
            "comment_updated",
            comment_id=str(comment.id),
            action=action or "edit",
            state=comment.state.value,
        )
        return True

    def remove(self, caller: Caller, comment_id: UUID) -> bool:
        """Soft-delete a comment.

        Returns:
            True when the comment was found, False otherwise (nothing changes)

        Raises:
            PermissionDeniedError: Caller cannot moderate comments
        """
        self.gate.require(caller, Right.MODERATE_COMMENTS)

        found = self._locate(comment_id, include_deleted=True)
        if found is None:
            return False
        post, comment = found

        post.remove_comment(comment, persist=False)
        post.touch()
        post.save()

        logger.info("comment_removed", comment_id=str(comment_id), post_id=str(post.id))
        return True

    def delete_all(self, caller: Caller, comment_type: CommentType | str) -> bool:
        """Soft-delete every pending or every spam comment.

        Only published, non-deleted posts applicable to the caller are swept.
        Comments are removed without saving one by one; each post that lost
        comments is saved once.

        Raises:
            PermissionDeniedError: Caller cannot moderate comments
            InvalidCommentTypeError: Type is neither pending nor spam
        """
        self.gate.require(caller, Right.MODERATE_COMMENTS)

        try:
            sweep_type = CommentType(comment_type)
        except ValueError as e:
            raise InvalidCommentTypeError(str(comment_type)) from e
        if sweep_type not in SWEEPABLE_TYPES:
            raise InvalidCommentTypeError(sweep_type.value)

        include_unpublished = self.gate.is_authorized_to(
            caller, Right.VIEW_UNPUBLISHED_POSTS
        )
        posts = [
            p
            for p in self.store.applicable_posts(caller, include_unpublished)
            if p.is_published and not p.is_deleted
        ]

        removed = 0
        for post in posts:
            if sweep_type == CommentType.PENDING:
                targets = [
                    c
                    for c in post.not_approved_comments
                    if not c.is_spam and not c.is_deleted
                ]
            else:
                targets = [c for c in post.spam_comments if not c.is_deleted]

            for comment in targets:
                post.remove_comment(comment, persist=False)
            post.touch()
            post.save()
            removed += len(targets)

        logger.info(
            "comments_swept",
            comment_type=sweep_type.value,
            removed=removed,
            posts=len(posts),
        )
        return True

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @staticmethod
    def _comment_type(comment_type: CommentType | str) -> CommentType:
        try:
            return CommentType(comment_type)
        except ValueError:
            return CommentType.ALL

    def _select(self, caller: Caller, comment_type: CommentType) -> list[Comment]:
        """Collect the comment subset from every post visible to the caller."""
        see_all = self.gate.is_authorized_to(caller, Right.EDIT_OTHER_USERS_POSTS)
        caller_name = caller.name.lower()

        items: list[Comment] = []
        for post in self.store.posts():
            if not see_all and not (caller_name and post.author.lower() == caller_name):
                continue
            items.extend(self._view(post, comment_type))
        return items

    @staticmethod
    def _view(post: "Post", comment_type: CommentType) -> list[Comment]:
        match comment_type:
            case CommentType.PENDING:
                return post.not_approved_comments
            case CommentType.PINGBACK:
                return post.pingbacks
            case CommentType.SPAM:
                return post.spam_comments
            case CommentType.APPROVED:
                return post.approved_comments
            case _:
                return post.comments

    def _locate(
        self, comment_id: UUID, include_deleted: bool
    ) -> tuple["Post", Comment] | None:
        for post in self.store.posts():
            comments = post.all_comments if include_deleted else post.comments
            for comment in comments:
                if comment.id == comment_id:
                    return post, comment
        return None

    def _author_for(self, caller: Caller, author: str | None) -> str:
        """Author name from input, else the caller's display or identity name."""
        if author and author.strip():
            return author.strip()

        name = caller.name
        if name:
            profile = self.accounts.get_profile(name)
            if profile is not None and profile.display_name:
                return profile.display_name
        return name

    def _email_for(self, caller: Caller, email: str | None) -> str:
        """Email from input, else the caller's registered account email."""
        if email and email.strip():
            return email.strip()
        if not caller.name:
            return ""
        return self.accounts.get_email(caller.name) or ""


__all__ = [
    "CommentError",
    "CommentService",
    "InvalidCommentTypeError",
    "InvalidFilterError",
    "InvalidWebsiteError",
    "PermissionDeniedError",
    "parse_website",
]
