"""Rights-based access control for the blog.

Every operation names the right it needs; roles are bundles of rights:

- ANONYMOUS: read public comments and leave comments
- AUTHOR: same as anonymous, plus visibility of comments on own posts
- EDITOR: moderates comments and works on other users' posts
- ADMIN: every right
"""

from enum import Enum
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from blogengine.auth.schemas import Caller


class Right(str, Enum):
    """Named permissions checked before an operation proceeds."""

    VIEW_PUBLIC_COMMENTS = "view_public_comments"
    CREATE_COMMENTS = "create_comments"
    MODERATE_COMMENTS = "moderate_comments"
    EDIT_OTHER_USERS_POSTS = "edit_other_users_posts"
    VIEW_UNPUBLISHED_POSTS = "view_unpublished_posts"


class UserRole(str, Enum):
    """Roles a caller can hold."""

    ANONYMOUS = "anonymous"
    AUTHOR = "author"
    EDITOR = "editor"
    ADMIN = "admin"


_READER_RIGHTS = frozenset({Right.VIEW_PUBLIC_COMMENTS, Right.CREATE_COMMENTS})

ROLE_RIGHTS: dict[UserRole, frozenset[Right]] = {
    UserRole.ANONYMOUS: _READER_RIGHTS,
    UserRole.AUTHOR: _READER_RIGHTS,
    UserRole.EDITOR: _READER_RIGHTS
    | {
        Right.MODERATE_COMMENTS,
        Right.EDIT_OTHER_USERS_POSTS,
        Right.VIEW_UNPUBLISHED_POSTS,
    },
    UserRole.ADMIN: frozenset(Right),
}


def get_rights(role: UserRole | str) -> frozenset[Right]:
    """Get the rights granted to a role.

    Unknown role strings get no rights at all.
    """
    if isinstance(role, str):
        try:
            role = UserRole(role)
        except ValueError:
            return frozenset()
    return ROLE_RIGHTS.get(role, frozenset())


def has_right(role: UserRole | str, right: Right) -> bool:
    """Check if a role carries a right.

    Examples:
        >>> has_right(UserRole.EDITOR, Right.MODERATE_COMMENTS)
        True
        >>> has_right("author", Right.MODERATE_COMMENTS)
        False
    """
    return right in get_rights(role)


class PermissionDeniedError(Exception):
    """Caller lacks the right an operation requires."""

    code = "permission_denied"

    def __init__(self, right: Right, message: str = "Permission denied"):
        self.right = right
        self.message = message
        super().__init__(f"{message}: {right.value}")


class SecurityGate:
    """Evaluates the caller's rights before any work happens.

    Stateless; the rights table can be swapped for tests or custom setups.
    """

    def __init__(self, role_rights: dict[UserRole, frozenset[Right]] | None = None):
        self.role_rights = role_rights if role_rights is not None else ROLE_RIGHTS

    def is_authorized_to(self, caller: "Caller", right: Right) -> bool:
        try:
            role = UserRole(caller.role)
        except ValueError:
            return False
        return right in self.role_rights.get(role, frozenset())

    def require(self, caller: "Caller", right: Right) -> None:
        """Raise PermissionDeniedError unless the caller holds ``right``."""
        if not self.is_authorized_to(caller, right):
            raise PermissionDeniedError(right)
