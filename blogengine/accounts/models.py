"""Account and author profile entities.

Accounts belong to the membership provider; this service only reads the
registered email and the optional display name of an identity.
"""

from dataclasses import dataclass
from typing import Any

from blogengine.auth.permissions import UserRole


ACCOUNT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.accounts (
    user_name TEXT PRIMARY KEY,
    email TEXT,
    role TEXT
)
"""

AUTHOR_PROFILE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.author_profiles (
    user_name TEXT PRIMARY KEY,
    display_name TEXT
)
"""

ACCOUNTS_TABLES_CQL = [ACCOUNT_TABLE_CQL, AUTHOR_PROFILE_TABLE_CQL]


@dataclass(frozen=True)
class Account:
    """Registered account."""

    user_name: str
    email: str
    role: str = UserRole.AUTHOR.value

    @classmethod
    def from_row(cls, row: Any) -> "Account":
        return cls(
            user_name=row.user_name,
            email=row.email or "",
            role=row.role or UserRole.AUTHOR.value,
        )


@dataclass(frozen=True)
class AuthorProfile:
    """Public profile of an author."""

    user_name: str
    display_name: str | None = None

    @classmethod
    def from_row(cls, row: Any) -> "AuthorProfile":
        return cls(user_name=row.user_name, display_name=row.display_name)
