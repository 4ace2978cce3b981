"""Account directory and author profile lookup.

User names are matched case-insensitively, like the ownership checks on
posts.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import structlog

from .models import Account, AuthorProfile


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


class AccountDirectory(ABC):
    """Resolves registered emails and author profiles by identity name."""

    @abstractmethod
    def get_account(self, user_name: str) -> Account | None: ...

    @abstractmethod
    def get_profile(self, user_name: str) -> AuthorProfile | None: ...

    def get_email(self, user_name: str) -> str | None:
        """Registered email of an account, None when unknown."""
        account = self.get_account(user_name)
        return account.email if account else None


class InMemoryAccountDirectory(AccountDirectory):
    """Directory kept in process memory."""

    def __init__(
        self,
        accounts: list[Account] | None = None,
        profiles: list[AuthorProfile] | None = None,
    ):
        self._accounts = {a.user_name.lower(): a for a in accounts or []}
        self._profiles = {p.user_name.lower(): p for p in profiles or []}

    def add_account(self, account: Account) -> None:
        self._accounts[account.user_name.lower()] = account

    def add_profile(self, profile: AuthorProfile) -> None:
        self._profiles[profile.user_name.lower()] = profile

    def get_account(self, user_name: str) -> Account | None:
        return self._accounts.get(user_name.lower())

    def get_profile(self, user_name: str) -> AuthorProfile | None:
        return self._profiles.get(user_name.lower())


class CassandraAccountDirectory(AccountDirectory):
    """Directory backed by the ``accounts`` and ``author_profiles`` tables.

    User names are stored lowercased.
    """

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._get_account = self.session.prepare(f"""
            SELECT * FROM {keyspace}.accounts WHERE user_name = ?
        """)
        self._get_profile = self.session.prepare(f"""
            SELECT * FROM {keyspace}.author_profiles WHERE user_name = ?
        """)

    def get_account(self, user_name: str) -> Account | None:
        row = self.session.execute(self._get_account, [user_name.lower()]).one()
        if row is None:
            logger.debug("account_not_found", user_name=user_name)
            return None
        return Account.from_row(row)

    def get_profile(self, user_name: str) -> AuthorProfile | None:
        row = self.session.execute(self._get_profile, [user_name.lower()]).one()
        return AuthorProfile.from_row(row) if row else None
