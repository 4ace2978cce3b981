"""Accounts and author profiles."""

from .models import ACCOUNTS_TABLES_CQL, Account, AuthorProfile
from .service import (
    AccountDirectory,
    CassandraAccountDirectory,
    InMemoryAccountDirectory,
)


__all__ = [
    "ACCOUNTS_TABLES_CQL",
    "Account",
    "AccountDirectory",
    "AuthorProfile",
    "CassandraAccountDirectory",
    "InMemoryAccountDirectory",
]
