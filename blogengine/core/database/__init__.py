"""Database connection module for BlogEngine."""

from blogengine.core.database.cassandra import (
    CassandraConnection,
    init_cassandra,
    shutdown_cassandra,
)


__all__ = [
    "CassandraConnection",
    "init_cassandra",
    "shutdown_cassandra",
]
