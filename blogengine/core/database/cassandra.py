"""Cassandra session lifecycle and schema bootstrap."""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import Cluster, Session
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy

from blogengine.accounts.models import ACCOUNTS_TABLES_CQL
from blogengine.comments.models import COMMENTS_TABLES_CQL
from blogengine.config.settings import Settings, get_settings
from blogengine.posts.models import POSTS_TABLES_CQL


logger = structlog.get_logger(__name__)

SCHEMA: dict[str, list[str]] = {
    "posts": POSTS_TABLES_CQL,
    "comments": COMMENTS_TABLES_CQL,
    "accounts": ACCOUNTS_TABLES_CQL,
}


def replication_options(settings: Settings) -> str:
    """CQL replication map for the keyspace.

    Production replicates across the configured datacenter; every other
    environment runs against a single local node.
    """
    if settings.is_production:
        return (
            "{'class': 'NetworkTopologyStrategy', "
            f"'{settings.cassandra_datacenter}': {settings.cassandra_replication_factor}}}"
        )
    return "{'class': 'SimpleStrategy', 'replication_factor': 1}"


class CassandraConnection:
    """Owns one cluster and the session opened on it."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._cluster: Cluster | None = None
        self._session: Session | None = None

    @property
    def is_connected(self) -> bool:
        return self._session is not None and not self._session.is_shutdown

    def open(self) -> Session:
        """Connect, reusing the live session if there is one.

        Raises:
            ConnectionError: If no contact point answers
        """
        if self._session is not None:
            return self._session

        s = self.settings
        credentials = (
            PlainTextAuthProvider(username=s.cassandra_username, password=s.cassandra_password)
            if s.cassandra_username and s.cassandra_password
            else None
        )
        cluster = Cluster(
            contact_points=s.cassandra_hosts,
            port=s.cassandra_port,
            auth_provider=credentials,
            protocol_version=s.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
            connect_timeout=s.cassandra_connect_timeout,
        )
        try:
            self._session = cluster.connect()
        except Exception as e:
            cluster.shutdown()
            logger.error("cassandra_unreachable", hosts=s.cassandra_hosts, error=str(e))
            raise ConnectionError(f"Cassandra unreachable at {s.cassandra_hosts}: {e}") from e

        self._cluster = cluster
        logger.info("cassandra_connected", hosts=s.cassandra_hosts, port=s.cassandra_port)
        return self._session

    def ensure_schema(self, session: Session) -> None:
        """Create the keyspace and every table group, then bind the keyspace."""
        keyspace = self.settings.cassandra_keyspace
        session.execute(
            f"CREATE KEYSPACE IF NOT EXISTS {keyspace} "
            f"WITH replication = {replication_options(self.settings)} "
            "AND durable_writes = true"
        )
        session.set_keyspace(keyspace)

        for group, templates in SCHEMA.items():
            for template in templates:
                session.execute(template.format(keyspace=keyspace))
            logger.debug("cassandra_tables_ready", group=group, count=len(templates))

        logger.info("cassandra_schema_ready", keyspace=keyspace)

    def close(self) -> None:
        if self._session is not None:
            self._session.shutdown()
            self._session = None
        if self._cluster is not None:
            self._cluster.shutdown()
            self._cluster = None
            logger.info("cassandra_disconnected")


_connection: CassandraConnection | None = None


def init_cassandra(settings: Settings | None = None) -> Session:
    """Open the shared connection and make sure the schema exists."""
    global _connection
    if _connection is None:
        _connection = CassandraConnection(settings or get_settings())
    session = _connection.open()
    _connection.ensure_schema(session)
    return session


def shutdown_cassandra() -> None:
    """Close the shared connection, if one was opened."""
    global _connection
    if _connection is not None:
        _connection.close()
        _connection = None
