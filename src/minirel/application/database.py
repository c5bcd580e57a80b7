"""Database - the shared state behind connections.

A Database owns the catalog, the committed table store, the transaction
manager and the SQL parser. Connections attach to it; every connection
on the same database sees the same committed rows.

Targets:
    ":memory:"        a private database, gone when its connection closes
    "memory:<name>"   a named database shared by every connection opened
                      with the same target; it is dropped from the
                      registry when its last connection closes
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

from minirel.adapters.inbound.sql_parser import SQLParser
from minirel.domain.errors import ConnectionError
from minirel.domain.services import Catalog, OverlayTransactionManager, TableStore
from minirel.domain.value_objects import ConnectionId
from minirel.infrastructure.config import Config, get_config
from minirel.infrastructure.logging import get_logger
from minirel.infrastructure.metrics import MetricsRegistry, get_metrics

if TYPE_CHECKING:
    from minirel.application.connection import Connection

PRIVATE_TARGET = ":memory:"
SHARED_PREFIX = "memory:"

logger = get_logger(__name__)

_shared: dict[str, Database] = {}
_shared_lock = threading.Lock()


class Database:
    """In-memory relational database.

    Usage:
        db = Database()
        conn = Connection(db)
        conn.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, firstName TEXT)")
    """

    def __init__(
        self,
        name: str = PRIVATE_TARGET,
        config: Config | None = None,
        metrics: MetricsRegistry | None = None,
        shared: bool = False,
    ) -> None:
        """Initialize the database.

        Args:
            name: The target the database was opened with.
            config: Engine configuration (defaults to get_config()).
            metrics: Metrics registry (defaults to the process registry).
            shared: Whether the database lives in the named registry.
        """
        self._name = name
        self._config = config or get_config()
        self._metrics = metrics or get_metrics()
        self._shared = shared

        self._catalog = Catalog()
        self._store = TableStore(self._catalog)
        self._txn_manager = OverlayTransactionManager(self._store)
        self._parser = SQLParser(dialect=self._config.engine.sql_dialect)

        self._lock = threading.Lock()
        self._connections: dict[ConnectionId, Connection] = {}
        self._next_connection_id = 1

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> Config:
        return self._config

    @property
    def metrics(self) -> MetricsRegistry:
        return self._metrics

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def store(self) -> TableStore:
        return self._store

    @property
    def txn_manager(self) -> OverlayTransactionManager:
        return self._txn_manager

    @property
    def parser(self) -> SQLParser:
        return self._parser

    @property
    def is_shared(self) -> bool:
        return self._shared

    @property
    def open_connections(self) -> int:
        with self._lock:
            return len(self._connections)

    def attach(self, connection: Connection) -> ConnectionId:
        """Register a connection and assign its id.

        Raises:
            ConnectionError: If the database has max_connections open.
        """
        limit = self._config.engine.max_connections
        with self._lock:
            if len(self._connections) >= limit:
                raise ConnectionError(
                    f"Database {self._name!r} already has {limit} open connections"
                )
            conn_id = ConnectionId(self._next_connection_id)
            self._next_connection_id += 1
            self._connections[conn_id] = connection

        self._metrics.connections_open.inc()
        return conn_id

    def detach(self, conn_id: ConnectionId) -> None:
        """Unregister a closed connection."""
        with self._lock:
            if self._connections.pop(conn_id, None) is None:
                return
        self._metrics.connections_open.dec()
        self.release_if_unused()

    def release_if_unused(self) -> None:
        """Drop a shared database from the registry once nothing uses it."""
        if not self._shared:
            return
        key = self._name[len(SHARED_PREFIX):]
        with _shared_lock:
            if _shared.get(key) is self and self.open_connections == 0:
                del _shared[key]
                logger.info("shared_database_released", database=self._name)

    def get_stats(self) -> dict[str, Any]:
        """Get database statistics.

        Returns:
            Dictionary with table, connection and transaction statistics.
        """
        txn_stats = self._txn_manager.get_stats()
        return {
            "name": self._name,
            "shared": self._shared,
            "tables": len(self._catalog),
            "rows": {name: self._store.count(name) for name in self._catalog.table_names()},
            "connections": self.open_connections,
            "transactions": {
                "active": txn_stats.active_count,
                "committed": txn_stats.committed_total,
                "rolled_back": txn_stats.rolled_back_total,
                "avg_duration_ms": txn_stats.avg_duration_ms,
            },
        }

    def __repr__(self) -> str:
        return f"Database({self._name!r}, tables={len(self._catalog)})"


def open_database(
    target: str,
    config: Config | None = None,
    metrics: MetricsRegistry | None = None,
) -> Database:
    """Resolve a connection target to a database.

    Args:
        target: ":memory:" or "memory:<name>".
        config: Configuration for a newly created database.
        metrics: Metrics registry for a newly created database.

    Returns:
        A new private database, or the shared database for the name.
        An existing shared database keeps the config it was created with.

    Raises:
        ConnectionError: If the target is not supported.
    """
    if target == PRIVATE_TARGET:
        return Database(target, config=config, metrics=metrics)

    if isinstance(target, str) and target.startswith(SHARED_PREFIX):
        key = target[len(SHARED_PREFIX):]
        if key:
            with _shared_lock:
                database = _shared.get(key)
                if database is None:
                    database = Database(target, config=config, metrics=metrics, shared=True)
                    _shared[key] = database
                    logger.info("shared_database_created", database=target)
            return database

    raise ConnectionError(
        f"Unsupported connection target {target!r}; use ':memory:' or 'memory:<name>'"
    )


def shared_database_names() -> list[str]:
    """Names of the shared databases currently registered."""
    with _shared_lock:
        return sorted(_shared)
