"""Connection - the session through which SQL is executed.

A connection carries the session state: its autocommit mode and its
active transaction. Statements are parsed by the database's parser,
bound, and handed to the statement executor together with the
transaction they belong to.

Autocommit:
    On (default): each write runs in an implicit single-statement
    transaction that is committed before execute() returns. begin()
    opens an explicit transaction that lasts until commit()/rollback().

    Off: the first write implicitly begins a transaction; it stays open
    until commit() or rollback(). Turning autocommit back on while a
    transaction is open commits it.

Usage:
    with connect(":memory:") as conn:
        conn.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, firstName TEXT)")
        conn.execute("INSERT INTO users VALUES (?, ?)", (32, "Neha"))
        with conn.transaction():
            conn.execute("UPDATE users SET firstName = :name WHERE id = :id",
                         {"name": "Neha K.", "id": 32})
        for row in conn.execute("SELECT * FROM users").cursor:
            print(row)
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping, Sequence

from minirel.adapters.inbound.sql_parser import (
    Statement,
    StatementKind,
    TransactionAction,
    TransactionPlan,
)
from minirel.application.cursor import Cursor
from minirel.application.database import PRIVATE_TARGET, Database, open_database
from minirel.application.executor import ExecutionResult, StatementExecutor
from minirel.domain.errors import (
    ConnectionError,
    NoActiveTransactionError,
    ResourceClosedError,
    StatementError,
    TransactionAlreadyActiveError,
    UnboundParameterError,
)
from minirel.domain.value_objects import ConnectionId
from minirel.infrastructure.config import Config
from minirel.infrastructure.logging import get_logger
from minirel.infrastructure.metrics import MetricsRegistry
from minirel.infrastructure.tracing import trace_function, trace_span
from minirel.ports.inbound.transaction_manager import Transaction

Params = Sequence[Any] | Mapping[str, Any] | None


@dataclass
class SessionState:
    """State for a connection."""

    connection_id: ConnectionId
    autocommit: bool = True
    transaction: Transaction | None = None


class Connection:
    """A session on a database.

    Connections are not thread-safe; use one per thread.
    """

    def __init__(self, database: Database, autocommit: bool | None = None) -> None:
        """Open a connection on a database.

        Args:
            database: The database to attach to.
            autocommit: Initial autocommit mode (defaults to the
                engine.default_autocommit setting).

        Raises:
            ConnectionError: If the database is at max_connections.
        """
        self._database = database
        self._metrics = database.metrics
        self._txn_manager = database.txn_manager

        conn_id = database.attach(self)
        if autocommit is None:
            autocommit = database.config.engine.default_autocommit
        self._session = SessionState(connection_id=conn_id, autocommit=autocommit)

        self._executor = StatementExecutor(
            database.catalog, database.txn_manager, on_cursor_close=self._cursor_closed
        )
        self._cursors: set[Cursor] = set()
        self._statements: set[PreparedStatement] = set()
        self._closed = False

        self._logger = get_logger(__name__, database=database.name, connection_id=conn_id)
        self._logger.info("connection_opened", autocommit=autocommit)

    @property
    def connection_id(self) -> ConnectionId:
        return self._session.connection_id

    @property
    def database(self) -> Database:
        return self._database

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def autocommit(self) -> bool:
        return self._session.autocommit

    @autocommit.setter
    def autocommit(self, enabled: bool) -> None:
        self.set_autocommit(enabled)

    @property
    def in_transaction(self) -> bool:
        return self._session.transaction is not None

    def set_autocommit(self, enabled: bool) -> None:
        """Switch autocommit mode.

        Enabling autocommit while a transaction is open commits it; if
        that commit fails the mode is left unchanged.
        """
        self._check_open()
        txn = self._session.transaction
        if enabled and not self._session.autocommit and txn is not None:
            self._commit(txn)
        self._session.autocommit = enabled

    def execute(self, sql: str, params: Params = None) -> ExecutionResult:
        """Parse, bind and execute one statement.

        Args:
            sql: A single SQL statement.
            params: Values for its placeholders: a sequence for `?`, a
                mapping for `:name`.

        Returns:
            ExecutionResult; SELECT results carry a cursor.

        Raises:
            ParseError: If the SQL is invalid or unsupported.
            UnboundParameterError: If a placeholder has no value.
            SchemaError, ConstraintError: If the statement violates the
                schema or, on commit, a constraint.
            TransactionError: For misplaced transaction control.
            ResourceClosedError: If the connection is closed.
        """
        self._check_open()
        statement = self._database.parser.parse(sql)
        return self._run(statement, params)

    def executemany(self, sql: str, seq_of_params: Iterable[Params]) -> int:
        """Execute a write statement once per parameter set.

        Returns:
            Total number of affected rows.
        """
        self._check_open()
        statement = self._database.parser.parse(sql)
        if statement.kind == StatementKind.SELECT:
            raise StatementError("executemany() cannot run queries")
        return sum(self._run(statement, params).affected_rows for params in seq_of_params)

    def prepare(self, sql: str) -> PreparedStatement:
        """Parse a statement once for repeated execution."""
        self._check_open()
        statement = self._database.parser.parse(sql)
        self._executor.resolve_parameters(statement)
        prepared = PreparedStatement(self, statement)
        self._statements.add(prepared)
        return prepared

    def begin(self) -> None:
        """Begin an explicit transaction.

        Raises:
            TransactionAlreadyActiveError: If this connection already has a
                transaction, or another connection holds the database's
                writer slot.
        """
        self._check_open()
        if self._session.transaction is not None:
            raise TransactionAlreadyActiveError(
                f"Connection {self.connection_id} already has active transaction "
                f"{self._session.transaction.txn_id}"
            )
        self._begin()

    def commit(self) -> None:
        """Commit the active transaction.

        Raises:
            NoActiveTransactionError: If there is no active transaction.
            ConstraintError, SchemaError: If a staged write fails; the
                transaction is rolled back and the committed state is
                exactly what it was before the transaction began.
        """
        self._check_open()
        txn = self._session.transaction
        if txn is None:
            raise NoActiveTransactionError("No active transaction to commit")
        self._commit(txn)

    def rollback(self) -> None:
        """Discard the active transaction.

        Raises:
            NoActiveTransactionError: If there is no active transaction.
        """
        self._check_open()
        txn = self._session.transaction
        if txn is None:
            raise NoActiveTransactionError("No active transaction to roll back")
        self._rollback(txn)

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Run a block in a transaction.

        Commits on normal exit; rolls back and re-raises on an exception.
        """
        self.begin()
        try:
            yield self
        except BaseException:
            if self._session.transaction is not None:
                self._rollback(self._session.transaction)
            raise
        self.commit()

    def close(self) -> None:
        """Close the connection.

        An open transaction is rolled back; open cursors and prepared
        statements are closed. Closing twice is a no-op.
        """
        if self._closed:
            return
        if self._session.transaction is not None:
            self._rollback(self._session.transaction)
        for cursor in list(self._cursors):
            cursor.close()
        for prepared in list(self._statements):
            prepared.close()

        self._closed = True
        self._database.detach(self.connection_id)
        self._logger.info("connection_closed")

    def _run(self, statement: Statement, params: Params) -> ExecutionResult:
        kind = statement.kind.value
        start = time.perf_counter()
        status = "error"
        try:
            with trace_span(
                "minirel.execute",
                {"minirel.kind": kind, "minirel.connection_id": int(self.connection_id)},
            ):
                if isinstance(statement.plan, TransactionPlan):
                    result = self._execute_transaction(statement.plan)
                else:
                    self._executor.resolve_parameters(statement)
                    values = statement.bind(params)
                    result = self._execute_statement(statement, values)
            status = "success"
            return result
        finally:
            self._metrics.statements_total.labels(kind=kind, status=status).inc()
            self._metrics.statement_latency_seconds.labels(kind=kind).observe(
                time.perf_counter() - start
            )

    def _execute_statement(self, statement: Statement, values: tuple[Any, ...]) -> ExecutionResult:
        if statement.kind in (StatementKind.SELECT, StatementKind.DDL):
            result = self._executor.execute(statement, values, self._session.transaction)
            if result.cursor is not None:
                self._cursors.add(result.cursor)
                self._metrics.cursors_open.inc()
            elif statement.kind == StatementKind.DDL:
                self._logger.info("ddl_executed", statement=str(statement.plan))
            return result

        txn = self._session.transaction
        if txn is not None:
            return self._executor.execute(statement, values, txn)

        if not self._session.autocommit:
            return self._executor.execute(statement, values, self._begin())

        txn = self._begin(implicit=True)
        try:
            result = self._executor.execute(statement, values, txn)
        except Exception:
            self._rollback(txn)
            raise
        self._commit(txn)
        return result

    def _execute_transaction(self, plan: TransactionPlan) -> ExecutionResult:
        if plan.action == TransactionAction.BEGIN:
            self.begin()
            message = "OK: Transaction started"
        elif plan.action == TransactionAction.COMMIT:
            self.commit()
            message = "OK: Transaction committed"
        else:
            self.rollback()
            message = "OK: Transaction rolled back"
        return ExecutionResult(kind=StatementKind.TRANSACTION, message=message)

    def _begin(self, implicit: bool = False) -> Transaction:
        txn = self._txn_manager.begin(self.connection_id, implicit=implicit)
        self._session.transaction = txn
        self._metrics.transactions_active.inc()
        if not implicit:
            self._logger.debug("transaction_started", txn_id=txn.txn_id)
        return txn

    @trace_function("minirel.commit")
    def _commit(self, txn: Transaction) -> None:
        self._session.transaction = None
        self._metrics.transactions_active.dec()
        try:
            applied = self._txn_manager.commit(txn)
        except Exception as e:
            self._metrics.transactions_total.labels(status="rolled_back").inc()
            self._logger.warning(
                "transaction_commit_failed",
                txn_id=txn.txn_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise
        self._metrics.transactions_total.labels(status="committed").inc()
        if not txn.implicit:
            self._logger.info("transaction_committed", txn_id=txn.txn_id, operations=applied)

    def _rollback(self, txn: Transaction) -> None:
        self._session.transaction = None
        self._metrics.transactions_active.dec()
        self._txn_manager.rollback(txn)
        self._metrics.transactions_total.labels(status="rolled_back").inc()
        if not txn.implicit:
            self._logger.info("transaction_rolled_back", txn_id=txn.txn_id)

    def _cursor_closed(self, cursor: Cursor) -> None:
        if cursor in self._cursors:
            self._cursors.discard(cursor)
            self._metrics.cursors_open.dec()

    def _statement_closed(self, prepared: PreparedStatement) -> None:
        self._statements.discard(prepared)

    def _check_open(self) -> None:
        if self._closed:
            raise ResourceClosedError("Connection")

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"Connection(id={self.connection_id}, database={self._database.name!r}, {state})"


class PreparedStatement:
    """A statement parsed once and executed with different bindings.

    Usage:
        stmt = conn.prepare("INSERT INTO users VALUES (?, ?)")
        stmt.bind(1, 40)
        stmt.bind(2, "Carlos")
        stmt.execute()
    """

    def __init__(self, connection: Connection, statement: Statement) -> None:
        self._connection = connection
        self._statement = statement
        self._values: dict[int, Any] = {}
        self._closed = False

    @property
    def statement(self) -> Statement:
        return self._statement

    @property
    def parameter_count(self) -> int:
        return self._statement.parameter_count

    @property
    def closed(self) -> bool:
        return self._closed

    def bind(self, position: int | str, value: Any) -> None:
        """Bind one parameter.

        Args:
            position: 1-based slot position, or a placeholder name
                (with or without the leading colon).
            value: The value; it is coerced to the slot type.

        Raises:
            StatementError: If no slot has the position or name.
            DataTypeError: If the value does not fit the slot type.
        """
        self._check_open()
        slots = self._statement.parameters
        if isinstance(position, str):
            name = position.lstrip(":")
            matching = [slot for slot in slots if slot.name == name]
            if not matching:
                raise StatementError(f"Statement has no parameter named :{name}")
        else:
            if not 1 <= position <= len(slots):
                raise StatementError(
                    f"Parameter position {position} out of range 1..{len(slots)}"
                )
            matching = [slots[position - 1]]

        for slot in matching:
            self._values[slot.index] = slot.coerce(value)

    def bind_all(self, params: Params) -> None:
        """Replace all bindings at once."""
        self._check_open()
        values = self._statement.bind(params)
        self._values = dict(enumerate(values))

    def clear_bindings(self) -> None:
        self._check_open()
        self._values.clear()

    def execute(self) -> ExecutionResult:
        """Execute with the current bindings.

        Raises:
            UnboundParameterError: If a parameter has not been bound.
        """
        self._check_open()
        self._connection._check_open()
        slots = self._statement.parameters
        missing = [slot.label for slot in slots if slot.index not in self._values]
        if missing:
            raise UnboundParameterError(missing)

        params: Params
        if self._statement.uses_named_parameters:
            params = {slot.name: self._values[slot.index] for slot in slots}
        else:
            params = [self._values[slot.index] for slot in slots]
        return self._connection._run(self._statement, params)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._values.clear()
        self._connection._statement_closed(self)

    def _check_open(self) -> None:
        if self._closed:
            raise ResourceClosedError("PreparedStatement")

    def __enter__(self) -> PreparedStatement:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def connect(
    target: str = PRIVATE_TARGET,
    *,
    autocommit: bool | None = None,
    config: Config | None = None,
    metrics: MetricsRegistry | None = None,
) -> Connection:
    """Open a connection.

    Args:
        target: ":memory:" for a private database, or "memory:<name>" to
            open or join a shared one.
        autocommit: Initial autocommit mode.
        config: Configuration used if a new database is created.
        metrics: Metrics registry used if a new database is created.

    Raises:
        ConnectionError: If the target is unsupported or the database is
            at its connection limit.
    """
    database = open_database(target, config=config, metrics=metrics)
    try:
        return Connection(database, autocommit=autocommit)
    except ConnectionError:
        database.release_if_unused()
        raise
