"""Application layer for minirel.

The application layer orchestrates domain logic to fulfill use cases:
connections own sessions and transactions, the executor runs statements
and cursors hand out result rows.

Exports:
    Connections:
        - connect: Open a connection to a database target
        - Connection: A session on a database
        - PreparedStatement: Statement parsed once, executed many times
        - Database: Shared state behind connections
    Executor:
        - StatementExecutor: Executes statements (Volcano iterator model)
        - ExecutionResult: Result of statement execution
        - Cursor: Forward-only result cursor
        - Operator: Base class for executor operators
"""

from minirel.application.cursor import Cursor
from minirel.application.executor import (
    ExecutionResult,
    FilterOperator,
    LimitOperator,
    Operator,
    ProjectOperator,
    SeqScanOperator,
    SortOperator,
    StatementExecutor,
    evaluate,
)
from minirel.application.database import Database, open_database, shared_database_names
from minirel.application.connection import Connection, PreparedStatement, SessionState, connect

__all__ = [
    "connect",
    "Connection",
    "PreparedStatement",
    "SessionState",
    "Database",
    "open_database",
    "shared_database_names",
    "StatementExecutor",
    "ExecutionResult",
    "Cursor",
    "evaluate",
    "Operator",
    "SeqScanOperator",
    "FilterOperator",
    "ProjectOperator",
    "SortOperator",
    "LimitOperator",
]
