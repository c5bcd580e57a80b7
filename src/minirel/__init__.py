"""
minirel - In-memory relational engine

An embeddable, single-process relational engine: a catalog of typed
tables with primary and foreign keys, parameterised SQL statements,
snapshot cursors, and all-or-nothing transactions built on a staged
overlay.
"""

__version__ = "0.1.0"
__author__ = "Systems Engineering Portfolio"

from minirel.application import (
    Connection,
    Cursor,
    Database,
    ExecutionResult,
    PreparedStatement,
    connect,
)
from minirel.domain.entities import Column, DataType, ForeignKeyRef, Row, TableSchema
from minirel.domain.errors import (
    ConnectionError,
    ConstraintError,
    CursorError,
    CursorNotPositionedError,
    DataTypeError,
    DuplicateTableError,
    ForeignKeyViolation,
    InvalidSchemaError,
    MiniRelError,
    NoActiveTransactionError,
    NotFoundError,
    NotNullViolation,
    ParseError,
    PrimaryKeyViolation,
    ResourceClosedError,
    ResourceError,
    SchemaError,
    StatementError,
    TransactionAlreadyActiveError,
    TransactionError,
    UnboundParameterError,
    UnknownColumnError,
    UnknownTableError,
)

__all__ = [
    "__version__",
    "connect",
    "Connection",
    "Cursor",
    "Database",
    "ExecutionResult",
    "PreparedStatement",
    "Column",
    "DataType",
    "ForeignKeyRef",
    "Row",
    "TableSchema",
    "MiniRelError",
    "SchemaError",
    "DuplicateTableError",
    "InvalidSchemaError",
    "UnknownTableError",
    "UnknownColumnError",
    "ConstraintError",
    "PrimaryKeyViolation",
    "ForeignKeyViolation",
    "NotNullViolation",
    "NotFoundError",
    "StatementError",
    "UnboundParameterError",
    "ParseError",
    "DataTypeError",
    "CursorError",
    "CursorNotPositionedError",
    "TransactionError",
    "TransactionAlreadyActiveError",
    "NoActiveTransactionError",
    "ResourceError",
    "ResourceClosedError",
    "ConnectionError",
]
