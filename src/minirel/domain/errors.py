"""Error taxonomy for the engine.

Every error is raised synchronously at the point of violation. Errors
raised while a transaction commits are surfaced only after the
transaction has been rolled back; nothing is retried automatically.

Hierarchy:

    MiniRelError
    ├── SchemaError
    │   ├── DuplicateTableError
    │   ├── InvalidSchemaError
    │   ├── UnknownTableError
    │   └── UnknownColumnError
    ├── ConstraintError
    │   ├── PrimaryKeyViolation
    │   ├── ForeignKeyViolation
    │   ├── NotNullViolation
    │   └── NotFoundError
    ├── StatementError
    │   ├── UnboundParameterError
    │   ├── ParseError
    │   └── DataTypeError
    ├── CursorError
    │   └── CursorNotPositionedError
    ├── TransactionError
    │   ├── TransactionAlreadyActiveError
    │   └── NoActiveTransactionError
    └── ResourceError
        ├── ResourceClosedError
        └── ConnectionError
"""

from __future__ import annotations

from typing import Any


class MiniRelError(Exception):
    """Base class for all engine errors."""


# Schema


class SchemaError(MiniRelError):
    """Raised for catalog and table definition problems."""


class DuplicateTableError(SchemaError):
    """A table with the same name is already defined."""

    def __init__(self, table: str) -> None:
        super().__init__(f"Table '{table}' already exists")
        self.table = table


class InvalidSchemaError(SchemaError):
    """A table definition or row shape is not acceptable."""


class UnknownTableError(SchemaError):
    """The named table is not in the catalog."""

    def __init__(self, table: str) -> None:
        super().__init__(f"Table '{table}' does not exist")
        self.table = table


class UnknownColumnError(SchemaError):
    """The named column does not exist in the table."""

    def __init__(self, table: str, column: str) -> None:
        super().__init__(f"Column '{column}' does not exist in table '{table}'")
        self.table = table
        self.column = column


# Constraints


class ConstraintError(MiniRelError):
    """Raised when a write would break a table constraint."""

    def __init__(self, message: str, table: str | None = None) -> None:
        super().__init__(message)
        self.table = table


class PrimaryKeyViolation(ConstraintError):
    """The primary key value is already present in the table."""

    def __init__(self, table: str, key: Any) -> None:
        super().__init__(f"Duplicate primary key {key!r} in table '{table}'", table)
        self.key = key


class ForeignKeyViolation(ConstraintError):
    """A referenced key is missing from the referenced table."""

    def __init__(self, table: str, column: str, ref_table: str, value: Any) -> None:
        super().__init__(
            f"{table}.{column} = {value!r} has no matching row in '{ref_table}'",
            table,
        )
        self.column = column
        self.ref_table = ref_table
        self.value = value


class NotNullViolation(ConstraintError):
    """A NULL was written into a NOT NULL column."""

    def __init__(self, table: str, column: str) -> None:
        super().__init__(f"{table}.{column} may not be NULL", table)
        self.column = column


class NotFoundError(ConstraintError):
    """No row exists for the given primary key."""

    def __init__(self, table: str, key: Any) -> None:
        super().__init__(f"No row with key {key!r} in table '{table}'", table)
        self.key = key


# Statements


class StatementError(MiniRelError):
    """Raised when a statement cannot be prepared or bound."""


class UnboundParameterError(StatementError):
    """A statement was executed with one or more placeholders unbound."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Unbound parameter(s): {', '.join(missing)}")
        self.missing = missing


class ParseError(StatementError):
    """The SQL text is malformed or uses an unsupported construct."""


class DataTypeError(StatementError):
    """A value cannot be stored in a column of the declared type."""


# Cursors


class CursorError(MiniRelError):
    """Raised for cursor misuse."""


class CursorNotPositionedError(CursorError):
    """The cursor is before its first row or past its last row."""


# Transactions


class TransactionError(MiniRelError):
    """Raised for transaction control misuse."""


class TransactionAlreadyActiveError(TransactionError):
    """A transaction is already active for the connection or database."""


class NoActiveTransactionError(TransactionError):
    """Commit or rollback was requested without an active transaction."""


# Resources


class ResourceError(MiniRelError):
    """Raised for connection, statement and cursor lifecycle problems."""


class ResourceClosedError(ResourceError):
    """The resource has already been closed."""

    def __init__(self, resource: str) -> None:
        super().__init__(f"{resource} is closed")
        self.resource = resource


class ConnectionError(ResourceError):  # noqa: A001
    """The connection target is malformed or cannot be opened."""
