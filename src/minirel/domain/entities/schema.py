"""Table schema entities: data types, columns and foreign key references.

A table schema fixes the column order of every row stored for the table.
Rows are plain tuples aligned to that order; the schema knows how to
coerce incoming values, which columns form the primary key and which
columns reference other tables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Sequence

from minirel.domain.errors import (
    DataTypeError,
    InvalidSchemaError,
    NotNullViolation,
    UnknownColumnError,
)


class DataType(Enum):
    """SQL data types."""

    INTEGER = "INTEGER"
    BIGINT = "BIGINT"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    VARCHAR = "VARCHAR"
    TEXT = "TEXT"
    BOOLEAN = "BOOLEAN"
    TIMESTAMP = "TIMESTAMP"
    BLOB = "BLOB"

    def coerce(self, value: Any) -> Any:
        """Convert a Python value to the representation stored for this type.

        NULL (None) is accepted by every type; nullability is a column
        concern.

        Raises:
            DataTypeError: If the value cannot represent this type.
        """
        if value is None:
            return None

        if self in (DataType.INTEGER, DataType.BIGINT):
            if isinstance(value, int):
                return int(value)
            if isinstance(value, float) and value.is_integer():
                return int(value)
        elif self in (DataType.FLOAT, DataType.DOUBLE):
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return float(value)
        elif self in (DataType.VARCHAR, DataType.TEXT):
            if isinstance(value, str):
                return value
        elif self == DataType.BOOLEAN:
            if isinstance(value, bool):
                return value
            if isinstance(value, int) and value in (0, 1):
                return bool(value)
        elif self == DataType.TIMESTAMP:
            if isinstance(value, datetime):
                return value
            if isinstance(value, str):
                try:
                    return datetime.fromisoformat(value)
                except ValueError as e:
                    raise DataTypeError(f"Invalid TIMESTAMP literal {value!r}") from e
        elif self == DataType.BLOB:
            if isinstance(value, (bytes, bytearray, memoryview)):
                return bytes(value)

        raise DataTypeError(
            f"Cannot store {type(value).__name__} value {value!r} as {self.value}"
        )


@dataclass(frozen=True, slots=True)
class ForeignKeyRef:
    """Reference from a column to a column of another (or the same) table."""

    table: str
    column: str

    def __str__(self) -> str:
        return f"{self.table}({self.column})"


@dataclass(frozen=True, slots=True)
class Column:
    """Column definition.

    Attributes:
        name: Column name, unique within its table
        data_type: Declared type used to coerce stored values
        nullable: Whether NULL may be stored (primary keys never are)
        primary_key: Whether the column is part of the primary key
        references: Optional foreign key reference
        max_length: Optional length limit for VARCHAR columns
    """

    name: str
    data_type: DataType = DataType.TEXT
    nullable: bool = True
    primary_key: bool = False
    references: ForeignKeyRef | None = None
    max_length: int | None = None

    @property
    def accepts_null(self) -> bool:
        return self.nullable and not self.primary_key

    def coerce(self, value: Any) -> Any:
        """Coerce a value to this column's type, checking length limits."""
        value = self.data_type.coerce(value)
        if (
            self.max_length is not None
            and isinstance(value, str)
            and len(value) > self.max_length
        ):
            raise DataTypeError(
                f"Value for column '{self.name}' exceeds {self.max_length} characters"
            )
        return value


@dataclass(frozen=True)
class TableSchema:
    """Ordered set of columns for one table.

    Example:
        >>> schema = TableSchema("user", (
        ...     Column("id", DataType.INTEGER, primary_key=True),
        ...     Column("firstName", DataType.VARCHAR),
        ... ))
        >>> schema.key_of((32, "Neha"))
        32
    """

    name: str
    columns: tuple[Column, ...]
    _positions: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_positions", {col.name: i for i, col in enumerate(self.columns)}
        )

    @property
    def column_names(self) -> list[str]:
        return [col.name for col in self.columns]

    @property
    def arity(self) -> int:
        return len(self.columns)

    @property
    def primary_key_indexes(self) -> list[int]:
        return [i for i, col in enumerate(self.columns) if col.primary_key]

    @property
    def primary_key_columns(self) -> list[Column]:
        return [col for col in self.columns if col.primary_key]

    @property
    def foreign_keys(self) -> list[tuple[int, ForeignKeyRef]]:
        """Positions and targets of all referencing columns."""
        return [
            (i, col.references)
            for i, col in enumerate(self.columns)
            if col.references is not None
        ]

    def has_column(self, name: str) -> bool:
        return name in self._positions

    def index_of(self, name: str) -> int:
        """Return the position of a column.

        Raises:
            UnknownColumnError: If the column does not exist.
        """
        try:
            return self._positions[name]
        except KeyError:
            raise UnknownColumnError(self.name, name) from None

    def column(self, name: str) -> Column:
        return self.columns[self.index_of(name)]

    def key_of(self, row: Sequence[Any]) -> Any:
        """Extract the primary key from a row.

        Single-column keys are returned as the bare value; composite keys
        as a tuple in column order.
        """
        indexes = self.primary_key_indexes
        if len(indexes) == 1:
            return row[indexes[0]]
        return tuple(row[i] for i in indexes)

    def coerce_row(self, values: Sequence[Any]) -> tuple[Any, ...]:
        """Coerce a full-width sequence of values to the column types.

        Raises:
            InvalidSchemaError: If the arity does not match.
            DataTypeError: If a value does not fit its column.
        """
        if len(values) != self.arity:
            raise InvalidSchemaError(
                f"Table '{self.name}' has {self.arity} columns, got {len(values)} values"
            )
        return tuple(col.coerce(v) for col, v in zip(self.columns, values))

    def validate_row(self, values: Sequence[Any]) -> tuple[Any, ...]:
        """Coerce a row and check NOT NULL constraints.

        Raises:
            InvalidSchemaError: If the arity does not match.
            DataTypeError: If a value does not fit its column.
            NotNullViolation: If a NULL lands in a NOT NULL column.
        """
        row = self.coerce_row(values)
        for col, value in zip(self.columns, row):
            if value is None and not col.accepts_null:
                raise NotNullViolation(self.name, col.name)
        return row
