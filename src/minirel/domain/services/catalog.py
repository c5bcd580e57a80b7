"""Catalog of table definitions.

The catalog is the single source of truth for table schemas. It
validates definitions when tables are created: every table needs at
least one primary key column, column names are unique, and foreign
keys point at columns that exist.
"""

from __future__ import annotations

from typing import Sequence

from minirel.domain.entities import Column, TableSchema
from minirel.domain.errors import DuplicateTableError, InvalidSchemaError, UnknownTableError


class Catalog:
    """In-memory catalog of table schemas.

    Usage:
        catalog = Catalog()
        catalog.define_table("user", [
            Column("id", DataType.INTEGER, primary_key=True),
            Column("firstName", DataType.VARCHAR),
        ])
        schema = catalog.lookup("user")
    """

    def __init__(self) -> None:
        self._tables: dict[str, TableSchema] = {}

    def define_table(self, name: str, columns: Sequence[Column]) -> TableSchema:
        """Define a new table.

        Args:
            name: Table name.
            columns: Columns in row order.

        Returns:
            The registered schema.

        Raises:
            DuplicateTableError: If the name is already defined.
            InvalidSchemaError: If the definition is not acceptable.
        """
        if name in self._tables:
            raise DuplicateTableError(name)

        schema = TableSchema(name=name, columns=tuple(columns))
        self._validate(schema)
        self._tables[name] = schema
        return schema

    def lookup(self, name: str) -> TableSchema:
        """Get a table schema.

        Raises:
            UnknownTableError: If the table is not defined.
        """
        try:
            return self._tables[name]
        except KeyError:
            raise UnknownTableError(name) from None

    def drop_table(self, name: str) -> TableSchema:
        """Remove a table definition and return it.

        Raises:
            UnknownTableError: If the table is not defined.
            InvalidSchemaError: If another table references it.
        """
        schema = self.lookup(name)
        for other in self._tables.values():
            if other.name == name:
                continue
            if any(ref.table == name for _, ref in other.foreign_keys):
                raise InvalidSchemaError(
                    f"Table '{name}' is referenced by table '{other.name}'"
                )
        del self._tables[name]
        return schema

    def has_table(self, name: str) -> bool:
        return name in self._tables

    def table_names(self) -> list[str]:
        return list(self._tables)

    def __len__(self) -> int:
        return len(self._tables)

    def _validate(self, schema: TableSchema) -> None:
        if not schema.columns:
            raise InvalidSchemaError(f"Table '{schema.name}' must declare at least one column")

        seen: set[str] = set()
        for col in schema.columns:
            if col.name in seen:
                raise InvalidSchemaError(
                    f"Duplicate column '{col.name}' in table '{schema.name}'"
                )
            seen.add(col.name)

        if not schema.primary_key_indexes:
            raise InvalidSchemaError(
                f"Table '{schema.name}' must declare a primary key column"
            )

        for _, ref in schema.foreign_keys:
            self._validate_reference(schema, ref.table, ref.column)

    def _validate_reference(self, schema: TableSchema, table: str, column: str) -> None:
        # Self references resolve against the table being defined.
        if table == schema.name:
            target: TableSchema | None = schema
        else:
            target = self._tables.get(table)
        if target is None:
            raise InvalidSchemaError(
                f"Table '{schema.name}' references unknown table '{table}'"
            )
        if not target.has_column(column):
            raise InvalidSchemaError(
                f"Table '{schema.name}' references unknown column '{table}.{column}'"
            )

