"""Table Store: in-memory row storage keyed by primary key.

Each table is a mapping from primary key value to row tuple. Python
dicts keep insertion order, so a scan yields rows in the order they
were inserted; updates keep a row in place.

Constraint checks happen on every write:
    - Column types and NOT NULL (via the table schema)
    - Primary key uniqueness
    - Foreign keys (at insert/update time only, never retroactively)

A write either fully succeeds or leaves the table unchanged.
"""

from __future__ import annotations

from typing import Any, Iterator

from minirel.domain.entities import RowMutator, TableSchema
from minirel.domain.errors import ForeignKeyViolation, NotFoundError, PrimaryKeyViolation
from minirel.domain.services.catalog import Catalog


class TableStore:
    """Keyed row storage for all tables of one database.

    Row storage for a table is created lazily on first access, so DDL only
    touches the catalog. Working copies made with clone() share the
    catalog but not the row mappings.

    Usage:
        store = TableStore(catalog)
        key = store.insert("user", (32, "Neha"))
        store.update("user", key, lambda row: (row[0], "Neha K."))
        for row in store.scan("user"):
            ...
    """

    def __init__(
        self,
        catalog: Catalog,
        tables: dict[str, dict[Any, tuple[Any, ...]]] | None = None,
    ) -> None:
        self._catalog = catalog
        self._tables: dict[str, dict[Any, tuple[Any, ...]]] = tables if tables is not None else {}

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    def insert(self, table: str, row: tuple[Any, ...]) -> Any:
        """Insert a row.

        Args:
            table: Table name.
            row: Full-width row in column order.

        Returns:
            The primary key of the inserted row.

        Raises:
            UnknownTableError: If the table is not defined.
            PrimaryKeyViolation: If the key already exists.
            ForeignKeyViolation: If a referenced key is missing.
            NotNullViolation: If a NOT NULL column receives NULL.
            DataTypeError: If a value does not fit its column.
        """
        schema = self._catalog.lookup(table)
        values = self.check_insert(table, row)
        key = schema.key_of(values)
        self._rows_for(schema)[key] = values
        return key

    def check_insert(self, table: str, row: tuple[Any, ...]) -> tuple[Any, ...]:
        """Validate a row as insert() would, without storing it.

        Returns:
            The coerced row.

        Raises:
            The same errors as insert().
        """
        schema = self._catalog.lookup(table)
        values = schema.validate_row(row)
        key = schema.key_of(values)
        if key in self._rows_for(schema):
            raise PrimaryKeyViolation(table, key)
        self._check_references(schema, values)
        return values

    def update(self, table: str, key: Any, mutator: RowMutator) -> tuple[Any, ...]:
        """Replace a row with the result of mutator(current_row).

        If the mutator changes the primary key the row keeps its position
        in scan order.

        Returns:
            The new row.

        Raises:
            NotFoundError: If no row has the key.
            PrimaryKeyViolation: If the new key collides with another row.
            ForeignKeyViolation: If a referenced key is missing.
        """
        schema = self._catalog.lookup(table)
        rows = self._rows_for(schema)
        if key not in rows:
            raise NotFoundError(table, key)

        values = schema.validate_row(mutator(rows[key]))
        new_key = schema.key_of(values)
        if new_key != key and new_key in rows:
            raise PrimaryKeyViolation(table, new_key)
        self._check_references(schema, values)

        if new_key == key:
            rows[key] = values
        else:
            self._tables[table] = {
                (new_key if k == key else k): (values if k == key else v)
                for k, v in rows.items()
            }
        return values

    def delete(self, table: str, key: Any) -> tuple[Any, ...]:
        """Remove a row.

        Returns:
            The removed row.

        Raises:
            NotFoundError: If no row has the key.
        """
        rows = self._rows_for(self._catalog.lookup(table))
        try:
            return rows.pop(key)
        except KeyError:
            raise NotFoundError(table, key) from None

    def get(self, table: str, key: Any) -> tuple[Any, ...] | None:
        return self._rows_for(self._catalog.lookup(table)).get(key)

    def contains(self, table: str, key: Any) -> bool:
        return key in self._rows_for(self._catalog.lookup(table))

    def count(self, table: str) -> int:
        return len(self._rows_for(self._catalog.lookup(table)))

    def scan(self, table: str) -> Iterator[tuple[Any, ...]]:
        """Return a single-pass iterator over all rows in insertion order.

        The rows are fixed when scan() is called; later writes do not
        affect an iterator already handed out. Call scan() again for a
        new pass.

        Raises:
            UnknownTableError: If the table is not defined.
        """
        rows = self._rows_for(self._catalog.lookup(table))
        return iter(list(rows.values()))

    def discard_table(self, table: str) -> int:
        """Drop the rows of a table. Returns the number of rows removed."""
        return len(self._tables.pop(table, {}))

    def clone(self) -> TableStore:
        """Return a working copy sharing the catalog.

        Rows are immutable tuples, so copying each table's mapping is
        enough to isolate the copy.
        """
        return TableStore(
            self._catalog,
            {name: dict(rows) for name, rows in self._tables.items()},
        )

    def adopt(self, other: TableStore) -> None:
        """Install the rows of a working copy made by clone().

        Raises:
            ValueError: If the copy belongs to another catalog.
        """
        if other.catalog is not self._catalog:
            raise ValueError("Cannot adopt rows from a store with a different catalog")
        self._tables = other._tables

    def _rows_for(self, schema: TableSchema) -> dict[Any, tuple[Any, ...]]:
        return self._tables.setdefault(schema.name, {})

    def _check_references(self, schema: TableSchema, values: tuple[Any, ...]) -> None:
        for idx, ref in schema.foreign_keys:
            value = values[idx]
            if value is None:
                continue
            # A row may reference itself.
            if ref.table == schema.name and values[schema.index_of(ref.column)] == value:
                continue
            if not self._has_value(ref.table, ref.column, value):
                raise ForeignKeyViolation(
                    schema.name, schema.columns[idx].name, ref.table, value
                )

    def _has_value(self, table: str, column: str, value: Any) -> bool:
        target = self._catalog.lookup(table)
        rows = self._rows_for(target)
        col_idx = target.index_of(column)
        if target.primary_key_indexes == [col_idx]:
            return value in rows
        return any(row[col_idx] == value for row in rows.values())
