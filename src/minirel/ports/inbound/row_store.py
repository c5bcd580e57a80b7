"""Row Store port for keyed in-memory table storage.

This inbound port defines the contract the transaction overlay is
replayed against. The table store implements it for committed data
and for the working copies built during commit and for read views.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Iterator, Protocol

from minirel.domain.entities import RowMutator


class RowStore(Protocol):
    """Protocol for keyed row storage.

    Rows are tuples aligned to their table's column order and keyed by
    primary key value. Every write is atomic: a failing write leaves the
    table unchanged.
    """

    @abstractmethod
    def insert(self, table: str, row: tuple[Any, ...]) -> Any:
        """Insert a row and return its primary key.

        Raises:
            PrimaryKeyViolation: If the key already exists.
            ForeignKeyViolation: If a referenced key is missing.
            NotNullViolation: If a NOT NULL column receives NULL.
        """
        ...

    @abstractmethod
    def update(self, table: str, key: Any, mutator: RowMutator) -> tuple[Any, ...]:
        """Replace the row stored under key with mutator(row).

        Raises:
            NotFoundError: If no row has the key.
        """
        ...

    @abstractmethod
    def delete(self, table: str, key: Any) -> tuple[Any, ...]:
        """Remove and return the row stored under key.

        Raises:
            NotFoundError: If no row has the key.
        """
        ...

    @abstractmethod
    def get(self, table: str, key: Any) -> tuple[Any, ...] | None:
        """Return the row stored under key, or None."""
        ...

    @abstractmethod
    def scan(self, table: str) -> Iterator[tuple[Any, ...]]:
        """Return a single-pass iterator over all rows in insertion order."""
        ...
