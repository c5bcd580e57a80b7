"""Cursor over the rows of a SELECT.

A cursor wraps the root operator of a query pipeline. The rows were
snapshotted when the query executed; the cursor pulls them through the
pipeline one at a time and can be consumed once.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Iterator

from minirel.domain.entities import Row
from minirel.domain.errors import CursorNotPositionedError, ResourceClosedError

if TYPE_CHECKING:
    from minirel.application.executor import Operator


class Cursor:
    """Forward-only, single-pass result cursor.

    Usage:
        cursor = conn.execute("SELECT id, firstName FROM users").cursor
        while cursor.advance():
            print(cursor.current_value("id"), cursor.current_value(1))

    Also iterable:
        for row in cursor:
            print(row["firstName"])
    """

    def __init__(
        self,
        columns: tuple[str, ...],
        operator: Operator,
        on_close: Callable[[Cursor], None] | None = None,
    ) -> None:
        self._columns = columns
        self._operator = operator
        self._on_close = on_close
        self._current: Row | None = None
        self._exhausted = False
        self._closed = False
        self._rownumber = 0

        self._operator.open()

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def rownumber(self) -> int:
        """Number of rows advanced over so far."""
        return self._rownumber

    @property
    def current_row(self) -> Row:
        """The row the cursor is positioned on.

        Raises:
            CursorNotPositionedError: Before the first advance() or after
                the cursor is exhausted.
        """
        self._check_open()
        if self._current is None:
            if self._exhausted:
                raise CursorNotPositionedError("Cursor is exhausted")
            raise CursorNotPositionedError("Cursor is not positioned; call advance() first")
        return self._current

    def advance(self) -> bool:
        """Move to the next row.

        Returns:
            True if positioned on a row, False once the rows are exhausted.
            An exhausted cursor keeps returning False.
        """
        self._check_open()
        if self._exhausted:
            return False

        row = self._operator.next()
        if row is None:
            self._exhausted = True
            self._current = None
            self._operator.close()
            return False

        self._current = row
        self._rownumber += 1
        return True

    def current_value(self, column: int | str) -> Any:
        """Value of a column of the current row, by position or name.

        Raises:
            CursorNotPositionedError: If not positioned on a row.
            IndexError: If the position is out of range.
            KeyError: If no column has the name.
        """
        return self.current_row[column]

    def fetchone(self) -> Row | None:
        if self.advance():
            return self._current
        return None

    def fetchall(self) -> list[Row]:
        return list(self)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._current = None
        if not self._exhausted:
            self._exhausted = True
            self._operator.close()
        if self._on_close is not None:
            self._on_close(self)

    def _check_open(self) -> None:
        if self._closed:
            raise ResourceClosedError("Cursor")

    def __iter__(self) -> Iterator[Row]:
        return self

    def __next__(self) -> Row:
        if not self.advance():
            raise StopIteration
        return self._current  # type: ignore[return-value]

    def __enter__(self) -> Cursor:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "exhausted" if self._exhausted else "open"
        return f"Cursor(columns={list(self._columns)}, {state})"
