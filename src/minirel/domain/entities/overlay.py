"""Transaction overlay: the staged, not-yet-committed writes of a transaction.

Operations are recorded in the order they were issued and replayed
against a row store when the transaction commits, or when a read view
of the transaction is built.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterator, Union

from minirel.domain.errors import ConstraintError, SchemaError, StatementError

if TYPE_CHECKING:
    from minirel.ports.inbound.row_store import RowStore


RowMutator = Callable[[tuple[Any, ...]], tuple[Any, ...]]


@dataclass(frozen=True)
class StagedInsert:
    """Insert of a full-width row."""

    table: str
    row: tuple[Any, ...]

    def apply(self, store: RowStore) -> None:
        store.insert(self.table, self.row)


@dataclass(frozen=True)
class StagedUpdate:
    """Keyed update; the mutator sees the row current at apply time."""

    table: str
    key: Any
    mutator: RowMutator

    def apply(self, store: RowStore) -> None:
        store.update(self.table, self.key, self.mutator)


@dataclass(frozen=True)
class StagedDelete:
    """Keyed delete."""

    table: str
    key: Any

    def apply(self, store: RowStore) -> None:
        store.delete(self.table, self.key)


StagedOperation = Union[StagedInsert, StagedUpdate, StagedDelete]


class Overlay:
    """Ordered log of staged operations belonging to one transaction."""

    def __init__(self) -> None:
        self._operations: list[StagedOperation] = []

    def stage(self, operation: StagedOperation) -> None:
        self._operations.append(operation)

    def clear(self) -> None:
        self._operations.clear()

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[StagedOperation]:
        return iter(self._operations)

    def apply(self, store: RowStore, strict: bool = True) -> int:
        """Replay the staged operations against a store.

        Args:
            store: The store to mutate, normally a working copy.
            strict: If True the first failing operation raises. If False,
                operations that cannot apply are left out, which is how a
                transaction's own read view is built.

        Returns:
            Number of operations applied.

        Raises:
            ConstraintError, SchemaError, StatementError: In strict mode,
                the first violation encountered.
        """
        applied = 0
        for operation in self._operations:
            if strict:
                operation.apply(store)
            else:
                try:
                    operation.apply(store)
                except (ConstraintError, SchemaError, StatementError):
                    # Surfaces again when the transaction commits.
                    continue
            applied += 1
        return applied
