"""Transaction Manager port for the transaction lifecycle.

This inbound port defines the contract for transaction management:
begin, commit and rollback of overlay-based transactions.

Key responsibilities:
- Manage transaction lifecycle
- Enforce one active transaction per connection and per database
- Apply overlays atomically at commit
- Provide read views that include a transaction's own staged writes
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Protocol

from minirel.domain.entities import Overlay, StagedOperation
from minirel.domain.value_objects import ConnectionId, TransactionId, TransactionState
from minirel.ports.inbound.row_store import RowStore


@dataclass
class Transaction:
    """A database transaction.

    The transaction owns an overlay of staged writes. Nothing in the
    overlay is visible to other connections until commit applies it.
    """

    txn_id: TransactionId
    owner: ConnectionId
    state: TransactionState = TransactionState.ACTIVE
    implicit: bool = False
    overlay: Overlay = field(default_factory=Overlay)
    started_at: float = 0.0

    def is_active(self) -> bool:
        """Return True if transaction can still stage operations."""
        return self.state == TransactionState.ACTIVE

    def is_terminal(self) -> bool:
        """Return True if transaction has ended."""
        return self.state.is_terminal()

    def stage(self, operation: StagedOperation) -> None:
        """Add a write to the overlay.

        Raises:
            ValueError: If the transaction is no longer active.
        """
        if not self.is_active():
            raise ValueError(f"Transaction {self.txn_id} is not active")
        self.overlay.stage(operation)


@dataclass
class TransactionStats:
    """Statistics for transaction monitoring."""

    active_count: int
    committed_total: int
    rolled_back_total: int
    avg_duration_ms: float


class TransactionManager(Protocol):
    """Protocol for transaction management.

    Single-writer model: at most one transaction is active per database.
    """

    @abstractmethod
    def begin(self, owner: ConnectionId, implicit: bool = False) -> Transaction:
        """Begin a new transaction for a connection.

        Raises:
            TransactionAlreadyActiveError: If a transaction is already active.
        """
        ...

    @abstractmethod
    def commit(self, txn: Transaction) -> int:
        """Apply the overlay atomically and return the operations applied.

        Raises:
            ConstraintError: If any staged write fails; the transaction is
                rolled back before the error propagates.
        """
        ...

    @abstractmethod
    def rollback(self, txn: Transaction) -> None:
        """Discard the overlay."""
        ...

    @abstractmethod
    def read_view(self, txn: Transaction | None) -> RowStore:
        """Return the rows visible to a transaction (committed rows if None)."""
        ...

    @abstractmethod
    def get_stats(self) -> TransactionStats:
        """Return transaction statistics for monitoring."""
        ...
