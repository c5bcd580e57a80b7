"""Transaction Manager for overlay-based transactions.

This module implements the transaction manager, which coordinates:
- Transaction lifecycle (begin, commit, rollback)
- The single-writer slot of a database
- All-or-nothing application of a transaction's overlay

Commit protocol:
    1. Mark the transaction COMMITTING
    2. Clone the table store and replay the overlay on the clone
    3. If every staged write applies, install the clone (COMMITTED)
    4. Otherwise discard the clone and mark the transaction ROLLED_BACK
       before re-raising the original violation

Readers outside the transaction only ever see the committed store, so
the overlay is invisible to them until step 3.
"""

from __future__ import annotations

import threading
import time

from minirel.domain.errors import TransactionAlreadyActiveError
from minirel.domain.services.table_store import TableStore
from minirel.domain.value_objects import ConnectionId, TransactionId, TransactionState
from minirel.ports.inbound.transaction_manager import Transaction, TransactionStats


class OverlayTransactionManager:
    """Single-writer transaction manager.

    Usage:
        txn_mgr = OverlayTransactionManager(store)
        txn = txn_mgr.begin(ConnectionId(1))
        txn.stage(StagedInsert("user", (32, "Neha")))
        txn_mgr.commit(txn)

    Only one transaction may be active per database at a time.
    """

    def __init__(self, store: TableStore) -> None:
        """Initialize the transaction manager.

        Args:
            store: The committed table store transactions apply to.
        """
        self._store = store

        self._lock = threading.Lock()
        self._next_txn_id = 1
        self._active: Transaction | None = None

        # Statistics
        self._committed_total = 0
        self._rolled_back_total = 0
        self._total_duration_ms = 0.0

    @property
    def store(self) -> TableStore:
        return self._store

    @property
    def active_transaction(self) -> Transaction | None:
        return self._active

    def begin(self, owner: ConnectionId, implicit: bool = False) -> Transaction:
        """Begin a new transaction.

        Args:
            owner: The connection opening the transaction.
            implicit: True for the single-statement transactions of
                autocommit mode.

        Returns:
            A new active Transaction.

        Raises:
            TransactionAlreadyActiveError: If the owner already has an
                active transaction, or another connection holds the
                writer slot.
        """
        with self._lock:
            if self._active is not None:
                if self._active.owner == owner:
                    raise TransactionAlreadyActiveError(
                        f"Connection {owner} already has active transaction "
                        f"{self._active.txn_id}"
                    )
                raise TransactionAlreadyActiveError(
                    f"Database is locked by transaction {self._active.txn_id} "
                    f"of connection {self._active.owner}"
                )

            txn = Transaction(
                txn_id=TransactionId(self._next_txn_id),
                owner=owner,
                implicit=implicit,
                started_at=time.time(),
            )
            self._next_txn_id += 1
            self._active = txn

        return txn

    def commit(self, txn: Transaction) -> int:
        """Commit a transaction.

        Args:
            txn: The transaction to commit.

        Returns:
            Number of staged operations applied.

        Raises:
            ValueError: If transaction is not active.
            ConstraintError, SchemaError, StatementError: If a staged write
                fails. The transaction is ROLLED_BACK when this propagates
                and the committed store is untouched.
        """
        if not txn.state.can_commit():
            raise ValueError(f"Transaction {txn.txn_id} is not active")

        txn.state = TransactionState.COMMITTING

        working = self._store.clone()
        try:
            applied = txn.overlay.apply(working, strict=True)
        except Exception:
            self._finish(txn, TransactionState.ROLLED_BACK)
            raise

        self._store.adopt(working)
        self._finish(txn, TransactionState.COMMITTED)
        return applied

    def rollback(self, txn: Transaction) -> None:
        """Discard a transaction's overlay.

        Raises:
            ValueError: If transaction is not active.
        """
        if not txn.state.can_rollback():
            raise ValueError(f"Transaction {txn.txn_id} is not active")

        self._finish(txn, TransactionState.ROLLED_BACK)

    def read_view(self, txn: Transaction | None) -> TableStore:
        """Return the rows visible to a transaction.

        Without a transaction, or with an empty overlay, this is the
        committed store itself. Otherwise it is a copy of the committed
        store with the transaction's staged writes replayed on top.
        """
        if txn is None or not txn.is_active() or len(txn.overlay) == 0:
            return self._store
        view = self._store.clone()
        txn.overlay.apply(view, strict=False)
        return view

    def get_stats(self) -> TransactionStats:
        """Return transaction statistics for monitoring."""
        with self._lock:
            total = self._committed_total + self._rolled_back_total

            if total > 0:
                avg_duration = self._total_duration_ms / total
            else:
                avg_duration = 0.0

            return TransactionStats(
                active_count=1 if self._active is not None else 0,
                committed_total=self._committed_total,
                rolled_back_total=self._rolled_back_total,
                avg_duration_ms=avg_duration,
            )

    def _finish(self, txn: Transaction, state: TransactionState) -> None:
        txn.state = state
        txn.overlay.clear()

        with self._lock:
            if self._active is txn:
                self._active = None
            if state == TransactionState.COMMITTED:
                self._committed_total += 1
            else:
                self._rolled_back_total += 1
            self._total_duration_ms += (time.time() - txn.started_at) * 1000
