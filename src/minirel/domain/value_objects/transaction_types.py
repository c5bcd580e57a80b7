"""Transaction-related types and enumerations."""

from __future__ import annotations

from enum import Enum, auto


class TransactionState(Enum):
    """Transaction lifecycle states.

    State machine:

        begin() ──> ACTIVE
                      │
              ┌───────┴────────┐
              │                │
          commit()        rollback()
              │                │
              v                │
          COMMITTING ──fail──> │
              │                v
              v           ROLLED_BACK
          COMMITTED

    COMMITTING covers the window in which the overlay is being applied
    to a working copy of the table store. A constraint failure in that
    window moves the transaction to ROLLED_BACK.
    """

    ACTIVE = auto()
    """Transaction is open and staging writes."""

    COMMITTING = auto()
    """Overlay is being applied to the table store."""

    COMMITTED = auto()
    """All staged writes are visible."""

    ROLLED_BACK = auto()
    """Staged writes were discarded."""

    def is_terminal(self) -> bool:
        """Check if this is a terminal state (COMMITTED or ROLLED_BACK)."""
        return self in (TransactionState.COMMITTED, TransactionState.ROLLED_BACK)

    def is_active(self) -> bool:
        """Check if transaction can still stage operations."""
        return self == TransactionState.ACTIVE

    def can_commit(self) -> bool:
        return self == TransactionState.ACTIVE

    def can_rollback(self) -> bool:
        return self in (TransactionState.ACTIVE, TransactionState.COMMITTING)
