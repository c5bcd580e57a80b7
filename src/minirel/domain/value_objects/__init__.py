"""Value objects for the engine domain.

Value objects are immutable types that represent domain concepts.
They have no identity - two value objects with the same attributes are equal.

Exports:
    Identifiers:
        - TransactionId: Type-safe transaction identifier
        - ConnectionId: Type-safe connection identifier
        - INVALID_TXN_ID, INVALID_CONNECTION_ID: Sentinel values

    Transaction Types:
        - TransactionState: Transaction lifecycle states (ACTIVE, COMMITTED, etc.)
"""

from minirel.domain.value_objects.identifiers import (
    INVALID_CONNECTION_ID,
    INVALID_TXN_ID,
    ConnectionId,
    TransactionId,
)
from minirel.domain.value_objects.transaction_types import TransactionState

__all__ = [
    # Identifiers
    "TransactionId",
    "ConnectionId",
    "INVALID_TXN_ID",
    "INVALID_CONNECTION_ID",
    # Transaction types
    "TransactionState",
]
