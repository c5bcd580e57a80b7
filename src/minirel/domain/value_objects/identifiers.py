"""Core identifiers for the engine.

These value objects keep connection and transaction numbers from being
mixed up with plain integers such as row counts or primary key values.
"""

from __future__ import annotations

from typing import NewType


# Type-safe identifiers using NewType for zero-cost runtime abstraction

TransactionId = NewType("TransactionId", int)
"""Unique identifier for a transaction. Monotonically increasing per database."""

ConnectionId = NewType("ConnectionId", int)
"""Unique identifier for a connection. Monotonically increasing per database."""

# Special sentinel values
INVALID_TXN_ID = TransactionId(0)
INVALID_CONNECTION_ID = ConnectionId(0)
