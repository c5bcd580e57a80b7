"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts:
- Inbound ports: APIs offered to upper layers (RowStore, TransactionManager)

Domain services implement these ports with concrete functionality.
"""

from minirel.ports.inbound import (
    RowStore,
    Transaction,
    TransactionManager,
    TransactionStats,
)

__all__ = [
    # Inbound ports
    "RowStore",
    "Transaction",
    "TransactionManager",
    "TransactionStats",
]
