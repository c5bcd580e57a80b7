"""Inbound ports - API contracts for the engine.

Inbound ports define the interfaces that the executor and connection
layer use to interact with row storage and the transaction manager.
"""

from minirel.ports.inbound.row_store import RowStore
from minirel.ports.inbound.transaction_manager import (
    Transaction,
    TransactionManager,
    TransactionStats,
)

__all__ = [
    # Row Store
    "RowStore",
    # Transaction Manager
    "Transaction",
    "TransactionManager",
    "TransactionStats",
]
