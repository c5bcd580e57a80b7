"""Domain services for business logic.

Services implement domain logic that doesn't naturally fit within a
single entity: the catalog of schemas, keyed row storage with
constraint checks, and the transaction lifecycle.
"""

from minirel.domain.services.catalog import Catalog
from minirel.domain.services.table_store import TableStore
from minirel.domain.services.transaction_manager import OverlayTransactionManager

__all__ = [
    "Catalog",
    "OverlayTransactionManager",
    "TableStore",
]
