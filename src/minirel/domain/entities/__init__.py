"""Domain entities for the engine.

Exports:
    Schema:
        - DataType: Declared column types and value coercion
        - Column: Column definition
        - ForeignKeyRef: (table, column) reference target
        - TableSchema: Ordered columns and primary key of a table

    Rows:
        - Row: Result row addressable by index or column name

    Overlay:
        - Overlay: Staged writes of a transaction
        - StagedInsert, StagedUpdate, StagedDelete: Staged operations
"""

from minirel.domain.entities.overlay import (
    Overlay,
    RowMutator,
    StagedDelete,
    StagedInsert,
    StagedOperation,
    StagedUpdate,
)
from minirel.domain.entities.row import Row
from minirel.domain.entities.schema import Column, DataType, ForeignKeyRef, TableSchema

__all__ = [
    # Schema
    "DataType",
    "Column",
    "ForeignKeyRef",
    "TableSchema",
    # Rows
    "Row",
    # Overlay
    "Overlay",
    "RowMutator",
    "StagedOperation",
    "StagedInsert",
    "StagedUpdate",
    "StagedDelete",
]
