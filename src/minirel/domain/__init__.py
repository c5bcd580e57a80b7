"""Domain layer: schemas, rows, overlays, storage and transactions."""
