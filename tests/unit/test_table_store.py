"""Unit tests for the TableStore."""

from __future__ import annotations

import pytest

from minirel.domain.errors import (
    DataTypeError,
    ForeignKeyViolation,
    NotFoundError,
    NotNullViolation,
    PrimaryKeyViolation,
    UnknownTableError,
)
from minirel.domain.services import Catalog, TableStore


@pytest.mark.unit
class TestTableStoreInsert:
    """Insert and scan tests."""

    def test_scan_in_insertion_order(self, store: TableStore) -> None:
        """Rows come back in the order they were inserted."""
        store.insert("user", (47, "Josh"))
        store.insert("user", (32, "Neha"))
        store.insert("user", (40, "Carlos"))

        assert list(store.scan("user")) == [(47, "Josh"), (32, "Neha"), (40, "Carlos")]

    def test_insert_returns_key(self, store: TableStore) -> None:
        assert store.insert("user", (32, "Neha")) == 32
        assert store.get("user", 32) == (32, "Neha")
        assert store.contains("user", 32)

    def test_duplicate_key_leaves_table_unchanged(self, store: TableStore) -> None:
        store.insert("user", (32, "Neha"))

        with pytest.raises(PrimaryKeyViolation) as exc_info:
            store.insert("user", (32, "Someone Else"))

        assert exc_info.value.key == 32
        assert store.count("user") == 1
        assert store.get("user", 32) == (32, "Neha")

    def test_not_null(self, store: TableStore) -> None:
        with pytest.raises(NotNullViolation):
            store.insert("user", (1, None))
        assert store.count("user") == 0

    def test_type_mismatch(self, store: TableStore) -> None:
        with pytest.raises(DataTypeError):
            store.insert("user", ("one", "Neha"))

    def test_unknown_table(self, store: TableStore) -> None:
        with pytest.raises(UnknownTableError):
            store.insert("ghost", (1,))
        with pytest.raises(UnknownTableError):
            store.scan("ghost")

    def test_foreign_key_checked(self, store: TableStore) -> None:
        with pytest.raises(ForeignKeyViolation) as exc_info:
            store.insert("account", (1, 99, 100))

        assert exc_info.value.ref_table == "user"
        assert store.count("account") == 0

    def test_foreign_key_satisfied(self, store: TableStore) -> None:
        store.insert("user", (32, "Neha"))
        store.insert("account", (1, 32, 100))
        store.insert("account", (2, None, 0))  # NULL references nothing

        assert store.count("account") == 2

    def test_scan_is_a_snapshot(self, store: TableStore) -> None:
        """An iterator handed out by scan() ignores later writes."""
        store.insert("user", (1, "A"))
        rows = store.scan("user")
        store.insert("user", (2, "B"))

        assert list(rows) == [(1, "A")]


@pytest.mark.unit
class TestTableStoreUpdateDelete:
    """Update and delete tests."""

    @pytest.fixture
    def populated(self, store: TableStore) -> TableStore:
        store.insert("user", (32, "Neha"))
        store.insert("user", (40, "Carlos"))
        store.insert("user", (47, "Josh"))
        return store

    def test_update(self, populated: TableStore) -> None:
        new_row = populated.update("user", 40, lambda row: (row[0], "Carl"))

        assert new_row == (40, "Carl")
        assert list(populated.scan("user"))[1] == (40, "Carl")

    def test_update_missing_key(self, populated: TableStore) -> None:
        with pytest.raises(NotFoundError):
            populated.update("user", 99, lambda row: row)

    def test_update_changing_key_keeps_position(self, populated: TableStore) -> None:
        populated.update("user", 40, lambda row: (41, row[1]))

        assert [r[0] for r in populated.scan("user")] == [32, 41, 47]
        assert populated.get("user", 40) is None

    def test_update_key_collision(self, populated: TableStore) -> None:
        with pytest.raises(PrimaryKeyViolation):
            populated.update("user", 40, lambda row: (32, row[1]))
        assert populated.get("user", 40) == (40, "Carlos")

    def test_update_validates_row(self, populated: TableStore) -> None:
        with pytest.raises(NotNullViolation):
            populated.update("user", 40, lambda row: (40, None))
        assert populated.get("user", 40) == (40, "Carlos")

    def test_delete(self, populated: TableStore) -> None:
        assert populated.delete("user", 40) == (40, "Carlos")
        assert [r[0] for r in populated.scan("user")] == [32, 47]

    def test_delete_missing_key(self, populated: TableStore) -> None:
        with pytest.raises(NotFoundError):
            populated.delete("user", 99)


@pytest.mark.unit
class TestTableStoreCopies:
    """clone() and adopt() tests."""

    def test_clone_is_isolated(self, store: TableStore) -> None:
        store.insert("user", (1, "A"))
        copy = store.clone()
        copy.insert("user", (2, "B"))
        copy.delete("user", 1)

        assert list(store.scan("user")) == [(1, "A")]
        assert list(copy.scan("user")) == [(2, "B")]

    def test_adopt(self, store: TableStore) -> None:
        copy = store.clone()
        copy.insert("user", (1, "A"))
        store.adopt(copy)

        assert store.count("user") == 1

    def test_adopt_rejects_foreign_catalog(self, store: TableStore) -> None:
        with pytest.raises(ValueError):
            store.adopt(TableStore(Catalog()))

    def test_discard_table(self, store: TableStore) -> None:
        store.insert("user", (1, "A"))
        assert store.discard_table("user") == 1
        assert store.count("user") == 0
