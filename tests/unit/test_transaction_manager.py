"""Unit tests for the Overlay and OverlayTransactionManager."""

from __future__ import annotations

import pytest

from minirel.domain.entities import Overlay, StagedDelete, StagedInsert, StagedUpdate
from minirel.domain.errors import (
    ForeignKeyViolation,
    NotFoundError,
    PrimaryKeyViolation,
    TransactionAlreadyActiveError,
)
from minirel.domain.services import OverlayTransactionManager, TableStore
from minirel.domain.value_objects import ConnectionId, TransactionId, TransactionState


def _debit(amount: int):
    return lambda row: (row[0], row[1], row[2] - amount)


def _credit(amount: int):
    return lambda row: (row[0], row[1], row[2] + amount)


@pytest.mark.unit
class TestOverlay:
    """Tests for staged operation replay."""

    def test_apply_in_order(self, store: TableStore) -> None:
        overlay = Overlay()
        overlay.stage(StagedInsert("user", (1, "A")))
        overlay.stage(StagedUpdate("user", 1, lambda row: (1, "B")))

        assert overlay.apply(store) == 2
        assert store.get("user", 1) == (1, "B")

    def test_strict_apply_raises(self, store: TableStore) -> None:
        overlay = Overlay()
        overlay.stage(StagedDelete("user", 1))

        with pytest.raises(NotFoundError):
            overlay.apply(store)

    def test_lenient_apply_skips_failures(self, store: TableStore) -> None:
        overlay = Overlay()
        overlay.stage(StagedInsert("user", (1, "A")))
        overlay.stage(StagedInsert("user", (1, "dup")))
        overlay.stage(StagedInsert("user", (2, "B")))

        assert overlay.apply(store, strict=False) == 2
        assert list(store.scan("user")) == [(1, "A"), (2, "B")]


@pytest.mark.unit
class TestTransactionManagerBasic:
    """Basic transaction manager tests."""

    def test_begin_transaction(self, txn_manager: OverlayTransactionManager) -> None:
        """Transaction can be started."""
        txn = txn_manager.begin(ConnectionId(1))

        assert txn.txn_id == TransactionId(1)
        assert txn.owner == ConnectionId(1)
        assert txn.state == TransactionState.ACTIVE
        assert txn_manager.active_transaction is txn

    def test_transaction_ids_increase(self, txn_manager: OverlayTransactionManager) -> None:
        txn1 = txn_manager.begin(ConnectionId(1))
        txn_manager.rollback(txn1)
        txn2 = txn_manager.begin(ConnectionId(1))

        assert txn2.txn_id == TransactionId(2)

    def test_second_begin_same_owner(self, txn_manager: OverlayTransactionManager) -> None:
        txn_manager.begin(ConnectionId(1))
        with pytest.raises(TransactionAlreadyActiveError):
            txn_manager.begin(ConnectionId(1))

    def test_single_writer(self, txn_manager: OverlayTransactionManager) -> None:
        """Another connection cannot begin while a transaction is active."""
        txn_manager.begin(ConnectionId(1))
        with pytest.raises(TransactionAlreadyActiveError, match="locked"):
            txn_manager.begin(ConnectionId(2))

    def test_commit_applies_overlay(
        self, txn_manager: OverlayTransactionManager, store: TableStore
    ) -> None:
        txn = txn_manager.begin(ConnectionId(1))
        txn.stage(StagedInsert("user", (32, "Neha")))

        assert store.count("user") == 0
        assert txn_manager.commit(txn) == 1
        assert store.get("user", 32) == (32, "Neha")
        assert txn.state == TransactionState.COMMITTED
        assert txn_manager.active_transaction is None

    def test_rollback_discards_overlay(
        self, txn_manager: OverlayTransactionManager, store: TableStore
    ) -> None:
        txn = txn_manager.begin(ConnectionId(1))
        txn.stage(StagedInsert("user", (32, "Neha")))
        txn_manager.rollback(txn)

        assert store.count("user") == 0
        assert txn.state == TransactionState.ROLLED_BACK
        assert len(txn.overlay) == 0

    def test_terminal_transaction_rejects_work(
        self, txn_manager: OverlayTransactionManager
    ) -> None:
        txn = txn_manager.begin(ConnectionId(1))
        txn_manager.commit(txn)

        with pytest.raises(ValueError):
            txn_manager.commit(txn)
        with pytest.raises(ValueError):
            txn_manager.rollback(txn)
        with pytest.raises(ValueError):
            txn.stage(StagedInsert("user", (1, "A")))


@pytest.mark.unit
class TestTransactionManagerAtomicity:
    """All-or-nothing commit tests."""

    @pytest.fixture
    def funded(self, store: TableStore) -> TableStore:
        store.insert("user", (32, "Neha"))
        store.insert("account", (1, 32, 100))
        store.insert("account", (2, 32, 50))
        return store

    def test_transfer_commits_atomically(
        self, txn_manager: OverlayTransactionManager, funded: TableStore
    ) -> None:
        txn = txn_manager.begin(ConnectionId(1))
        txn.stage(StagedUpdate("account", 1, _debit(30)))
        txn.stage(StagedUpdate("account", 2, _credit(30)))
        txn_manager.commit(txn)

        assert funded.get("account", 1) == (1, 32, 70)
        assert funded.get("account", 2) == (2, 32, 80)

    def test_failed_commit_restores_prior_state(
        self, txn_manager: OverlayTransactionManager, funded: TableStore
    ) -> None:
        """A transfer to a missing account leaves every balance untouched."""
        before = {name: list(funded.scan(name)) for name in ("user", "account")}

        txn = txn_manager.begin(ConnectionId(1))
        txn.stage(StagedUpdate("account", 1, _debit(30)))
        txn.stage(StagedUpdate("account", 99, _credit(30)))

        with pytest.raises(NotFoundError):
            txn_manager.commit(txn)

        assert {name: list(funded.scan(name)) for name in ("user", "account")} == before
        assert txn.state == TransactionState.ROLLED_BACK
        assert txn_manager.active_transaction is None

    def test_constraint_failure_surfaces_at_commit(
        self, txn_manager: OverlayTransactionManager, funded: TableStore
    ) -> None:
        txn = txn_manager.begin(ConnectionId(1))
        txn.stage(StagedInsert("account", (3, 99, 0)))

        with pytest.raises(ForeignKeyViolation):
            txn_manager.commit(txn)
        assert funded.count("account") == 2

    def test_unexpected_error_releases_writer_slot(
        self, txn_manager: OverlayTransactionManager, funded: TableStore
    ) -> None:
        def explode(row):
            raise RuntimeError("mutator failed")

        txn = txn_manager.begin(ConnectionId(1))
        txn.stage(StagedUpdate("account", 1, _debit(30)))
        txn.stage(StagedUpdate("account", 2, explode))

        with pytest.raises(RuntimeError):
            txn_manager.commit(txn)

        assert txn.state == TransactionState.ROLLED_BACK
        assert txn_manager.active_transaction is None
        assert funded.get("account", 1) == (1, 32, 100)
        txn_manager.begin(ConnectionId(2))

    def test_manager_usable_after_failed_commit(
        self, txn_manager: OverlayTransactionManager, funded: TableStore
    ) -> None:
        txn = txn_manager.begin(ConnectionId(1))
        txn.stage(StagedInsert("user", (32, "dup")))
        with pytest.raises(PrimaryKeyViolation):
            txn_manager.commit(txn)

        txn = txn_manager.begin(ConnectionId(2))
        txn.stage(StagedInsert("user", (40, "Carlos")))
        txn_manager.commit(txn)
        assert funded.count("user") == 2


@pytest.mark.unit
class TestReadView:
    """Tests for a transaction's view of the data."""

    def test_view_includes_staged_writes(
        self, txn_manager: OverlayTransactionManager, store: TableStore
    ) -> None:
        txn = txn_manager.begin(ConnectionId(1))
        txn.stage(StagedInsert("user", (32, "Neha")))

        view = txn_manager.read_view(txn)

        assert view.get("user", 32) == (32, "Neha")
        assert txn_manager.read_view(None).get("user", 32) is None
        assert store.count("user") == 0

    def test_view_without_writes_is_committed_store(
        self, txn_manager: OverlayTransactionManager, store: TableStore
    ) -> None:
        txn = txn_manager.begin(ConnectionId(1))
        assert txn_manager.read_view(txn) is store


@pytest.mark.unit
class TestTransactionStats:
    """Tests for statistics."""

    def test_stats(self, txn_manager: OverlayTransactionManager) -> None:
        txn = txn_manager.begin(ConnectionId(1))
        assert txn_manager.get_stats().active_count == 1
        txn_manager.commit(txn)

        txn = txn_manager.begin(ConnectionId(1))
        txn_manager.rollback(txn)

        stats = txn_manager.get_stats()
        assert stats.active_count == 0
        assert stats.committed_total == 1
        assert stats.rolled_back_total == 1
        assert stats.avg_duration_ms >= 0.0
