"""Pytest configuration and fixtures for minirel tests."""

from __future__ import annotations

from typing import Generator

import pytest
from prometheus_client import CollectorRegistry

from minirel import Column, DataType, connect
from minirel.application import Connection
from minirel.domain.entities import ForeignKeyRef
from minirel.domain.services import Catalog, OverlayTransactionManager, TableStore
from minirel.infrastructure.config import Config, EngineConfig
from minirel.infrastructure.metrics import MetricsRegistry


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture
def test_config() -> Config:
    """Provide a test configuration with a small connection limit."""
    return Config(engine=EngineConfig(max_connections=4))


@pytest.fixture
def conn(
    test_config: Config, metrics_registry: MetricsRegistry
) -> Generator[Connection, None, None]:
    """Provide an autocommit connection to a private database."""
    c = connect(":memory:", config=test_config, metrics=metrics_registry)
    yield c
    c.close()


@pytest.fixture
def catalog() -> Catalog:
    """Provide a catalog with `user` and `account` tables."""
    c = Catalog()
    c.define_table(
        "user",
        [
            Column("id", DataType.INTEGER, primary_key=True),
            Column("firstName", DataType.VARCHAR, nullable=False),
        ],
    )
    c.define_table(
        "account",
        [
            Column("id", DataType.INTEGER, primary_key=True),
            Column("owner", DataType.INTEGER, references=ForeignKeyRef("user", "id")),
            Column("balance", DataType.INTEGER, nullable=False),
        ],
    )
    return c


@pytest.fixture
def store(catalog: Catalog) -> TableStore:
    """Provide an empty table store over the test catalog."""
    return TableStore(catalog)


@pytest.fixture
def txn_manager(store: TableStore) -> OverlayTransactionManager:
    """Provide a transaction manager over the test store."""
    return OverlayTransactionManager(store)


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
