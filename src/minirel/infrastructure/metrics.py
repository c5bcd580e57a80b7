"""Prometheus metrics for minirel."""

from __future__ import annotations

from typing import TYPE_CHECKING

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
    REGISTRY,
    CollectorRegistry,
)

if TYPE_CHECKING:
    from minirel.infrastructure.config import ObservabilityConfig


class MetricsRegistry:
    """Registry of all minirel metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Statement metrics
        self.statements_total = Counter(
            "minirel_statements_total",
            "Total number of statements executed",
            ["kind", "status"],  # status: success, error
            registry=self._registry,
        )

        self.statement_latency_seconds = Histogram(
            "minirel_statement_latency_seconds",
            "Statement latency in seconds",
            ["kind"],  # ddl, insert, update, delete, select, transaction
            buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
            registry=self._registry,
        )

        # Transaction metrics
        self.transactions_total = Counter(
            "minirel_transactions_total",
            "Total number of finished transactions",
            ["status"],  # committed, rolled_back
            registry=self._registry,
        )

        self.transactions_active = Gauge(
            "minirel_transactions_active",
            "Number of active transactions",
            registry=self._registry,
        )

        # Resource metrics
        self.connections_open = Gauge(
            "minirel_connections_open",
            "Number of open connections",
            registry=self._registry,
        )

        self.cursors_open = Gauge(
            "minirel_cursors_open",
            "Number of open cursors",
            registry=self._registry,
        )

        self.info = Info(
            "minirel",
            "minirel engine information",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8001, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up Prometheus metrics server.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    _metrics = MetricsRegistry(registry)

    from minirel import __version__
    _metrics.info.info({
        "version": __version__,
    })

    # Start HTTP server for Prometheus scraping
    start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics


def configure_metrics(config: ObservabilityConfig) -> MetricsRegistry:
    """Expose metrics on the port from the observability section of the config."""
    return setup_metrics(port=config.metrics_port)
