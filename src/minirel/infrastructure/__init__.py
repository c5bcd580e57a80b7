"""Infrastructure layer - cross-cutting concerns."""

from minirel.infrastructure.config import Config, get_config
from minirel.infrastructure.logging import configure_logging, setup_logging, get_logger
from minirel.infrastructure.metrics import (
    configure_metrics,
    setup_metrics,
    get_metrics,
    MetricsRegistry,
)
from minirel.infrastructure.tracing import (
    configure_tracing,
    setup_tracing,
    get_tracer,
    trace_function,
    trace_span,
)

__all__ = [
    "Config",
    "get_config",
    "configure_logging",
    "setup_logging",
    "get_logger",
    "configure_metrics",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "configure_tracing",
    "setup_tracing",
    "get_tracer",
    "trace_function",
    "trace_span",
]
