"""OpenTelemetry tracing for statement execution and commits.

Spans are created through the global tracer provider. Until
setup_tracing() installs an SDK provider the OpenTelemetry API hands out
non-recording spans, so the engine can be traced or not without code
changes.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Generator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Status, StatusCode

if TYPE_CHECKING:
    from minirel.infrastructure.config import ObservabilityConfig

_TRACER_NAME = "minirel"

_tracer: trace.Tracer | None = None


def setup_tracing(
    service_name: str = "minirel",
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> trace.Tracer:
    """
    Install an SDK tracer provider.

    Args:
        service_name: Value of the service.name resource attribute
        otlp_endpoint: OTLP gRPC collector endpoint (e.g., "http://localhost:4317")
        console_export: Also print finished spans to stdout

    Returns:
        The engine tracer
    """
    global _tracer
    from minirel import __version__

    provider = TracerProvider(
        resource=Resource.create({"service.name": service_name, "service.version": __version__})
    )
    if otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(_TRACER_NAME)
    return _tracer


def configure_tracing(config: ObservabilityConfig) -> trace.Tracer:
    """Set up tracing from the observability section of the config."""
    return setup_tracing(
        service_name=config.otel_service_name,
        otlp_endpoint=config.otel_endpoint,
    )


def get_tracer() -> trace.Tracer:
    """Get the engine tracer."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(_TRACER_NAME)
    return _tracer


@contextmanager
def trace_span(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """
    Run a block inside a span.

    Attributes whose value is None are not recorded. An exception leaving
    the block marks the span as failed and is re-raised.

    Args:
        name: Span name, e.g. "minirel.execute"
        attributes: Span attributes

    Yields:
        The active span
    """
    tracer = get_tracer()
    with tracer.start_as_current_span(
        name, record_exception=False, set_status_on_exception=False
    ) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            record_error(span, e)
            raise


def record_error(span: trace.Span, error: BaseException) -> None:
    """Mark a span as failed by an engine error."""
    span.record_exception(error)
    span.set_attribute("minirel.error_type", type(error).__name__)
    span.set_status(Status(StatusCode.ERROR, str(error)))


def trace_function(
    name: str | None = None,
    attributes: dict[str, Any] | None = None,
):
    """
    Decorator running each call in a span.

    Args:
        name: Span name (defaults to the qualified function name)
        attributes: Span attributes
    """
    def decorator(func):
        span_name = name or func.__qualname__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with trace_span(span_name, attributes):
                return func(*args, **kwargs)

        return wrapper

    return decorator
