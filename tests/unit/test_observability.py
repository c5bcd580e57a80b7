"""Unit tests for logging and tracing helpers."""

from __future__ import annotations

import io
import json
from typing import Generator

import pytest
import structlog

from minirel.domain.errors import NotFoundError
from minirel.infrastructure.logging import get_logger, setup_logging
from minirel.infrastructure.tracing import trace_function, trace_span


@pytest.fixture
def log_stream() -> Generator[io.StringIO, None, None]:
    stream = io.StringIO()
    setup_logging(level="INFO", log_format="json", stream=stream)
    yield stream
    structlog.reset_defaults()


@pytest.mark.unit
class TestLogging:
    """Tests for structured logging setup."""

    def test_json_events_carry_bound_context(self, log_stream: io.StringIO) -> None:
        logger = get_logger("test", database=":memory:")
        logger.info("connection_opened", autocommit=True)

        event = json.loads(log_stream.getvalue().splitlines()[-1])
        assert event["event"] == "connection_opened"
        assert event["database"] == ":memory:"
        assert event["autocommit"] is True
        assert event["level"] == "info"

    def test_level_filtering(self, log_stream: io.StringIO) -> None:
        get_logger("test").debug("transaction_started")
        assert log_stream.getvalue() == ""


@pytest.mark.unit
class TestTracing:
    """Tracing helpers work without a configured provider."""

    def test_trace_span(self) -> None:
        with trace_span("minirel.test", {"minirel.kind": "select", "skipped": None}) as span:
            assert span is not None

    def test_trace_function_preserves_result(self) -> None:
        @trace_function("minirel.add")
        def add(a: int, b: int) -> int:
            return a + b

        assert add(2, 3) == 5
        assert add.__name__ == "add"

    def test_trace_span_reraises(self) -> None:
        with pytest.raises(NotFoundError):
            with trace_span("minirel.commit"):
                raise NotFoundError("accounts", 99)
