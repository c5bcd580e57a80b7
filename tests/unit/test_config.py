"""Unit tests for configuration module."""

from __future__ import annotations

import pytest

from minirel.infrastructure.config import Config, EngineConfig, ObservabilityConfig, get_config


@pytest.mark.unit
class TestConfig:
    """Tests for Config class."""

    def test_default_config(self) -> None:
        """Test default configuration values."""
        config = Config()

        assert config.engine.default_autocommit is True
        assert config.engine.sql_dialect == "sqlite"
        assert config.engine.max_connections == 64
        assert config.observability.log_format == "json"
        assert config.observability.otel_service_name == "minirel"

    def test_custom_engine_config(self) -> None:
        """Test custom engine configuration."""
        engine = EngineConfig(default_autocommit=False, max_connections=2)

        assert engine.default_autocommit is False
        assert engine.max_connections == 2

    def test_invalid_max_connections(self) -> None:
        """Test that out-of-range connection limits raise validation error."""
        with pytest.raises(ValueError):
            EngineConfig(max_connections=0)
        with pytest.raises(ValueError):
            EngineConfig(max_connections=10001)

    def test_log_levels(self) -> None:
        """Test valid and invalid log levels."""
        for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            assert ObservabilityConfig(log_level=level).log_level == level

        with pytest.raises(ValueError):
            ObservabilityConfig(log_level="TRACE")

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test nested settings are read from MINIREL_ environment variables."""
        monkeypatch.setenv("MINIREL_ENGINE__MAX_CONNECTIONS", "8")
        monkeypatch.setenv("MINIREL_ENGINE__DEFAULT_AUTOCOMMIT", "false")
        monkeypatch.setenv("MINIREL_OBSERVABILITY__LOG_FORMAT", "console")

        config = Config()

        assert config.engine.max_connections == 8
        assert config.engine.default_autocommit is False
        assert config.observability.log_format == "console"

    def test_get_config_is_cached(self) -> None:
        """get_config returns the same instance."""
        get_config.cache_clear()
        try:
            assert get_config() is get_config()
        finally:
            get_config.cache_clear()
