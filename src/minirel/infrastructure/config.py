"""Configuration management for minirel."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseModel):
    """Engine configuration."""

    default_autocommit: bool = Field(
        default=True, description="Autocommit mode of newly opened connections"
    )
    sql_dialect: str = Field(default="sqlite", description="sqlglot dialect used for parsing")
    max_connections: int = Field(
        default=64, ge=1, le=10000, description="Max open connections per database"
    )


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    metrics_port: int = Field(default=8001, ge=1, le=65535, description="Prometheus metrics port")
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(default="minirel", description="Service name for tracing")


class Config(BaseSettings):
    """Main configuration for minirel."""

    model_config = SettingsConfigDict(
        env_prefix="MINIREL_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    engine: EngineConfig = Field(default_factory=EngineConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
