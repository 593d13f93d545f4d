"""Configuration system for the Databricks MCP server.

Loads configuration from:
1. JSON file specified by DATABRICKS_MCP_CONFIG env var
2. Environment variable overrides with DATABRICKS_MCP_ prefix
   - Nested keys use double underscore: DATABRICKS_MCP_STATEMENTS__POLL_INTERVAL_SECONDS

Credentials are never configured here; the Databricks SDK resolves them
through its unified authentication (DATABRICKS_* variables or a profile).
"""

from __future__ import annotations

import json
import os
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_ENV_VAR = "DATABRICKS_MCP_CONFIG"


class Transport(str, Enum):
    """Supported MCP transports."""

    STDIO = "stdio"
    HTTP = "http"


class WorkspaceConfig(BaseSettings):
    """Configuration for the Databricks workspace connection."""

    model_config = SettingsConfigDict(
        env_prefix="DATABRICKS_MCP_WORKSPACE__",
        env_nested_delimiter="__",
    )

    host: str = Field(default="", description="Workspace URL; empty defers to the SDK")
    profile: str = Field(default="", description="Profile name in ~/.databrickscfg")


class StatementConfig(BaseSettings):
    """Configuration for SQL statement execution."""

    model_config = SettingsConfigDict(
        env_prefix="DATABRICKS_MCP_STATEMENTS__",
        env_nested_delimiter="__",
    )

    poll_interval_seconds: float = Field(
        default=10.0, gt=0, description="Delay between statement status checks"
    )
    initial_wait_seconds: int = Field(
        default=5,
        ge=5,
        le=50,
        description="Server-side wait requested when a statement is submitted",
    )


class ServerConfig(BaseSettings):
    """Configuration for the MCP server process."""

    model_config = SettingsConfigDict(
        env_prefix="DATABRICKS_MCP_SERVER__",
        env_nested_delimiter="__",
    )

    transport: Transport = Transport.STDIO
    host: str = Field(default="127.0.0.1", description="HTTP server host")
    port: int = Field(default=8080, ge=1, le=65535, description="HTTP server port")


class OTelConfig(BaseSettings):
    """Configuration for OpenTelemetry."""

    model_config = SettingsConfigDict(
        env_prefix="DATABRICKS_MCP_OTEL__",
        env_nested_delimiter="__",
    )

    enabled: bool = Field(default=False, description="Enable OpenTelemetry instrumentation")
    endpoint: str = Field(
        default="http://localhost:4317", description="OTLP exporter endpoint"
    )
    insecure: bool = Field(default=True, description="Use an insecure gRPC channel")
    service_name: str = Field(default="databricks-mcp-server", description="Service name for traces")


class Settings(BaseSettings):
    """Root configuration for the Databricks MCP server."""

    model_config = SettingsConfigDict(
        env_prefix="DATABRICKS_MCP_",
        env_nested_delimiter="__",
        env_file=None,
        extra="ignore",
    )

    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    statements: StatementConfig = Field(default_factory=StatementConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    otel: OTelConfig = Field(default_factory=OTelConfig)

    @model_validator(mode="before")
    @classmethod
    def load_from_json_file(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Load configuration from JSON file if DATABRICKS_MCP_CONFIG is set."""
        config_path = os.environ.get(CONFIG_ENV_VAR)
        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise ValueError(f"Config file not found: {config_path}")
            with path.open() as f:
                file_config = json.load(f)
            for key, value in file_config.items():
                if key not in data:
                    data[key] = value
                elif isinstance(value, dict) and isinstance(data.get(key), dict):
                    data[key] = {**value, **data[key]}
        return data


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the application settings (cached)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings, optionally from a specific config file.

    Args:
        config_path: Path to JSON config file. If None, uses DATABRICKS_MCP_CONFIG env var.

    Returns:
        Loaded Settings instance.
    """
    if config_path is not None:
        os.environ[CONFIG_ENV_VAR] = str(config_path)

    global _settings
    _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset cached settings (useful for testing)."""
    global _settings
    _settings = None
