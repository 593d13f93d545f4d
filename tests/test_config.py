"""Tests for configuration system."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from databricks_mcp.config import (
    OTelConfig,
    ServerConfig,
    Settings,
    StatementConfig,
    Transport,
    WorkspaceConfig,
    get_settings,
    load_settings,
    reset_settings,
)

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Clean environment and reset settings before/after each test."""
    env_vars_to_remove = [key for key in os.environ if key.startswith("DATABRICKS_MCP_")]
    for key in env_vars_to_remove:
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    os.environ.pop("DATABRICKS_MCP_CONFIG", None)
    reset_settings()


class TestWorkspaceConfig:
    """Tests for WorkspaceConfig."""

    def test_defaults_defer_to_sdk(self) -> None:
        config = WorkspaceConfig()
        assert config.host == ""
        assert config.profile == ""

    def test_profile(self) -> None:
        config = WorkspaceConfig(profile="dev")
        assert config.profile == "dev"


class TestStatementConfig:
    """Tests for StatementConfig."""

    def test_defaults(self) -> None:
        config = StatementConfig()
        assert config.poll_interval_seconds == 10.0
        assert config.initial_wait_seconds == 5

    def test_poll_interval_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            StatementConfig(poll_interval_seconds=0)

    def test_initial_wait_bounds(self) -> None:
        with pytest.raises(ValueError):
            StatementConfig(initial_wait_seconds=4)  # Below workspace minimum
        with pytest.raises(ValueError):
            StatementConfig(initial_wait_seconds=51)  # Above workspace maximum


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self) -> None:
        config = ServerConfig()
        assert config.transport == Transport.STDIO
        assert config.host == "127.0.0.1"
        assert config.port == 8080

    def test_http_transport(self) -> None:
        config = ServerConfig(transport="http", port=3000)
        assert config.transport == Transport.HTTP
        assert config.port == 3000

    def test_port_validation(self) -> None:
        with pytest.raises(ValueError):
            ServerConfig(port=0)


class TestOTelConfig:
    """Tests for OTelConfig."""

    def test_defaults(self) -> None:
        config = OTelConfig()
        assert config.enabled is False
        assert config.endpoint == "http://localhost:4317"
        assert config.insecure is True
        assert config.service_name == "databricks-mcp-server"


class TestSettings:
    """Tests for root Settings."""

    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.workspace.host == ""
        assert settings.statements.poll_interval_seconds == 10.0
        assert settings.server.transport == Transport.STDIO
        assert settings.otel.enabled is False

    def test_load_from_json_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_file = tmp_path / "config.json"
        config_data = {
            "workspace": {"profile": "staging"},
            "statements": {"poll_interval_seconds": 2.5, "initial_wait_seconds": 10},
            "server": {"transport": "http", "port": 9000},
        }
        config_file.write_text(json.dumps(config_data))

        monkeypatch.setenv("DATABRICKS_MCP_CONFIG", str(config_file))
        settings = Settings()

        assert settings.workspace.profile == "staging"
        assert settings.statements.poll_interval_seconds == 2.5
        assert settings.statements.initial_wait_seconds == 10
        assert settings.server.transport == Transport.HTTP
        assert settings.server.port == 9000

    def test_config_file_not_found(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DATABRICKS_MCP_CONFIG", str(tmp_path / "nonexistent.json"))
        with pytest.raises(ValueError, match="Config file not found"):
            Settings()

    def test_env_var_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABRICKS_MCP_STATEMENTS__POLL_INTERVAL_SECONDS", "1")
        monkeypatch.setenv("DATABRICKS_MCP_SERVER__PORT", "9100")

        settings = Settings()
        assert settings.statements.poll_interval_seconds == 1.0
        assert settings.server.port == 9100

    def test_json_file_with_env_overrides(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        config_file = tmp_path / "config.json"
        config_data = {"statements": {"poll_interval_seconds": 5, "initial_wait_seconds": 20}}
        config_file.write_text(json.dumps(config_data))

        monkeypatch.setenv("DATABRICKS_MCP_CONFIG", str(config_file))
        monkeypatch.setenv("DATABRICKS_MCP_STATEMENTS__POLL_INTERVAL_SECONDS", "3")

        settings = Settings()
        assert settings.statements.poll_interval_seconds == 3.0  # Env var wins
        assert settings.statements.initial_wait_seconds == 20  # From file


class TestGetSettings:
    """Tests for get_settings function."""

    def test_caching(self) -> None:
        settings1 = get_settings()
        settings2 = get_settings()
        assert settings1 is settings2

    def test_reset_clears_cache(self) -> None:
        settings1 = get_settings()
        reset_settings()
        settings2 = get_settings()
        assert settings1 is not settings2


class TestLoadSettings:
    """Tests for load_settings function."""

    def test_load_from_path(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.json"
        host = "https://example.cloud.databricks.com"
        config_file.write_text(json.dumps({"workspace": {"host": host}}))

        settings = load_settings(config_file)
        assert settings.workspace.host == host
        assert get_settings() is settings

    def test_load_with_string_path(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"server": {"port": 9000}}))

        settings = load_settings(str(config_file))
        assert settings.server.port == 9000
