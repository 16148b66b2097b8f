"""
risqlab: Tests for Configuration Management

Test suite for ``risqlab.core.config``. Covers:
- Default configuration values
- Environment variable overrides
- .env loading behaviour
- Provider credential validation
"""

from __future__ import annotations

from pathlib import Path

import pytest

from risqlab.core.config import ConfigurationError, RisqlabConfig, get_config, load_config


class TestRisqlabConfig:
    """Tests for the RisqlabConfig settings model."""

    def test_default_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Default values should match sensible local-development defaults."""

        for var in ("DB_HOST", "DB_PORT", "LOG_LEVEL", "ENVIRONMENT", "DB_POOL_SIZE"):
            monkeypatch.delenv(var, raising=False)

        config = RisqlabConfig()

        assert config.db_host == "localhost"
        assert config.db_port == 5432
        assert config.db_pool_size == 5
        assert config.log_level.upper() == "INFO"
        assert config.environment == "development"
        assert config.http_timeout_seconds == 30

    def test_env_var_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Environment variables must override default values."""

        monkeypatch.setenv("DB_HOST", "test-host")
        monkeypatch.setenv("DB_PORT", "5439")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        config = RisqlabConfig()

        assert config.db_host == "test-host"
        assert config.db_port == 5439
        assert config.log_level.upper() == "DEBUG"

    def test_database_property_returns_databaseconfig(self) -> None:
        """The database helper property should mirror the DB_* fields."""

        config = RisqlabConfig()

        db = config.database
        assert db.host == config.db_host
        assert db.port == config.db_port
        assert db.name == config.db_name
        assert db.pool_size == config.db_pool_size

    def test_missing_provider_key_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Accessing a provider without credentials is a configuration error."""

        monkeypatch.delenv("COINGECKO_API_KEY", raising=False)
        monkeypatch.delenv("COINMARKETCAP_API_KEY", raising=False)

        config = RisqlabConfig()

        with pytest.raises(ConfigurationError):
            _ = config.coingecko
        with pytest.raises(ConfigurationError):
            _ = config.coinmarketcap

    def test_provider_config_uses_shared_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("COINGECKO_API_KEY", "cg-key")
        monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "12")

        provider = RisqlabConfig().coingecko

        assert provider.api_key == "cg-key"
        assert provider.timeout_seconds == 12
        assert provider.base_url.startswith("https://")


class TestLoadConfig:
    """Tests for the top-level load_config function."""

    def test_load_from_explicit_env_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """An explicit env_file should be loaded when it exists."""

        monkeypatch.delenv("DB_HOST", raising=False)
        monkeypatch.delenv("DB_PORT", raising=False)
        env_path = tmp_path / ".env.test"
        env_path.write_text("DB_HOST=from_env_file\nDB_PORT=5440\n")

        config = load_config(env_file=env_path)

        assert config.db_host == "from_env_file"
        assert config.db_port == 5440
        monkeypatch.delenv("DB_HOST", raising=False)
        monkeypatch.delenv("DB_PORT", raising=False)

    def test_missing_explicit_env_file_raises(self, tmp_path: Path) -> None:
        """A missing explicit env file should raise FileNotFoundError."""

        with pytest.raises(FileNotFoundError):
            load_config(env_file=tmp_path / "does-not-exist.env")


def test_get_config_is_cached() -> None:
    """get_config should return the same instance on repeated calls."""

    assert get_config() is get_config()
