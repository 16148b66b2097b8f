"""
risqlab: Configuration Management

This module provides centralised configuration management for risqlab.
It loads configuration from environment variables (optionally via a .env
file), with strongly typed access via Pydantic BaseSettings.

Key responsibilities:
- Load and validate configuration from environment variables
- Provide typed configuration objects for the database, logging and the
  external market-data providers
- Expose a cached global configuration accessor for convenience

External dependencies:
- pydantic: Data validation and settings management
- pydantic-settings: Environment variable integration for settings
- python-dotenv: Optional .env loading for local development

Database tables accessed:
- None (configuration only)

Thread safety: Thread-safe (configuration is immutable after initial load)

Author: risqlab Team
Created: 2025-11-24
Last Modified: 2025-12-02
Status: Development
Version: v0.2.0
"""

# ============================================================================
# Imports
# ============================================================================

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# ============================================================================
# Errors
# ============================================================================


class ConfigurationError(Exception):
    """Raised when a required credential or parameter is missing.

    Configuration errors are fatal: entrypoints raise them before any
    external call or database write is attempted.
    """


# ============================================================================
# Data Models
# ============================================================================


class DatabaseConfig(BaseModel):
    """Database connection configuration.

    Attributes:
        host: Database host name or IP address.
        port: TCP port for the PostgreSQL instance.
        name: Database name.
        user: Database user for connections.
        password: Password for the database user.
        pool_size: Maximum number of connections in the pool.
    """

    host: str
    port: int
    name: str
    user: str
    password: str
    pool_size: int = 5


class LoggingConfig(BaseModel):
    """Logging configuration for risqlab.

    Attributes:
        level: Log level name (e.g. "INFO", "DEBUG").
        file: Path to the primary log file.
    """

    level: str = "INFO"
    file: str = "risqlab.log"


class ProviderConfig(BaseModel):
    """Credentials and endpoint for one external market-data provider."""

    api_key: str
    base_url: str
    timeout_seconds: int = 30


class RisqlabConfig(BaseSettings):
    """Main risqlab configuration loaded from environment variables.

    Environment variables use the following mapping by default:

    - DB_* for the PostgreSQL store
    - LOG_LEVEL / LOG_FILE for logging
    - COINGECKO_API_KEY / COINGECKO_BASE_URL for market data
    - COINMARKETCAP_API_KEY / COINMARKETCAP_BASE_URL for the Fear & Greed
      series
    - ENVIRONMENT for environment name (development/staging/production)
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    # Store
    db_host: str = Field(default="localhost", alias="DB_HOST")
    db_port: int = Field(default=5432, alias="DB_PORT")
    db_name: str = Field(default="risqlab", alias="DB_NAME")
    db_user: str = Field(default="risqlab", alias="DB_USER")
    db_password: str = Field(default="", alias="DB_PASSWORD")
    db_pool_size: int = Field(default=5, alias="DB_POOL_SIZE")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: str = Field(default="risqlab.log", alias="LOG_FILE")

    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Providers
    coingecko_api_key: str = Field(default="", alias="COINGECKO_API_KEY")
    coingecko_base_url: str = Field(
        default="https://pro-api.coingecko.com/api/v3", alias="COINGECKO_BASE_URL"
    )
    coinmarketcap_api_key: str = Field(default="", alias="COINMARKETCAP_API_KEY")
    coinmarketcap_base_url: str = Field(
        default="https://pro-api.coinmarketcap.com", alias="COINMARKETCAP_BASE_URL"
    )
    http_timeout_seconds: int = Field(default=30, alias="HTTP_TIMEOUT_SECONDS")

    @property
    def database(self) -> DatabaseConfig:
        """Return database configuration for the store."""

        return DatabaseConfig(
            host=self.db_host,
            port=self.db_port,
            name=self.db_name,
            user=self.db_user,
            password=self.db_password,
            pool_size=self.db_pool_size,
        )

    @property
    def logging(self) -> LoggingConfig:
        """Return logging configuration."""

        return LoggingConfig(level=self.log_level, file=self.log_file)

    @property
    def coingecko(self) -> ProviderConfig:
        """Return CoinGecko provider configuration.

        Raises:
            ConfigurationError: If ``COINGECKO_API_KEY`` is not set.
        """

        if not self.coingecko_api_key:
            raise ConfigurationError("COINGECKO_API_KEY is not set")
        return ProviderConfig(
            api_key=self.coingecko_api_key,
            base_url=self.coingecko_base_url,
            timeout_seconds=self.http_timeout_seconds,
        )

    @property
    def coinmarketcap(self) -> ProviderConfig:
        """Return CoinMarketCap provider configuration.

        Raises:
            ConfigurationError: If ``COINMARKETCAP_API_KEY`` is not set.
        """

        if not self.coinmarketcap_api_key:
            raise ConfigurationError("COINMARKETCAP_API_KEY is not set")
        return ProviderConfig(
            api_key=self.coinmarketcap_api_key,
            base_url=self.coinmarketcap_base_url,
            timeout_seconds=self.http_timeout_seconds,
        )


# ============================================================================
# Public API
# ============================================================================


def load_config(env_file: Optional[Path] = None) -> RisqlabConfig:
    """Load risqlab configuration.

    For local development this function will attempt to load a `.env` file
    from the current directory if one is present. Environment variables
    always take precedence over values from `.env`.

    Args:
        env_file: Optional explicit path to a `.env` file. If omitted,
            the function will look for `.env` in the current working
            directory.

    Returns:
        A fully populated :class:`RisqlabConfig` instance.

    Raises:
        FileNotFoundError: If an explicit ``env_file`` is provided but
            does not exist.
    """

    if env_file is not None:
        if not env_file.exists():
            msg = f"Environment file not found: {env_file}"
            raise FileNotFoundError(msg)
        # An explicit env_file overrides existing values so tests and
        # local runs can reliably control configuration.
        load_dotenv(env_file, override=True)
    else:
        default_env = Path(".env")
        if default_env.exists():
            load_dotenv(default_env)

    return RisqlabConfig()  # type: ignore[call-arg]


_global_config: Optional[RisqlabConfig] = None


def get_config() -> RisqlabConfig:
    """Return the cached risqlab configuration.

    The configuration is loaded on first access and cached for subsequent
    calls. It is immutable, so sharing it is safe; database handles are
    never cached here and must be passed explicitly.

    Returns:
        A cached :class:`RisqlabConfig` instance.
    """

    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config
