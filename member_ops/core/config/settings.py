#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
membership administration backend. The cache, monitoring and operational
endpoints all read their inputs from here.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Nested read-only views per concern (settings.cache, settings.redis, ...)
- Easy testing with override mechanisms

Author: Platform Team
Date: 2025-10-02
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """
    Distributed cache connection configuration.

    STAGE-0.1: Redis connection configuration

    REDIS_URL is optional. Without it the process runs on the local
    in-memory backend unless the environment is production.
    """

    REDIS_URL: str | None = Field(default=None, description="Distributed cache URL")
    REDIS_SOCKET_TIMEOUT: float = Field(default=5.0, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = Field(default=5.0, description="Connect timeout in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CacheSettings(BaseSettings):
    """
    Cache behaviour configuration.

    STAGE-2: Cache TTL and fallback configuration
    """

    CACHE_DEFAULT_TTL: int = Field(default=300, description="Default TTL (5 minutes)")
    CACHE_CHECK_PERIOD: float = Field(default=60.0, description="Local expiry sweep interval")
    CACHE_RECONNECT_BASE_DELAY: float = Field(default=0.1, description="Backoff step per attempt")
    CACHE_RECONNECT_MAX_DELAY: float = Field(default=3.0, description="Backoff cap")
    CACHE_RECONNECT_MAX_ATTEMPTS: int = Field(default=10, description="Connection attempt budget")
    CACHE_REDIS_PATTERN_SCAN: bool = Field(
        default=False, description="Allow SCAN-based pattern deletes on Redis"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class DatabaseSettings(BaseSettings):
    """Data-store probe configuration."""

    DATABASE_URL: str | None = Field(default=None, description="SQLAlchemy async database URL")
    DB_HEALTH_TIMEOUT: float = Field(default=5.0, description="Deadline for the liveness probe")
    DB_MONITOR_INTERVAL: float = Field(default=30.0, description="Watchdog probe interval")
    DB_MONITOR_MAX_ERRORS: int = Field(default=5, description="Consecutive failures before alert")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class MonitoringSettings(BaseSettings):
    """
    Request tracking configuration.

    STAGE-M: Slow request detection
    """

    SLOW_REQUEST_THRESHOLD_MS: float = Field(default=1000.0, description="Slow request threshold")
    SLOW_REQUEST_BUFFER_SIZE: int = Field(default=100, description="Slow request ring capacity")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration

    Architectural Decision: structlog for production-grade logging
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """
    General application settings.

    STAGE-0: Application initialization
    """

    ENVIRONMENT: Literal["development", "test", "staging", "production"] = Field(
        default="development", description="Application environment"
    )
    APP_NAME: str = Field(default="Member Ops", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from member_ops.core.config.settings import get_settings

        settings = get_settings()
        redis_url = settings.redis.REDIS_URL
        if settings.is_production:
            ...
    """

    # Redis settings
    REDIS_URL: str | None = Field(default=None, description="Distributed cache URL")
    REDIS_SOCKET_TIMEOUT: float = Field(default=5.0, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = Field(default=5.0, description="Connect timeout in seconds")

    # Cache settings
    CACHE_DEFAULT_TTL: int = Field(default=300, description="Default TTL (5 minutes)")
    CACHE_CHECK_PERIOD: float = Field(default=60.0, description="Local expiry sweep interval")
    CACHE_RECONNECT_BASE_DELAY: float = Field(default=0.1, description="Backoff step per attempt")
    CACHE_RECONNECT_MAX_DELAY: float = Field(default=3.0, description="Backoff cap")
    CACHE_RECONNECT_MAX_ATTEMPTS: int = Field(default=10, description="Connection attempt budget")
    CACHE_REDIS_PATTERN_SCAN: bool = Field(
        default=False, description="Allow SCAN-based pattern deletes on Redis"
    )

    # Database settings
    DATABASE_URL: str | None = Field(default=None, description="SQLAlchemy async database URL")
    DB_HEALTH_TIMEOUT: float = Field(default=5.0, description="Deadline for the liveness probe")
    DB_MONITOR_INTERVAL: float = Field(default=30.0, description="Watchdog probe interval")
    DB_MONITOR_MAX_ERRORS: int = Field(default=5, description="Consecutive failures before alert")

    # Monitoring settings
    SLOW_REQUEST_THRESHOLD_MS: float = Field(default=1000.0, description="Slow request threshold")
    SLOW_REQUEST_BUFFER_SIZE: int = Field(default=100, description="Slow request ring capacity")

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "test", "staging", "production"] = Field(
        default="development", description="Application environment"
    )
    APP_NAME: str = Field(default="Member Ops", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator("CACHE_DEFAULT_TTL", "CACHE_RECONNECT_MAX_ATTEMPTS", "SLOW_REQUEST_BUFFER_SIZE")
    @classmethod
    def validate_non_negative(cls, v, info):
        """Reject negative TTLs and capacities."""
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    @property
    def is_production(self) -> bool:
        """Production mode gates admin endpoints and forces a Redis attempt."""
        return self.ENVIRONMENT == "production"

    # Nested configuration views
    @property
    def redis(self) -> RedisSettings:
        """Get Redis settings."""
        return RedisSettings(
            REDIS_URL=self.REDIS_URL,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
        )

    @property
    def cache(self) -> CacheSettings:
        """Get cache settings."""
        return CacheSettings(
            CACHE_DEFAULT_TTL=self.CACHE_DEFAULT_TTL,
            CACHE_CHECK_PERIOD=self.CACHE_CHECK_PERIOD,
            CACHE_RECONNECT_BASE_DELAY=self.CACHE_RECONNECT_BASE_DELAY,
            CACHE_RECONNECT_MAX_DELAY=self.CACHE_RECONNECT_MAX_DELAY,
            CACHE_RECONNECT_MAX_ATTEMPTS=self.CACHE_RECONNECT_MAX_ATTEMPTS,
            CACHE_REDIS_PATTERN_SCAN=self.CACHE_REDIS_PATTERN_SCAN,
        )

    @property
    def database(self) -> DatabaseSettings:
        """Get data-store probe settings."""
        return DatabaseSettings(
            DATABASE_URL=self.DATABASE_URL,
            DB_HEALTH_TIMEOUT=self.DB_HEALTH_TIMEOUT,
            DB_MONITOR_INTERVAL=self.DB_MONITOR_INTERVAL,
            DB_MONITOR_MAX_ERRORS=self.DB_MONITOR_MAX_ERRORS,
        )

    @property
    def monitoring(self) -> MonitoringSettings:
        """Get request tracking settings."""
        return MonitoringSettings(
            SLOW_REQUEST_THRESHOLD_MS=self.SLOW_REQUEST_THRESHOLD_MS,
            SLOW_REQUEST_BUFFER_SIZE=self.SLOW_REQUEST_BUFFER_SIZE,
        )

    @property
    def logging(self) -> LoggingSettings:
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> ApplicationSettings:
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            API_HOST=self.API_HOST,
            API_PORT=self.API_PORT,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
