"""
Configuration

Application settings and environment configuration for update-cache.
"""

from typing import Literal, Optional

from pydantic import AliasChoices, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from update_cache.core.exceptions import ConfigurationException


class Settings(BaseSettings):
    """
    Application configuration settings.

    Supports both environment variables and .env file loading.
    Environment variables take precedence over .env file values.
    Store settings also accept the flat REDIS_* names used by deployed services.
    """

    # Application settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(
        default="info", description="Log level (debug, info, warning, error)"
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Application environment"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate log level."""
        allowed_levels = {"debug", "info", "warning", "error"}
        normalized = v.lower().strip()
        if normalized not in allowed_levels:
            raise ValueError(
                f"log_level must be one of {sorted(allowed_levels)}, got '{v}'"
            )
        return normalized

    # API settings
    api__title: str = Field(default="update-cache", description="API title")
    api__description: str = Field(
        default="Response cache and release metrics for update distribution",
        description="API description",
    )
    api__version: str = Field(default="1.0.0", description="API version")
    api__docs_url: str = Field(default="/docs", description="API documentation URL")
    api__redoc_url: str = Field(default="/redoc", description="ReDoc documentation URL")

    # Redis settings (optional, the store is disabled without host and port)
    redis__host: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("redis__host", "redis_host"),
        description="Redis host",
    )
    redis__port: Optional[int] = Field(
        default=None,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("redis__port", "redis_port"),
        description="Redis port",
    )
    redis__key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("redis__key", "redis_key"),
        description="Redis auth secret",
    )
    redis__tls: bool = Field(
        default=False,
        validation_alias=AliasChoices("redis__tls", "redis_tls"),
        description="Enable TLS for the Redis connection",
    )
    redis__max_attempts: int = Field(
        default=5,
        ge=1,
        validation_alias=AliasChoices("redis__max_attempts", "redis_max_attempts"),
        description="Maximum connection attempts per reconnect cycle",
    )
    redis__retry_max_delay: int = Field(
        default=5000,
        gt=0,
        validation_alias=AliasChoices(
            "redis__retry_max_delay", "redis_retry_max_delay"
        ),
        description="Cap for the reconnect backoff in milliseconds",
    )
    redis__connect_timeout: float = Field(
        default=3.0, gt=0, description="Redis connection timeout in seconds"
    )
    redis__socket_timeout: float = Field(
        default=3.0, gt=0, description="Redis socket timeout in seconds"
    )
    redis__db: int = Field(
        default=0, ge=0, le=15, description="Logical database for the response cache"
    )

    @field_validator("redis__host", "redis__port", mode="before")
    @classmethod
    def blank_as_missing(cls, v: object) -> object:
        """Treat an empty host or port as not configured."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    # Metrics settings
    metrics__db: int = Field(
        default=1, ge=0, le=15, description="Logical database for release metrics"
    )

    # Response cache settings
    cache__default_ttl: int = Field(
        default=3600, gt=0, description="Response cache expiry in seconds"
    )

    # Health check configuration
    health__check_redis: bool = Field(
        default=True, description="Enable Redis health check"
    )

    # Logfire monitoring settings
    logfire__enabled: bool = Field(
        default=False, description="Enable Logfire monitoring"
    )
    logfire__service_name: str = Field(
        default="update_cache", description="Logfire service name"
    )
    logfire__environment: str = Field(
        default="development", description="Logfire environment"
    )
    logfire__token: Optional[SecretStr] = Field(
        default=None, description="Logfire token"
    )
    logfire__disable_scrubbing: Optional[bool] = Field(
        default=False, description="Disable Logfire scrubbing"
    )

    # Optional Logfire instrumentation toggles
    logfire__instrument__redis: bool = Field(
        default=True, description="Enable Logfire Redis instrumentation"
    )
    logfire__instrument__fastapi: bool = Field(
        default=True, description="Enable Logfire FastAPI instrumentation"
    )

    # Logging file settings (optional)
    log__dir: str = Field(
        default="logs", description="Directory where log files are stored"
    )
    log__file_path: Optional[str] = Field(
        default=None, description="Custom log file path; overrides log__dir if set"
    )
    log__file_level: str = Field(default="INFO", description="File handler log level")
    log__file_max_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Max size of a log file before rotation",
    )
    log__file_backup_count: int = Field(
        default=3, ge=0, description="Number of backup log files to keep"
    )

    @model_validator(mode="after")
    def validate_metrics_database(self) -> "Settings":
        """Metrics must live in their own logical database."""
        if self.metrics__db == self.redis__db:
            raise ValueError(
                f"metrics__db must differ from redis__db (both are {self.redis__db})"
            )
        return self

    @property
    def redis_enabled(self) -> bool:
        """Whether both host and port were supplied."""
        return bool(self.redis__host) and self.redis__port is not None

    @property
    def redis_password(self) -> Optional[str]:
        """Plain auth secret for the client, if configured."""
        if self.redis__key is None:
            return None
        return self.redis__key.get_secret_value() or None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )


def create_settings() -> Settings:
    """
    Create and validate settings instance.

    Returns:
        Settings: Configured settings instance

    Raises:
        ConfigurationException: If configuration validation fails
    """
    try:
        settings_instance = Settings()

        print("🔧 Configuration loaded successfully")
        print(f"   Environment: {settings_instance.environment}")
        print(f"   Log level: {settings_instance.log_level}")

        if settings_instance.redis_enabled:
            print(
                f"   Redis: {settings_instance.redis__host}:"
                f"{settings_instance.redis__port} "
                f"(tls={settings_instance.redis__tls})"
            )
        else:
            print("⚠️  Warning: REDIS_HOST or REDIS_PORT not set. Cache and metrics are disabled.")

        return settings_instance

    except Exception as e:
        print(f"❌ Configuration loading failed: {e}")
        print("Please ensure all required environment variables are set")
        raise ConfigurationException(
            f"Configuration loading failed: {e}", cause=e
        ) from e


# Global configuration instance
settings = create_settings()
