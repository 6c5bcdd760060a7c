"""
Application Configuration

Pydantic-based settings management using environment variables.
Supports nested configuration, validation, and caching.

Usage:
    from nlquery.config import get_settings

    settings = get_settings()
    print(settings.ai_service.url)
    print(settings.pagination.large_dataset_threshold)
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import AliasChoices, AnyUrl, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AIServiceSettings(BaseSettings):
    """External SQL generation service configuration."""

    url: str = Field(
        default="http://localhost:5001",
        description="Base URL of the SQL generation service",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Timeout in seconds for a single generation call",
    )
    default_language: str = Field(
        default="en",
        min_length=2,
        description="Language sent with prompts when the caller does not specify one",
    )

    model_config = SettingsConfigDict(
        env_prefix="AI_SERVICE_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Require an http(s) base URL."""
        parsed = urlparse(v)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("AI_SERVICE_URL must be an http(s) URL with a host.")
        return v.rstrip("/")


class CacheSettings(BaseSettings):
    """Response cache configuration."""

    enabled: bool = Field(default=True, description="Enable the prompt response cache")
    ttl_minutes: float = Field(
        default=5,
        gt=0,
        description="Minutes a cached SQL generation stays valid",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        env_file=".env",
        extra="ignore",
    )


class PaginationSettings(BaseSettings):
    """Pagination behaviour."""

    large_dataset_threshold: int = Field(
        default=10,
        ge=0,
        description="Row count at or below which pagination is skipped",
        validation_alias=AliasChoices(
            "PAGINATION_LARGE_DATASET_THRESHOLD",
            "LARGE_DATASET_THRESHOLD",
            "large_dataset_threshold",
        ),
    )
    default_page_size: int = Field(
        default=10,
        gt=0,
        description="Page size used when the caller does not pass one",
    )
    max_page_size: int = Field(
        default=1000,
        gt=0,
        description="Largest page size a caller may request",
    )

    model_config = SettingsConfigDict(
        env_prefix="PAGINATION_",
        env_file=".env",
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_page_sizes(self) -> "PaginationSettings":
        """Ensure the default page size is allowed."""
        if self.default_page_size > self.max_page_size:
            raise ValueError(
                f"default_page_size ({self.default_page_size}) must not exceed "
                f"max_page_size ({self.max_page_size})"
            )
        return self


class DatabaseSettings(BaseSettings):
    """Target database configuration."""

    url: AnyUrl | None = Field(
        None,
        description="Target database connection URL (the database you query)",
    )
    pool_size: int = Field(
        default=5,
        gt=0,
        le=20,
        description="Database connection pool size",
    )
    timeout: int = Field(
        default=30,
        gt=0,
        description="Statement timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("url", mode="before")
    @classmethod
    def normalize_url(cls, v: str | AnyUrl | None) -> str | AnyUrl | None:
        """Treat empty strings as missing."""
        if v == "":
            return None
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: AnyUrl | None) -> AnyUrl | None:
        """Validate supported database URL schemes."""
        if v is None:
            return v
        parsed = urlparse(str(v))
        scheme = parsed.scheme.split("+")[0].lower() if parsed.scheme else ""
        if scheme not in {"postgres", "postgresql"}:
            raise ValueError("DATABASE_URL must use the postgresql scheme.")
        if not parsed.hostname:
            raise ValueError("DATABASE_URL must include a host.")
        return v


class HistorySettings(BaseSettings):
    """Query history (audit) configuration."""

    enabled: bool = Field(default=False, description="Record every request to query history")
    database_url: str | None = Field(
        None,
        description="PostgreSQL URL for the history table (defaults to DATABASE_URL)",
    )
    queue_size: int = Field(
        default=1000,
        gt=0,
        description="Pending history records kept before new ones are dropped",
    )
    write_timeout: float = Field(
        default=3.0,
        gt=0,
        description="Seconds allowed for a single history write",
    )

    model_config = SettingsConfigDict(
        env_prefix="HISTORY_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def normalize_url(cls, v: str | None) -> str | None:
        """Treat empty strings as missing."""
        if v == "":
            return None
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Application log level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    date_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="Log timestamp format",
    )
    file: Path | None = Field(
        default=None,
        description="Optional log file path (None = stdout only)",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        extra="ignore",
    )

    def configure(self) -> None:
        """Configure Python logging with these settings."""
        handlers: list[logging.Handler] = [logging.StreamHandler()]

        if self.file:
            self.file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(self.file))

        logging.basicConfig(
            level=getattr(logging, self.level),
            format=self.format,
            datefmt=self.date_format,
            handlers=handlers,
            force=True,  # Override any existing configuration
        )


class Settings(BaseSettings):
    """
    Root application settings.

    Aggregates all configuration groups. Each group reads its own
    environment prefix, so they can also be constructed independently.

    Example:
        >>> settings = get_settings()
        >>> settings.cache.ttl_minutes
        5.0
        >>> settings.pagination.max_page_size
        1000
    """

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    app_name: str = Field(
        default="nlquery",
        description="Application name",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # Nested settings
    ai_service: AIServiceSettings = Field(default_factory=AIServiceSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    pagination: PaginationSettings = Field(default_factory=PaginationSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def history_database_url(self) -> str | None:
        """History store URL, falling back to the target database."""
        if self.history.database_url:
            return self.history.database_url
        return str(self.database.url) if self.database.url else None

    @model_validator(mode="after")
    def configure_logging(self) -> "Settings":
        """Configure logging when settings are loaded."""
        self.logging.configure()
        return self

    def model_post_init(self, __context) -> None:
        """Log configuration on initialization."""
        logger = logging.getLogger(__name__)
        logger.info(
            f"Settings loaded for {self.app_name} ({self.environment})",
            extra={
                "environment": self.environment,
                "ai_service_url": self.ai_service.url,
                "cache_ttl_minutes": self.cache.ttl_minutes,
                "large_dataset_threshold": self.pagination.large_dataset_threshold,
                "history_enabled": self.history.enabled,
            },
        )


_DOTENV_PATH = Path(__file__).resolve().parents[1] / ".env"


def _apply_dotenv_precedence() -> None:
    env_source = os.getenv("NLQUERY_ENV_SOURCE", "dotenv").lower()
    if env_source not in {"dotenv", "envfile", "file"}:
        return
    if _DOTENV_PATH.exists():
        load_dotenv(_DOTENV_PATH, override=True)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Singleton settings instance
    """
    _apply_dotenv_precedence()
    return Settings()


def clear_settings_cache() -> None:
    """
    Clear the settings cache.

    Useful for testing when you need to reload settings with different
    environment variables.
    """
    get_settings.cache_clear()
