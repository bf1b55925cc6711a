"""
Configuration Utility - Environment Variables Management

Centralized configuration loading from .env files using pydantic-settings.
Command line flags are applied on top of these values by the loader entry point.

Usage:
    from utils.config import settings

    pattern = settings.PATTERN
    addresses = settings.device_addresses()
"""

from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Input Configuration
    PATTERN: str = Field(default="", description="Glob pattern for log files")
    PROCESSED_PREFIX: str = Field(default=".", min_length=1)

    # Store Addresses (host:port per device type)
    IDFA_ADDR: str = Field(default="127.0.0.1:33013")
    GAID_ADDR: str = Field(default="127.0.0.1:33014")
    ADID_ADDR: str = Field(default="127.0.0.1:33015")
    DVID_ADDR: str = Field(default="127.0.0.1:33016")
    STORE_SOCKET_TIMEOUT: float = Field(default=3.0, gt=0)

    # Write Retry Configuration
    STORE_MAX_ATTEMPTS: int = Field(default=5, ge=1)
    STORE_RETRY_DELAY: float = Field(default=0.2, ge=0)

    # Processing Configuration
    WORKERS: int | None = Field(default=None, ge=1)
    ACCEPTABLE_ERROR_RATE: float = Field(default=0.01, ge=0, le=1)
    MARK_ON_ERROR_BREACH: bool = Field(default=True)
    DRY_RUN: bool = Field(default=False)

    # Scheduler Configuration (empty = run once)
    LOAD_SCHEDULE_CRON: str = Field(default="")

    # Logging Configuration
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="text")

    # Application Metadata
    APP_NAME: str = Field(default="appsinstalled-loader")
    APP_VERSION: str = Field(default="0.1.0")

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Only 'text' and 'json' renderers exist."""
        v = v.lower()
        if v not in ("text", "json"):
            raise ValueError("LOG_FORMAT must be 'text' or 'json'")
        return v

    def device_addresses(self) -> dict[str, str]:
        """Map each known device type to its store address."""
        return {
            "idfa": self.IDFA_ADDR,
            "gaid": self.GAID_ADDR,
            "adid": self.ADID_ADDR,
            "dvid": self.DVID_ADDR,
        }

    def effective_log_level(self) -> str:
        return "DEBUG" if self.DEBUG else self.LOG_LEVEL.upper()

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with non-None overrides applied and re-validated."""
        values = self.model_dump()
        values.update({key: value for key, value in overrides.items() if value is not None})
        return Settings.model_validate(values)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Singleton Settings instance
    """
    return Settings()


# Global settings instance
settings = get_settings()
