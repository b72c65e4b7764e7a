"""
Configuration settings for stateful retry.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development.
"""

from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "stateful-retry"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"  # "production" switches logs to JSON lines
    CONFIGURE_LOGGING: bool = False  # Let from_settings() install the structlog handler

    # === Retry Policy ===
    RETRY_POLICY: Literal["never", "always", "fixed"] = "fixed"
    RETRY_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    RETRY_TIMEOUT_MS: Optional[int] = Field(default=None, ge=1)  # Caps the whole sequence when set

    # === Backoff ===
    BACKOFF_ENABLED: bool = True
    BACKOFF_INITIAL_INTERVAL_MS: int = Field(default=100, ge=1)
    BACKOFF_MULTIPLIER: float = Field(default=2.0, ge=1.0)
    BACKOFF_MAX_INTERVAL_MS: int = Field(default=30000, ge=1)
    BACKOFF_JITTER: bool = True  # Spread redeliveries of simultaneous failures

    # === Context Cache ===
    CONTEXT_CACHE_CAPACITY: int = Field(default=4096, ge=1)

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True

    @model_validator(mode="after")
    def check_backoff_bounds(self) -> "Settings":
        if self.BACKOFF_MAX_INTERVAL_MS < self.BACKOFF_INITIAL_INTERVAL_MS:
            raise ValueError("BACKOFF_MAX_INTERVAL_MS must be >= BACKOFF_INITIAL_INTERVAL_MS")
        return self


# Global settings instance
settings = Settings()
