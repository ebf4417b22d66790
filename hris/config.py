"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./hris.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    app_timezone: str = Field(
        default="UTC",
        description="Timezone used when stamping notification and delivery timestamps",
    )
    notification_max_retries: int = Field(
        default=5,
        description="Number of failed attempts after which a delivery is marked FAILED",
        gt=0,
    )
    notification_max_concurrent_deliveries: int = Field(
        default=32,
        description="Upper bound on channel sends running at the same time",
        gt=0,
    )
    notification_recovery_batch_size: int = Field(
        default=1000,
        description="Maximum pending deliveries requeued by the startup recovery scan",
        gt=0,
    )
    notification_stale_processing_seconds: int = Field(
        default=300,
        description="Age after which a PROCESSING delivery is considered abandoned",
        gt=0,
    )
    notification_sweep_interval_seconds: float = Field(
        default=60.0,
        description="Period of the maintenance sweep; 0 disables it",
        ge=0,
    )
    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending notification emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of notification emails",
        min_length=3,
    )

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
