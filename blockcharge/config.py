"""Application configuration from environment variables."""

from decimal import Decimal

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env."""

    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(
        default="sqlite:///./blockcharge.db",
        description="SQLAlchemy connection string for the demand store",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")
    store_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout applied to backing-store calls (lock wait / statement timeout)",
    )

    # Penalty sweep
    sweep_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per demand when a sweep update loses a concurrent race",
    )

    # Demand defaults (used when the issuer supplies no per-demand config)
    default_penalty_flat_amount: Decimal = Field(
        default=Decimal("0"), ge=0, description="Flat late-payment penalty"
    )
    default_grace_period_days: int = Field(
        default=0, ge=0, description="Days after due date before a penalty may apply"
    )
    default_reminder_days: list[int] = Field(
        default_factory=lambda: [7, 3, 1],
        description="Day offsets relative to due date at which reminders are eligible",
    )
    default_max_reminders: int = Field(default=3, ge=0, description="Reminder cap per demand")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Server log file")

    # API
    api_title: str = Field(default="Blockcharge API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")


# Global settings instance
settings = Settings()
