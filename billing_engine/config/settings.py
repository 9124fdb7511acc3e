"""
Configuration management for the billing engine.
"""

from decimal import Decimal
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BillingEngineConfig(BaseSettings):
    """Configuration settings for the billing engine."""

    # Application Configuration
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Billing Configuration
    default_rate: Decimal = Field(default=Decimal("75"), alias="BILLING_DEFAULT_RATE")
    default_adjustment_reason: str = Field(
        default="Manual adjustment from billing management",
        alias="BILLING_DEFAULT_ADJUSTMENT_REASON",
    )
    system_actor: str = Field(default="system", alias="BILLING_SYSTEM_ACTOR")
    task_view_default_days: int = Field(
        default=90, ge=1, alias="BILLING_TASK_VIEW_DEFAULT_DAYS"
    )

    # Storage Configuration
    data_dir: Path = Field(default=Path("data"), alias="BILLING_DATA_DIR")
    adjustments_file: Path = Field(
        default=Path("data/billing_adjustments.json"), alias="BILLING_ADJUSTMENTS_FILE"
    )

    # Rate Service Configuration
    rate_service_url: Optional[str] = Field(default=None, alias="RATE_SERVICE_URL")
    rate_service_timeout: float = Field(default=10.0, gt=0, alias="RATE_SERVICE_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Ensure environment is valid."""
        valid_envs = ["development", "testing", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of: {valid_envs}")
        return v.lower()

    @field_validator("default_rate")
    @classmethod
    def validate_default_rate(cls, v):
        """Reject negative default rates."""
        if v < 0:
            raise ValueError("Default rate must not be negative")
        return v

    @field_validator("rate_service_url")
    @classmethod
    def blank_url_to_none(cls, v):
        """Treat an empty URL as unset."""
        if v is None or not v.strip():
            return None
        return v.strip()


def load_config(env_file: Optional[str] = None) -> BillingEngineConfig:
    """Load configuration from environment variables and .env file."""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    return BillingEngineConfig()


# Global configuration instance
_config: Optional[BillingEngineConfig] = None


def get_config() -> BillingEngineConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(env_file: Optional[str] = None) -> BillingEngineConfig:
    """Reload configuration (useful for testing)."""
    global _config
    _config = load_config(env_file)
    return _config
