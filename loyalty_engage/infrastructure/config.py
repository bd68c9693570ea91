"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LOYALTY_API_URL = "https://app.loyaltyengage.tech"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://loyalty:loyalty_dev_password@db:5432/loyalty"

    # Inbound authentication
    api_key: str = "dev-api-key-change-in-production"

    # Loyalty Engage API
    loyalty_api_url: str = DEFAULT_LOYALTY_API_URL
    tenant_id: str = ""
    bearer_token: str = ""
    http_timeout_seconds: float = Field(default=10.0, gt=0)

    # Logs request/response bodies of remote calls when enabled
    logger_enable: bool = False

    # Event export
    purchase_event: bool = True
    return_event: bool = True

    # Cart expiry sweep
    cart_expiry_minutes: int = Field(default=60, ge=0)
    cart_expiry_retry_limit: int = Field(default=0, ge=0)
    cart_expiry_interval_seconds: int = Field(default=60, gt=0)

    # Order placement sweep
    order_retrieve_limit: int = Field(default=5, ge=0)
    order_place_interval_seconds: int = Field(default=300, gt=0)

    scheduler_enabled: bool = True

    # Logging
    log_level: str = "INFO"


settings = Settings()
