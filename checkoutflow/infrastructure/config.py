"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


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

    # Collaborators
    content_api_url: str = "http://localhost:5000/api"
    payments_api_url: str = "http://localhost:5000/api"
    analytics_url: str | None = None

    # Where the redirect provider sends the customer back
    public_base_url: str = "http://localhost:3000"

    # Timeouts (seconds)
    http_timeout_seconds: float = 10.0
    # Single attempt, no retries; exceeded -> Degraded
    order_lookup_timeout_seconds: float = 8.0
    analytics_timeout_seconds: float = 3.0

    # In-memory retention
    # Idle sessions are dropped after this long; Confirmed ones on settle
    checkout_session_ttl_seconds: float = 1800.0
    # Most recent outcome keys remembered for de-duplication
    analytics_dedup_capacity: int = 10_000

    # Logging
    log_level: str = "INFO"
    log_json: bool = True


settings = Settings()
