"""
Configuration settings for the PlaceKit client.

All settings are loaded from environment variables prefixed with
``PLACEKIT_`` and fall back to sensible defaults. A ``.env`` file is read
for local development.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PLACEKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Credentials ===
    API_KEY: Optional[str] = None
    APP_ID: Optional[str] = None

    # === Host cascade (index 0 tried first) ===
    HOSTS: list[str] = ["https://api.placekit.co"]
    LEGACY_HOST_BOUND: bool = False  # True: last host is never a retry target

    # === Default request options ===
    DEFAULT_MAX_RESULTS: int = 5
    DEFAULT_TIMEOUT_MS: Optional[int] = None  # None: no local cancellation

    # === HTTP connection pool ===
    MAX_CONNECTIONS: int = 10
    MAX_KEEPALIVE_CONNECTIONS: int = 5
    KEEPALIVE_EXPIRY: float = 30.0  # seconds

    # === Logging ===
    CONFIGURE_LOGGING: bool = False  # True: the client installs its own log handler
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # === Monitoring ===
    METRICS_ENABLED: bool = True


# Global settings instance
settings = Settings()
