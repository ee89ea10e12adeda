"""Configuration management using Pydantic Settings.

Priority order:
1. Environment variables prefixed with NEWSDESK_ (highest priority)
2. .env file (for local development fallback)
3. Defaults below
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the news front-end data layer."""

    model_config = SettingsConfigDict(
        env_prefix="NEWSDESK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # News backend
    api_base_url: str = "http://localhost:5000"
    health_path: str = "/api/health"
    request_timeout_seconds: float = 10.0

    # Connectivity probing
    probe_interval_seconds: float = 60.0
    probe_timeout_seconds: float = 5.0

    # Fallback texts used when neither the payload nor the caller supplies one
    default_empty_message: str = "No data found"
    default_error_message: str = "Something went wrong"
    default_fetch_failure_message: str = "Failed to fetch data"

    @property
    def health_url(self) -> str:
        """Absolute URL of the backend health endpoint."""
        return f"{self.api_base_url.rstrip('/')}{self.health_path}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Default settings instance
settings = get_settings()
