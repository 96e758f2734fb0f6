"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Centralised settings for the service."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./hangry.db"

    # Upstream place-data provider. A missing key disables every upstream
    # call; the enrichment pipeline falls back to cached data and stock images.
    google_places_api_key: Optional[str] = None
    places_provider: str = "google"
    search_category: str = "restaurant"
    upstream_timeout_seconds: float = 20.0

    # Security
    allowed_origins: str = "http://localhost:3000"

    # App
    app_env: str = "development"
    log_level: str = "INFO"

    # Derived
    @property
    def allowed_origins_list(self) -> list[str]:
        """Return ALLOWED_ORIGINS as a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()


settings = get_settings()
