"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Backend service
    backend_url: str = Field(
        default="",
        validation_alias=AliasChoices("backend_url", "supabase_url"),
    )
    backend_anon_key: str = Field(
        default="",
        validation_alias=AliasChoices("backend_anon_key", "supabase_anon_key"),
    )
    backend_service_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "backend_service_key", "supabase_service_role_key"
        ),
    )
    backend_timeout_seconds: float = 10.0

    # Admin endpoints
    admin_api_token: str = ""

    # Public site, used for password reset redirects and the sitemap
    site_url: str = ""

    # Platform stats
    stats_cache_ttl_seconds: float = 15.0
    stats_poll_interval_seconds: float = 30.0

    # Search
    search_debounce_ms: int = Field(default=400, ge=300, le=500)

    # Logging
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def admin_backend_key(self) -> str:
        """Key used by admin endpoints; service key when available."""
        return self.backend_service_key or self.backend_anon_key


settings = Settings()
