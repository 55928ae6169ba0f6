"""Settings for the order engine, read from the environment or ``.env``."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings. ``SUPABASE_URL`` and ``SUPABASE_SECRET_KEY`` are required."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="orderflow-backend")
    app_env: str = Field(default="development", description="development, staging or production")
    debug: bool = Field(default=False, description="Expose the OpenAPI docs and enable reload")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)
    cors_origins: str = Field(default="http://localhost:3000", description="Comma-separated allowed origins")

    # Record store
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Service key used for all table access")
    store_metadata_ttl_seconds: float = Field(
        default=60.0,
        ge=0,
        description="Seconds a loaded store metadata handle is reused before it is refreshed",
    )

    # Notifications and email
    notification_feed_limit: int = Field(default=50, ge=1, description="Notifications returned per feed")
    resend_api_key: str = Field(default="", description="Resend API key; empty disables outbound email")
    email_from_address: str = Field(default="Orderflow <noreply@orderflow.example.com>")
    email_outbox_max_size: int = Field(default=1000, ge=1, description="Queued emails beyond this are dropped")
    frontend_url: str = Field(default="http://localhost:3000", description="Admin console base URL for email links")

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def email_enabled(self) -> bool:
        return bool(self.resend_api_key)


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings; ``get_settings.cache_clear()`` reloads them."""
    return Settings()
