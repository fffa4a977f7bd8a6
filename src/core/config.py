"""Application configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Identity provider (GoTrue-compatible auth API).
    # Accepts the variable names used by Supabase-hosted frontends as aliases.
    auth_provider_url: str = Field(
        default="",
        validation_alias=AliasChoices(
            "auth_provider_url", "SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL",
        ),
    )
    auth_provider_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "auth_provider_key", "SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY",
        ),
    )
    oauth_provider: str = "google"
    provider_timeout: float = 10.0

    # Public origin used to build the OAuth callback URL.
    # Empty means "use the origin of the incoming request".
    site_url: str = ""

    # Database
    database_url: str = "sqlite+aiosqlite:///./bookmarks.db"

    # Redis (change feed)
    redis_url: str = "redis://localhost:6379"
    redis_enabled: bool = True

    # Session cookies
    session_cookie_name: str = "sb-auth-token"
    cookie_secure: bool = False

    log_level: str = "INFO"

    @property
    def provider_config_error(self) -> str | None:
        """Reason the identity provider settings are unusable, or None if they are fine."""
        url = self.auth_provider_url.strip()
        if not url:
            return "AUTH_PROVIDER_URL is not set"
        if not url.startswith(("http://", "https://")):
            return "AUTH_PROVIDER_URL must start with http:// or https://"
        if not self.auth_provider_key.strip():
            return "AUTH_PROVIDER_KEY is not set"
        return None

    @property
    def provider_configured(self) -> bool:
        """True when both identity provider values are present and well-formed."""
        return self.provider_config_error is None

    @property
    def auth_base_url(self) -> str:
        """Base URL of the provider's auth API (no trailing slash)."""
        return f"{self.auth_provider_url.strip().rstrip('/')}/auth/v1"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
