"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    resend_api_key: str = ""
    email_from: str = "onboarding@resend.dev"
    app_name: str = "Proof"
    timezone: str = "UTC"
    photos_dir: str = "proof_photos"
    rate_limit_allowlist: str | None = None
    token_ttl_minutes: int = 10
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_allowlist(raw: str | None) -> frozenset[str]:
    """Parse identifiers exempt from rate limiting from env."""
    if raw is None:
        return frozenset()
    return frozenset(
        chunk.strip().lower() for chunk in raw.split(",") if chunk.strip()
    )
