"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    entra_tenant_id: str | None = None
    entra_client_id: str | None = None
    entra_client_secret: str | None = None
    entra_jwks_url: str | None = None
    cookie_secret: str | None = None
    session_cookie_expiration: int = 6 * 60 * 60
    login_page: str = "/public/welcome"
    content_origin: str
    content_origin_token: str | None = None
    access_config_path: str = "/config/access"
    allowed_email_domains: str = "coca-cola.com,adobe.com"
    production_hosts: str = ""
    rights_notification_emails: str = ""
    cors_allowed_origins: str = ""
    cors_allowed_origin_regex: str | None = None
    kv_propagation_delay_seconds: float = 0.8
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def missing_auth_settings(self) -> list[str]:
        """Return the names of unset settings the login flow depends on."""
        required = {
            "entra_tenant_id": self.entra_tenant_id,
            "entra_client_id": self.entra_client_id,
            "entra_client_secret": self.entra_client_secret,
            "entra_jwks_url": self.entra_jwks_url,
            "cookie_secret": self.cookie_secret,
        }
        return [name for name, value in required.items() if not value]


def parse_csv(raw: str | None) -> tuple[str, ...]:
    """Parse a comma-separated setting into lowercased, non-empty values."""
    if raw is None:
        return ()
    values: list[str] = []
    for chunk in raw.split(","):
        value = chunk.strip().lower()
        if value and value not in values:
            values.append(value)
    return tuple(values)
