"""
Shared configuration management for the content gateway.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


SUPPORTED_LOCALES = ("de-DE", "en-US", "ar-AE", "he-IL")


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="local", validation_alias="CONTENT_ENV")
    log_level: str = Field(default="info", validation_alias="CONTENT_LOG_LEVEL")
    debug: bool = Field(default=False, validation_alias="CONTENT_DEBUG")

    # Content backend
    directus_url: str = Field(default="http://localhost:8055", validation_alias="DIRECTUS_URL")
    directus_token: str = Field(default="", validation_alias="DIRECTUS_TOKEN")
    directus_timeout_seconds: float = Field(default=10.0, validation_alias="DIRECTUS_TIMEOUT_SECONDS")
    assets_url: Optional[str] = Field(default=None, validation_alias="DIRECTUS_ASSETS_URL")

    # Invalidation secrets
    revalidate_secret: str = Field(default="development_secret", validation_alias="REVALIDATE_SECRET")
    webhook_secret: str = Field(default="development_secret", validation_alias="DIRECTUS_WEBHOOK_SECRET")

    # Cache
    cache_disabled: bool = Field(default=False, validation_alias="DISABLE_API_CACHE")
    cache_stale_while_revalidate: int = Field(default=3600, validation_alias="CONTENT_CACHE_SWR_SECONDS")
    cache_sweep_interval_seconds: float = Field(default=60.0, validation_alias="CONTENT_CACHE_SWEEP_INTERVAL")

    # Localisation
    default_locale: str = Field(default="de-DE", validation_alias="CONTENT_DEFAULT_LOCALE")

    @property
    def resolved_assets_url(self) -> str:
        """Base URL used to build asset links for image fields."""
        return (self.assets_url or f"{self.directus_url.rstrip('/')}/assets").rstrip("/")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
