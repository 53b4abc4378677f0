"""
Shared configuration management for the Review Aggregation Gateway.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="REVIEWS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Cache store
    redis_url: str = Field(default="redis://localhost:6379/0")
    cache_ttl_seconds: int = Field(default=7 * 24 * 60 * 60)

    # Upstream review search
    serpapi_url: str = Field(default="https://serpapi.com/search.json")
    serpapi_engine: str = Field(default="google_maps_reviews")
    upstream_timeout_seconds: float = Field(default=30.0)

    # Pagination
    max_pages: int = Field(default=20)
    page_delay_seconds: float = Field(default=0.2)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port)
