"""
Shared configuration management for the weather lookup service.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="WEATHER_",
        env_file=".env",
        case_sensitive=False,
        extra="allow",
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # Key-value store
    redis_url: str = "redis://localhost:6379/0"
    store_timeout_seconds: float = 1.0

    # Freshness and retention. Retention must stay longer than the
    # freshness TTL, otherwise stale records are gone before they can be served.
    cache_ttl_seconds: int = 60
    cache_retention_seconds: int = 600

    # Upstream provider
    openweather_provider: str = "real"
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"
    openweather_api_key: str = ""
    upstream_timeout_seconds: float = 5.0
    lookup_upstream_timeout_seconds: float = 6.0

    # Mock provider
    enable_mock_provider: bool = True
    mock_openweather_base_url: Optional[str] = None
    mock_openweather_base_path: str = "/mock/openweather"
    mock_default_delay_ms: int = 0

    # Rate limiting
    rate_limit_max_requests: int = 100
    rate_limit_window_ms: int = 60000
    rate_limit_cleanup_threshold: int = 1000
    trust_forwarded_headers: bool = False

    # Static data
    cities_file: str = "data/cities.csv"


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
