# ABOUTME: Application settings read from the environment (and an optional .env file).
# ABOUTME: Settings are loaded once and passed explicitly to providers, cache, and services.

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator


class Settings(BaseModel):
    """Runtime configuration for providers, cache, and HTTP client."""

    mapbox_access_token: str = ""
    openweathermap_app_id: str = ""
    redis_url: str = "redis://localhost:6379/0"
    weather_cache_ttl: int = 1800
    # 0 disables suggestion caching; every keystroke goes to the provider.
    suggestions_cache_ttl: int = 0
    http_timeout_s: float = 5.0
    address_provider: str = "mapbox"
    weather_provider: str = "openweathermap"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


_ENV_FIELDS = {
    "MAPBOX_ACCESS_TOKEN": "mapbox_access_token",
    "OPENWEATHERMAP_APP_ID": "openweathermap_app_id",
    "REDIS_URL": "redis_url",
    "WEATHER_CACHE_TTL": "weather_cache_ttl",
    "SUGGESTIONS_CACHE_TTL": "suggestions_cache_ttl",
    "HTTP_TIMEOUT_SECONDS": "http_timeout_s",
    "ADDRESS_PROVIDER": "address_provider",
    "WEATHER_PROVIDER": "weather_provider",
    "LOG_LEVEL": "log_level",
}


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Build Settings from environment variables, loading .env first.

    Unset variables keep their defaults; pydantic coerces numeric strings.
    """
    if environ is None:
        load_dotenv()
        environ = dict(os.environ)
    values = {field: environ[var] for var, field in _ENV_FIELDS.items() if var in environ}
    return Settings(**values)
