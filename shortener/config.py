"""Configuration management for the URL shortener service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Import**::
    from shortener.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    store_url = settings.DATABASE_URL

**Step 3 — Derive the service base**::
    print(settings.service_base)  # "localhost:8080"

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- SHORTENER_CLEAR_TIME <= 0 disables the periodic store reset.
- An unset REDIS_URL disables the lookup cache.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "url-shortener"
    APP_ENV: str = "development"

    # HTTP server
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Mapping store (any SQLAlchemy async URL)
    DATABASE_URL: str = "postgresql+asyncpg://shortener:shortener@db:5432/shortener"

    # Short URLs are minted under SHORTENER_DOMAIN:PORT
    SHORTENER_DOMAIN: str = "localhost"

    # Seconds between full store resets; <= 0 disables
    SHORTENER_CLEAR_TIME: int = -1

    # Long URLs added (after a clear) on startup
    SEED_URLS: list[str] = []

    # Redis lookup cache
    REDIS_URL: str | None = None
    CACHE_TTL_SECONDS: int = 3600

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def service_base(self) -> str:
        return f"{self.SHORTENER_DOMAIN}:{self.PORT}"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
