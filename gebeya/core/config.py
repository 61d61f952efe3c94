# gebeya/core/config.py

import os
from functools import lru_cache
from typing import Literal, Optional
from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./gebeya.db"
    DATABASE_ECHO: bool = False

    # Chapa payment gateway
    CHAPA_SECRET_KEY: str = ""
    CHAPA_BASE_URL: str = "https://api.chapa.co/v1"

    # Checkout behaviour
    VERIFICATION_TIMEOUT_SECONDS: float = 30.0
    MAX_VERIFICATION_RETRIES: int = 3
    MISSING_SUPPLIER_POLICY: Literal["allow", "reject"] = "allow"

    # Device-local key/value store (cart, saved address, favorites)
    LOCAL_STORE_PATH: str = "~/.gebeya/local_store.json"
    DEFAULT_COUNTRY: str = "Ethiopia"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    RUN_MIGRATIONS: bool = False

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists(os.environ.get('ENV_FILE', '.env')) else None,
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def use_async_driver(cls, v: str) -> str:
        # Hosting providers hand out plain postgresql:// URLs
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+asyncpg://", 1)
        return v

    @property
    def local_store_file(self) -> str:
        return os.path.expanduser(self.LOCAL_STORE_PATH)


@lru_cache()
def get_settings():
    """Cached settings to avoid loading .env file for every request"""
    return Settings()

def get_settings_no_cache():
    """Get settings without caching - useful for testing different environments"""
    return Settings()

def clear_settings_cache():
    """Clear the settings cache - useful when switching between environments"""
    get_settings.cache_clear()
