"""
Adapter configuration loaded from environment variables.

These values are the built-in defaults for every registered connection;
anything set on a ConnectionConfig or in its URL query string wins.
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Adapter settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MONGO_ADAPTER_", env_file=".env", extra="ignore"
    )

    # MongoDB
    host: str = Field(default="localhost")
    port: int = Field(default=27017)
    database: Optional[str] = Field(default=None)
    url: Optional[str] = Field(default=None)

    # Pool / topology
    pool_size: int = Field(default=50)
    auto_reconnect: bool = Field(default=True)
    reconnect_tries: int = Field(default=30)
    reconnect_interval: int = Field(default=1000)
    unified_topology: bool = Field(default=False)

    # Logging
    log_level: str = Field(default="INFO")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
