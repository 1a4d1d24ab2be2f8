"""
Configuration settings for zorm.

Uses Pydantic Settings to load environment variables for the default database
URL, the session-level lazy fetching default, pool sizing and logging.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    database_url: str = Field("sqlite://:memory:", alias="ZORM_DATABASE_URL")
    pool_min_size: int = Field(1, alias="ZORM_POOL_MIN_SIZE")
    pool_max_size: int = Field(10, alias="ZORM_POOL_MAX_SIZE")
    connect_retries: int = Field(3, alias="ZORM_CONNECT_RETRIES")

    # Sessions
    auto_fetching_fields_on_read: bool = Field(
        False, alias="ZORM_AUTO_FETCHING_FIELDS_ON_READ"
    )

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
