"""
Configuration settings for the demonlist core.

Uses Pydantic Settings to load environment variables for database connections,
the worker pool, list boundaries, credentials and logging.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("demonlist", alias="DB_NAME")

    # Connection pool
    pool_min_size: int = Field(1, alias="POOL_MIN_SIZE")
    pool_max_size: int = Field(10, alias="POOL_MAX_SIZE")
    pool_timeout_seconds: float = Field(30.0, alias="POOL_TIMEOUT_SECONDS")

    # Worker pool
    worker_count: int = Field(4, alias="WORKER_COUNT")

    # List boundaries
    list_size: int = Field(75, alias="LIST_SIZE")
    extended_list_size: int = Field(150, alias="EXTENDED_LIST_SIZE")

    # Credentials
    secret_key: str = Field("insecure-development-secret", alias="SECRET_KEY")
    password_hash_iterations: int = Field(100_000, alias="PASSWORD_HASH_ITERATIONS")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    json_logs: bool = Field(False, alias="JSON_LOGS")

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


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a libpq connection URL from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


__all__ = ["Settings", "get_settings", "build_dsn"]
