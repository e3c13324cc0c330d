"""
Configuration settings for the driver analytics service.

Uses Pydantic Settings to load environment variables for database connections,
connection pooling, pagination defaults, variant wiring, logging, and load
generation defaults.
"""
from __future__ import annotations

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("driver_analytics", alias="DB_NAME")
    db_statement_timeout_ms: int = Field(30_000, alias="DB_STATEMENT_TIMEOUT_MS")
    db_connect_timeout_seconds: int = Field(10, alias="DB_CONNECT_TIMEOUT_SECONDS")

    # Connection pool (fixed sizing, never computed)
    pool_min_size: int = Field(1, alias="POOL_MIN_SIZE")
    pool_max_size: int = Field(10, alias="POOL_MAX_SIZE")
    pool_timeout_seconds: float = Field(30.0, alias="POOL_TIMEOUT_SECONDS")

    # Pagination
    default_page_limit: int = Field(100, alias="DEFAULT_PAGE_LIMIT")
    max_page_limit: int = Field(1_000, alias="MAX_PAGE_LIMIT")

    # Variant wiring: gateway is "single" or "pooled", aggregation is "naive" or "store_side"
    optimized_gateway: str = Field("pooled", alias="OPTIMIZED_GATEWAY")
    optimized_aggregation: str = Field("store_side", alias="OPTIMIZED_AGGREGATION")
    unoptimized_gateway: str = Field("single", alias="UNOPTIMIZED_GATEWAY")
    unoptimized_aggregation: str = Field("naive", alias="UNOPTIMIZED_AGGREGATION")

    # HTTP
    server_host: str = Field("0.0.0.0", alias="SERVER_HOST")
    optimized_port: int = Field(5002, alias="OPTIMIZED_PORT")
    unoptimized_port: int = Field(5000, alias="UNOPTIMIZED_PORT")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Load generation defaults
    load_requests: int = Field(500, alias="LOAD_REQUESTS")
    load_concurrency: int = Field(50, alias="LOAD_CONCURRENCY")
    load_driver_range: int = Field(100, alias="LOAD_DRIVER_RANGE")

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
