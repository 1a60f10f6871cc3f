"""
Library configuration and environment variables.

This module unifies configuration using pydantic-settings.
Variables can come from:
1. .env file
2. System environment variables (have priority)
3. Default values

Naming convention:
- In Python code: snake_case (depot_provider)
- In .env or ENV vars: prefixed UPPER_CASE (CERTDEPOT_DEPOT_PROVIDER)
"""

from datetime import timedelta
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Unified certdepot configuration.

    Example:
        # In .env or as environment variable:
        CERTDEPOT_DEPOT_PROVIDER=dynamodb
        CERTDEPOT_DYNAMODB_TABLE=certs
        CERTDEPOT_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="CERTDEPOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================================================
    # LOGGING SETTINGS
    # ============================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(
        default="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",  # noqa: E501
        description="Log format",
    )
    logger_enqueue: bool = Field(
        default=False, description="Enqueue logs using multiprocessing"
    )

    # ============================================================================
    # DEPOT SETTINGS
    # ============================================================================
    depot_provider: str = Field(
        default="file",
        description="Storage backend for the depot (file, dynamodb)",
    )
    file_depot_dir: str = Field(
        default="./.certdepot",
        description="Directory used by the filesystem depot",
    )
    default_ca: str = Field(
        default="",
        description="Name of the CA used by find/generate when none is given",
    )
    default_expiration_seconds: int = Field(
        default=0,
        description="Lifetime of generated certificates when options omit one",
    )

    # DynamoDB depot configuration
    dynamodb_table: str = Field(
        default="certdepot-certificates",
        description="DynamoDB table name for depot records",
    )
    aws_region: str = Field(default="us-east-1", description="AWS region")
    dynamodb_host: str | None = Field(
        default=None,
        description="DynamoDB endpoint override (e.g. http://localhost:8000)",
    )
    auto_create_table: bool = Field(
        default=False,
        description="Create the DynamoDB table if it does not exist",
    )

    @property
    def default_expiration(self) -> timedelta:
        """Default certificate lifetime as a timedelta."""
        return timedelta(seconds=self.default_expiration_seconds)


@lru_cache
def get_settings() -> Settings:
    """
    Get library settings (LRU cached).

    The .env file is only read once. To refresh the configuration:
        get_settings.cache_clear()
    """
    return Settings()


settings = get_settings()
