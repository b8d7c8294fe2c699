"""
Shared configuration management for the Authorization Accounts service.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="AUTHORIZATION_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Binding
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=9091)

    # Credential store
    db_connection_string: Optional[str] = Field(default=None)
    db_query_timeout: Optional[float] = Field(default=None, gt=0)
    db_pool_min_size: int = Field(default=1, ge=0)
    db_pool_max_size: int = Field(default=10, ge=1)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str


def get_config(service_name: str, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, **overrides)
