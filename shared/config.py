"""
Shared configuration management for the task manager services.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_JWT_SECRET = "your-super-secret-jwt-key-change-in-production"


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="TASKS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Backends
    store_backend: str = Field(default="memory")
    cache_backend: str = Field(default="memory")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    postgres_dsn: str = Field(default="postgresql://localhost:5432/tasks")
    postgres_min_pool_size: int = Field(default=1)
    postgres_max_pool_size: int = Field(default=10)
    cache_ttl_seconds: int = Field(default=300)

    # Internal services
    user_service_url: str = Field(default="http://localhost:8021")
    todo_service_url: str = Field(default="http://localhost:8020")
    downstream_timeout_seconds: float = Field(default=10.0)

    # Security
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET)
    jwt_expiration_hours: int = Field(default=24)

    # HTTP
    cors_allow_origins: List[str] = Field(default_factory=list)

    # Observability
    enable_tracing: bool = Field(default=False)
    otel_exporter: str = Field(default="http://localhost:4317")
    enable_console_tracing: bool = Field(default=False)


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
