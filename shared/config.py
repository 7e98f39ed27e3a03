"""
Shared configuration management for the Kratos Session Access Layer.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Identity provider (Ory Kratos)
    kratos_public_url: str = Field(default="http://localhost:4433")
    kratos_admin_url: str = Field(default="http://localhost:4434")
    kratos_admin_token: Optional[str] = Field(default=None)
    kratos_timeout_seconds: float = Field(default=10.0, gt=0)

    # Paths served without a session
    auth_bypass_paths: List[str] = Field(
        default_factory=lambda: ["/health", "/metrics", "/docs", "/openapi.json", "/redoc"]
    )

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
