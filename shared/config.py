"""
Shared configuration management for the session service.
"""

from datetime import timedelta
from enum import Enum
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SameSitePolicy(str, Enum):
    """SameSite attribute applied to the session cookie."""

    LAX = "lax"
    STRICT = "strict"
    NONE = "none"
    UNSPECIFIED = "unspecified"

    def as_cookie_attribute(self) -> Optional[str]:
        """Value for Starlette's ``set_cookie``; ``None`` omits the attribute."""
        if self is SameSitePolicy.UNSPECIFIED:
            return None
        return self.value


class SessionOptions(BaseSettings):
    """Options recognised by the lazy session middleware."""

    model_config = SettingsConfigDict(
        env_prefix="SESSION_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    cookie_name: str = Field(default=".AspNetCore.Session")
    cookie_path: Optional[str] = Field(default="/")
    idle_timeout: timedelta = Field(default=timedelta(minutes=20))
    same_site: SameSitePolicy = Field(default=SameSitePolicy.LAX)


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="ACCESS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    session_cache_backend: str = Field(default="memory")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port)


def get_session_options(**overrides) -> SessionOptions:
    """Load session options from the environment, applying explicit overrides."""
    return SessionOptions(**overrides)
