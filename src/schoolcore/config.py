"""Configuration contract for schoolcore.

This module provides the Pydantic-validated configuration model for the
authorization engine and entity store (LOG_LEVEL, STORE_BACKEND,
REDIS_URL, etc.).

Direct os.environ/os.getenv usage is FORBIDDEN outside
``load_config_from_env()``; everything else receives a ``CoreConfig``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StoreBackend(str, Enum):
    """Supported entity/grant store backends.

    - MEMORY: in-process dictionaries (tests, single-process tools)
    - REDIS: shared Redis instance (production)
    """

    MEMORY = "memory"
    REDIS = "redis"


class CoreConfig(BaseModel):
    """Configuration for the authorization engine and the entity store.

    RULE: All settings MUST come through this model.
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Storage
    store_backend: StoreBackend = Field(
        default=StoreBackend.MEMORY,
        description="Backend for blocks, relations and direct grants",
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL (e.g., redis://localhost:6379/0)",
    )
    key_prefix: str = Field(
        default="schoolcore",
        description="Namespace prefix for every key written to the store",
    )

    # Authorization
    layers_path: Optional[str] = Field(
        default=None,
        description="JSON file with the layer tree; built-in layers when unset",
    )

    # Service identification
    service_name: Optional[str] = Field(
        default=None,
        description="Service name for log identification",
    )

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate Redis URL format."""
        if v is None:
            return v
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("Redis URL must start with redis://, rediss://, or unix://")
        return v

    @field_validator("key_prefix")
    @classmethod
    def validate_key_prefix(cls, v: str) -> str:
        v = v.strip().rstrip(":")
        if not v:
            raise ValueError("Key prefix must not be empty")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    @field_validator("store_backend", mode="before")
    @classmethod
    def validate_store_backend(cls, v: str | StoreBackend) -> StoreBackend:
        if isinstance(v, StoreBackend):
            return v
        try:
            return StoreBackend(str(v).lower())
        except ValueError:
            raise ValueError(f"Invalid store backend: {v}. Must be one of {[e.value for e in StoreBackend]}")

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",  # Prevent accidental extra fields
    }


def load_config_from_env() -> CoreConfig:
    """Load configuration from environment variables.

    This is the ONLY place where os.getenv is allowed.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - STORE_BACKEND: memory | redis (default: memory)
    - REDIS_URL: Redis connection URL
    - KEY_PREFIX: Key namespace (default: schoolcore)
    - LAYERS_PATH: JSON layer tree file
    - SERVICE_NAME: Service name for logs

    Returns:
        CoreConfig instance with values from environment or defaults.
    """
    import os

    return CoreConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in ("true", "1", "yes"),
        store_backend=os.getenv("STORE_BACKEND", "memory"),
        redis_url=os.getenv("REDIS_URL"),
        key_prefix=os.getenv("KEY_PREFIX", "schoolcore"),
        layers_path=os.getenv("LAYERS_PATH") or None,
        service_name=os.getenv("SERVICE_NAME"),
    )


__all__ = [
    "CoreConfig",
    "LogLevel",
    "StoreBackend",
    "load_config_from_env",
]
