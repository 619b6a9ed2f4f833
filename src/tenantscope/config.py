"""Engine configuration for tenantscope.

Pydantic-validated settings shared by the resolver, the evaluator and the
logging setup. Direct os.environ/os.getenv usage is limited to
``load_config_from_env()``; everything else receives an ``EngineConfig``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EngineConfig(BaseModel):
    """Configuration contract for the authorization engine.

    The rule set itself is fixed; these switches only toggle the
    supplementary checks layered on top of scope membership.
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
    service_name: Optional[str] = Field(
        default=None,
        description="Service name used as the package logger name",
    )

    # Rule switches
    exclude_incomplete_companies: bool = Field(
        default=True,
        description="Hide companies without a business type from operational scopes",
    )
    enforce_capabilities: bool = Field(
        default=False,
        description="Deny actions missing from the role capability matrix",
    )

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

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",
    }


_TRUTHY = ("true", "1", "yes", "on")


def load_config_from_env() -> EngineConfig:
    """Load engine configuration from environment variables.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - SERVICE_NAME: Service name for logger identification
    - TENANTSCOPE_EXCLUDE_INCOMPLETE_COMPANIES: default true
    - TENANTSCOPE_ENFORCE_CAPABILITIES: default false

    Returns:
        EngineConfig instance with values from environment or defaults.

    Raises:
        ConfigurationError: an environment value does not validate.
    """
    import os

    try:
        return EngineConfig(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_json=os.getenv("LOG_JSON", "false").lower() in _TRUTHY,
            service_name=os.getenv("SERVICE_NAME"),
            exclude_incomplete_companies=os.getenv("TENANTSCOPE_EXCLUDE_INCOMPLETE_COMPANIES", "true").lower()
            in _TRUTHY,
            enforce_capabilities=os.getenv("TENANTSCOPE_ENFORCE_CAPABILITIES", "false").lower() in _TRUTHY,
        )
    except ValidationError as e:
        fields = sorted(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ConfigurationError(f"Invalid engine configuration: {e}", fields=fields) from e


__all__ = [
    "EngineConfig",
    "LogLevel",
    "load_config_from_env",
]
