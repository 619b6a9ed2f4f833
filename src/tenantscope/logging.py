"""Logging utilities for tenantscope.

This module provides:
- Logging configuration from EngineConfig
- Safe preview utilities for identifiers and payloads
- Structured (JSON) or plain-text formatting
- Identity-aware logger adapter (request_id, user_id, role)

Authorization decisions are not logged here; they are returned as audit
events. Only storage transactions and identity construction log.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from .config import EngineConfig, LogLevel
from .identity import IdentityContext

# Attributes every LogRecord carries; anything else came in via ``extra``.
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info", "taskName",
    "request_id", "user_id", "role",
})

_IDENTITY_FIELDS = ("request_id", "user_id", "role")


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a length-bounded, single-line preview of a value for logging.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list, tuple, set, frozenset)):
        try:
            s = json.dumps(
                sorted(value) if isinstance(value, (set, frozenset)) else value,
                default=str,
                ensure_ascii=False,
            )
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"
    return s


class TenancyLogFormatter(logging.Formatter):
    """Formatter that includes request identity and optional JSON output."""

    def __init__(
        self,
        include_identity: bool = True,
        json_format: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        """Initialize the formatter.

        Args:
            include_identity: Whether to include request_id/user_id/role
            json_format: Whether to output JSON (True) or plain text (False)
        """
        super().__init__(*args, **kwargs)
        self.include_identity = include_identity
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_identity:
            for field in _IDENTITY_FIELDS:
                value = getattr(record, field, None)
                if value:
                    log_data[field] = str(getattr(value, "value", value))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = safe_preview(value)

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            log_data["level"],
            log_data["logger"],
        ]
        for field in _IDENTITY_FIELDS:
            if field in log_data:
                parts.append(f"{field}={log_data[field]}")
        parts.append(f": {log_data['message']}")
        text = " ".join(parts)
        if "exception" in log_data:
            text = f"{text}\n{log_data['exception']}"
        return text


class IdentityLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds request identity to every record.

    Usage:
        logger = get_identity_logger(__name__, ctx, request_id="req-42")
        logger.info("Deletion plan applied")
    """

    def __init__(
        self,
        logger: logging.Logger,
        ctx: Optional[IdentityContext] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.ctx = ctx
        self.request_id = request_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        request_id = kwargs.pop("request_id", self.request_id)
        ctx = kwargs.pop("ctx", self.ctx)

        extra = dict(kwargs.get("extra") or {})
        if request_id:
            extra["request_id"] = request_id
        if isinstance(ctx, IdentityContext):
            extra["user_id"] = ctx.user_id
            extra["role"] = ctx.role.value
        kwargs["extra"] = extra

        return msg, kwargs


def _level_of(level: LogLevel | str) -> int:
    name = level.value if isinstance(level, LogLevel) else str(level).upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def setup_logging(
    config: Optional[EngineConfig] = None,
    json_format: Optional[bool] = None,
    service_name: Optional[str] = None,
) -> None:
    """Configure the root logger for a service embedding the engine.

    Args:
        config: EngineConfig instance (if None, loads from environment)
        json_format: Override ``config.log_json``
        service_name: Override ``config.service_name``
    """
    if config is None:
        from .config import load_config_from_env
        config = load_config_from_env()

    log_level = _level_of(config.log_level)
    if json_format is None:
        json_format = config.log_json
    service_name = service_name or config.service_name

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(TenancyLogFormatter(include_identity=True, json_format=json_format))
    root_logger.addHandler(console_handler)

    logging.getLogger("tenantscope").setLevel(log_level)
    if service_name:
        logging.getLogger(service_name).setLevel(log_level)


def get_identity_logger(
    name: str,
    ctx: Optional[IdentityContext] = None,
    request_id: Optional[str] = None,
) -> IdentityLoggerAdapter:
    """Get a logger adapter bound to one request's identity.

    Args:
        name: Logger name (typically __name__)
        ctx: Optional IdentityContext whose user_id/role are attached
        request_id: Optional request correlation id

    Returns:
        IdentityLoggerAdapter instance
    """
    return IdentityLoggerAdapter(logging.getLogger(name), ctx=ctx, request_id=request_id)


__all__ = [
    "IdentityLoggerAdapter",
    "TenancyLogFormatter",
    "get_identity_logger",
    "safe_preview",
    "setup_logging",
]
