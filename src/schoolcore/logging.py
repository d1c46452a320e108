"""Centralized logging utilities for schoolcore.

This module provides:
- Logging configuration from CoreConfig
- Safe preview utilities for block attributes and other payloads
- Secret redaction
- Structured logging with user/layer context on every access decision
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from .config import CoreConfig, LogLevel


# Patterns for detecting secrets (common patterns to redact)
SECRET_PATTERNS = [
    r'(?i)(?:password|passwd|pwd|secret|token|key|api[_-]?key|auth[_-]?token)\s*[:=]\s*["\']?([^"\'\s]+)',
    r'(?i)(?:bearer|basic)\s+([a-zA-Z0-9+/=]+)',
    r'(?i)(?:sk-|pk-)[a-zA-Z0-9]{32,}',
    r'[a-f0-9]{32,}',  # Long hex strings (could be hashes or keys)
    r'\$2[aby]\$\d{2}\$[./A-Za-z0-9]{53}',  # bcrypt hashes stored on user blocks
]

# Record attributes owned by logging itself; everything else is an "extra".
_RESERVED_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "exc_info", "exc_text", "stack_info",
        "taskName", "user_id", "layer_id",
    }
)


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a safe, length-bounded preview of a value for logging.

    Converts any value to a single-line string, normalizes whitespace
    and truncates to ``limit`` characters.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A safe, truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


def redact_secrets(text: str, replacement: str = "[REDACTED]") -> str:
    """Redact secret patterns (passwords, tokens, hashes) from text.

    Args:
        text: The text to redact
        replacement: String to replace secrets with (default: "[REDACTED]")

    Returns:
        Text with secrets redacted
    """
    if not isinstance(text, str):
        return text

    result = text
    for pattern in SECRET_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE | re.DOTALL)

    return result


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """Preview plus optional redaction. Use this for any payload in a log line."""
    preview = safe_preview(value, limit=limit)
    if redact:
        preview = redact_secrets(preview)
    return preview


class SchoolCoreFormatter(logging.Formatter):
    """Formatter that includes user/layer context and optional JSON output.

    This formatter:
    - Extracts user_id and layer_id from log records (if available)
    - Formats logs as JSON or plain text
    - Includes safe previews of extra fields
    - Redacts secrets automatically
    """

    def __init__(
        self,
        include_context: bool = True,
        json_format: bool = True,
        redact_secrets: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.include_context = include_context
        self.json_format = json_format
        self.redact_secrets = redact_secrets

    def format(self, record: logging.LogRecord) -> str:
        user_id = getattr(record, "user_id", None)
        layer_id = getattr(record, "layer_id", None)

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            if user_id:
                log_data["user_id"] = str(user_id)
            if layer_id:
                log_data["layer_id"] = str(layer_id)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = safe_log_value(value, redact=self.redact_secrets)

        if self.redact_secrets:
            log_data["message"] = redact_secrets(log_data["message"])

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        if self.include_context and user_id:
            parts.append(f"user_id={log_data['user_id']}")
        if self.include_context and layer_id:
            parts.append(f"layer_id={log_data['layer_id']}")
        parts.append(f": {log_data['message']}")
        return " ".join(parts)


class AccessLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds user_id and layer_id to log records.

    Usage:
        logger = get_access_logger(__name__, user_id="u1")
        logger.info("Granted", layer_id="board.school.7")
    """

    def __init__(
        self,
        logger: logging.Logger,
        user_id: Optional[str] = None,
        layer_id: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.user_id = user_id
        self.layer_id = layer_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        user_id = kwargs.pop("user_id", self.user_id)
        layer_id = kwargs.pop("layer_id", self.layer_id)

        extra = kwargs.get("extra", {})
        if user_id:
            extra["user_id"] = user_id
        if layer_id:
            extra["layer_id"] = layer_id
        kwargs["extra"] = extra

        return msg, kwargs


def setup_logging(
    config: Optional[CoreConfig] = None,
    json_format: Optional[bool] = None,
    redact_secrets: bool = True,
) -> None:
    """Configure root logging from a CoreConfig.

    Sets the level, installs a single console handler with
    SchoolCoreFormatter and enables secret redaction.

    Args:
        config: CoreConfig instance (if None, loads from environment)
        json_format: Override ``config.log_json``
        redact_secrets: Whether to redact secrets (default: True)
    """
    if config is None:
        from .config import load_config_from_env

        config = load_config_from_env()

    log_level = getattr(logging, LogLevel(config.log_level).value, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        SchoolCoreFormatter(
            include_context=True,
            json_format=config.log_json if json_format is None else json_format,
            redact_secrets=redact_secrets,
        )
    )
    root_logger.addHandler(console_handler)

    if config.service_name:
        logging.getLogger(config.service_name).setLevel(log_level)


def get_access_logger(
    name: str,
    user_id: Optional[str] = None,
    layer_id: Optional[str] = None,
) -> AccessLoggerAdapter:
    """Get a logger adapter carrying user/layer context.

    Args:
        name: Logger name (typically __name__)
        user_id: Optional user id to include in all logs
        layer_id: Optional layer id to include in all logs

    Example:
        logger = get_access_logger(__name__)
        logger.debug("Denied %s", action, user_id=user_id, layer_id=layer_id)
    """
    return AccessLoggerAdapter(logging.getLogger(name), user_id=user_id, layer_id=layer_id)


__all__ = [
    "safe_preview",
    "redact_secrets",
    "safe_log_value",
    "SchoolCoreFormatter",
    "AccessLoggerAdapter",
    "setup_logging",
    "get_access_logger",
]
