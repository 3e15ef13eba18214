"""Logging utilities for wrybridge.

Request-time failures are logged and turned into responses; nothing in
the logging layer raises.
"""

from __future__ import annotations

import logging
import sys

from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from .config import LogSettings


_DEFAULT_FORMAT = "%(name)s - %(levelname)s - %(message)s"


class _LoggerHolder:
    """Holder for the global logger instance."""

    instance: logging.Logger | None = None


def get_logger() -> logging.Logger:
    """Get the wrybridge logger instance.

    Returns
    -------
    logging.Logger
        The wrybridge logger configured with a stream handler.
    """
    if _LoggerHolder.instance is None:
        logger = logging.getLogger("wrybridge")
        logger.setLevel(logging.WARNING)

        if not logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
            logger.addHandler(handler)

        _LoggerHolder.instance = logger

    return _LoggerHolder.instance


def debug(msg: str) -> None:
    """Log a debug message."""
    get_logger().debug(msg)


def info(msg: str) -> None:
    """Log an info message."""
    get_logger().info(msg)


def warn(msg: str) -> None:
    """Log a warning message. Never raises exceptions."""
    get_logger().warning(msg)


def error(msg: str) -> None:
    """Log an error message. Never raises exceptions."""
    get_logger().error(msg)


def exception(msg: str) -> None:
    """Log an exception with full traceback.

    Call this from within an except block.

    Parameters
    ----------
    msg : str
        The error message to log alongside the traceback.
    """
    get_logger().exception(msg)


def set_level(level: int | str) -> None:
    """Set the logging level.

    Parameters
    ----------
    level : int or str
        The logging level (e.g., logging.DEBUG, "DEBUG").
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    get_logger().setLevel(level)


def enable_debug() -> None:
    """Enable debug mode for verbose request and script logging.

    Shows command dispatch, decoded payloads (redacted), static asset
    lookups and rendered script sizes.
    """
    set_level(logging.DEBUG)


def apply_log_settings(settings: LogSettings) -> None:
    """Apply level and format from the log settings section.

    Parameters
    ----------
    settings : LogSettings
        The ``[log]`` configuration section.
    """
    logger = get_logger()
    set_level(settings.level)
    for handler in logger.handlers:
        handler.setFormatter(logging.Formatter(settings.format))


# Keys whose values are never written to the log
_SENSITIVE_KEYS = frozenset(
    {
        "secret",
        "password",
        "api_key",
        "apikey",
        "token",
        "auth",
        "credential",
        "invoke_key",
    }
)


def redact_sensitive_data(data: Any, max_depth: int = 5) -> Any:
    """Redact sensitive values from data for safe logging.

    Recursively traverses dicts/lists and replaces values for keys
    that match sensitive patterns with "[REDACTED]".

    Parameters
    ----------
    data : Any
        The data to redact.
    max_depth : int, optional
        Maximum recursion depth (default: 5).

    Returns
    -------
    Any
        A copy of the data with sensitive values redacted.
    """
    if max_depth <= 0:
        return "[MAX_DEPTH]"

    if isinstance(data, dict):
        result: dict[Any, Any] = {}
        for k, v in data.items():
            key_lower = str(k).lower()
            if any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS):
                result[k] = "[REDACTED]"
            else:
                result[k] = redact_sensitive_data(v, max_depth - 1)
        return result

    if isinstance(data, list):
        return [redact_sensitive_data(item, max_depth - 1) for item in data]

    return data
