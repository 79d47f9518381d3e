"""
Logging configuration utilities for webdriver-mcp

stdout carries the MCP JSON-RPC stream when the server runs over stdio,
so everything here logs to a file and never to the console.
"""

import functools
import json
import logging
import tempfile
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar

T = TypeVar("T")

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Key fragments whose values never reach the log. Device farm capabilities
# carry credentials as e.g. "accessKey" or "bstack:options.password".
SENSITIVE_KEY_PARTS = ("token", "password", "secret", "key", "credential")

REDACTED = "***REDACTED***"


def _open_log_handler(log_path: Path) -> tuple[logging.FileHandler, Path]:
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path), log_path
    except OSError:
        fallback = Path(tempfile.gettempdir()) / log_path.name
        return logging.FileHandler(fallback), fallback


def setup_file_logging(
    log_file: str | Path = "logs/webdriver-mcp.log",
    level: int = logging.INFO,
    format_string: str | None = None,
) -> logging.Logger:
    """
    Route all logging to a single file.

    Replaces any handlers already installed on the root logger. When the
    log directory cannot be created (read-only install, sandboxed client)
    the file is written to the system temp directory instead.

    Args:
        log_file: Path to the log file (relative or absolute)
        level: Logging level (default: logging.INFO)
        format_string: Custom format string (default: DEFAULT_FORMAT)

    Returns:
        The root logger instance
    """
    handler, log_path = _open_log_handler(Path(log_file))

    logging.basicConfig(
        level=level,
        format=format_string or DEFAULT_FORMAT,
        handlers=[handler],
        force=True,
    )

    logger = logging.getLogger()
    logger.info(f"Logging configured: file={log_path}, level={logging.getLevelName(level)}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module (typically __name__)."""
    return logging.getLogger(name)


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(part in lowered for part in SENSITIVE_KEY_PARTS)


def _log_items(
    logger: logging.Logger, data: Mapping[str, Any], level: int, indent: str
) -> None:
    for key, value in data.items():
        if _is_sensitive(key):
            logger.log(level, f"{indent}{key}: {REDACTED}")
        elif isinstance(value, Mapping):
            logger.log(level, f"{indent}{key}:")
            _log_items(logger, value, level, indent + "  ")
        else:
            logger.log(level, f"{indent}{key}: {value}")


def log_dict(
    logger: logging.Logger, message: str, data: Mapping[str, Any], level: int = logging.INFO
) -> None:
    """
    Log a mapping as one "key: value" line per entry.

    Nested mappings (vendor capability blocks such as "bstack:options")
    are indented. Values under credential-like keys are redacted at any
    depth.

    Args:
        logger: Logger instance
        message: Header line
        data: Mapping to log
        level: Log level (default: INFO)
    """
    logger.log(level, message)
    _log_items(logger, data, level, "  ")


def log_tool_result(
    logger: logging.Logger | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator that logs the result of an async tool function as JSON.

    Exceptions propagate unchanged. Results that cannot be JSON encoded are
    logged through str().

    Args:
        logger: Logger to use (default: the decorated function's module logger)
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        tool_logger = logger or logging.getLogger(func.__module__)

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            result = await func(*args, **kwargs)
            try:
                rendered = json.dumps(result, indent=2, default=str)
            except (TypeError, ValueError):
                rendered = str(result)
            tool_logger.info(f"TOOL_RESULT [{func.__name__}]:\n{rendered}")
            return result

        return wrapper

    return decorator
