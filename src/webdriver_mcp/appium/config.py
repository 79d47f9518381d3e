"""
Configuration management for the WebDriver MCP server

Loads Appium connection and server settings from environment variables
with sensible defaults.
"""

import logging
import os
from pathlib import Path
from typing_extensions import TypedDict
from urllib.parse import urlparse

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables from .env file
# Try multiple paths for .env file
env_loaded = False
for env_path in [
    Path.cwd() / ".env",
    Path(__file__).parent.parent.parent.parent / ".env",
    Path.home() / ".env",
]:
    if env_path.exists():
        logger.info(f"Loading environment from: {env_path}")
        load_dotenv(env_path)
        env_loaded = True
        break

if not env_loaded:
    logger.warning("No .env file found, using system environment variables only")


ENV_PREFIX = "WDIO_MCP_"


class AppiumConfig(TypedDict):
    """Configuration for Appium sessions and element tools"""

    # Connection
    appium_url: str
    new_command_timeout: int  # seconds, passed to Appium when not set by the caller

    # Element tools
    default_timeout_ms: int

    # Used when the driver cannot report its window size
    viewport_fallback_width: int
    viewport_fallback_height: int

    # Logging
    log_file: str
    log_level: str
    log_responses: bool  # include tool responses in the MCP request log


def _get_bool_env(key: str, default: bool) -> bool:
    """Get boolean environment variable"""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _validate_appium_url(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid {ENV_PREFIX}APPIUM_URL '{url}': must be an http(s) URL")
    return url.rstrip("/")


def load_appium_config() -> AppiumConfig:
    """
    Load Appium configuration from environment variables.

    Returns:
        AppiumConfig with all settings

    Raises:
        ValueError: If a setting is present but invalid
    """
    appium_url = _validate_appium_url(
        os.getenv(f"{ENV_PREFIX}APPIUM_URL", "http://127.0.0.1:4723")
    )

    default_timeout_ms = _get_int_env(f"{ENV_PREFIX}DEFAULT_TIMEOUT_MS", 3000)
    if default_timeout_ms <= 0:
        raise ValueError(f"{ENV_PREFIX}DEFAULT_TIMEOUT_MS must be positive, got {default_timeout_ms}")

    new_command_timeout = _get_int_env(f"{ENV_PREFIX}NEW_COMMAND_TIMEOUT", 300)
    if new_command_timeout < 0:
        raise ValueError(f"{ENV_PREFIX}NEW_COMMAND_TIMEOUT must be non-negative, got {new_command_timeout}")

    viewport_width = _get_int_env(f"{ENV_PREFIX}VIEWPORT_FALLBACK_WIDTH", 9999)
    viewport_height = _get_int_env(f"{ENV_PREFIX}VIEWPORT_FALLBACK_HEIGHT", 9999)
    if viewport_width <= 0 or viewport_height <= 0:
        raise ValueError("Viewport fallback size must be positive")

    log_level = os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper()
    if log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ValueError(f"Invalid {ENV_PREFIX}LOG_LEVEL '{log_level}'")

    config: AppiumConfig = {
        "appium_url": appium_url,
        "new_command_timeout": new_command_timeout,
        "default_timeout_ms": default_timeout_ms,
        "viewport_fallback_width": viewport_width,
        "viewport_fallback_height": viewport_height,
        "log_file": os.getenv(f"{ENV_PREFIX}LOG_FILE", "logs/webdriver-mcp.log"),
        "log_level": log_level,
        "log_responses": _get_bool_env(f"{ENV_PREFIX}LOG_RESPONSES", False),
    }

    logger.debug(f"Loaded Appium config: {config}")
    return config
