"""
Appium Session Package

Connects to an Appium server and manages device sessions for the MCP tools.
"""

from .config import AppiumConfig, load_appium_config
from .session import APP_STATE_NAMES, NATIVE_CONTEXT, AppiumSession, detect_platform, parse_selector
from .session_registry import SessionRegistry

__all__ = [
    "APP_STATE_NAMES",
    "NATIVE_CONTEXT",
    "AppiumConfig",
    "load_appium_config",
    "AppiumSession",
    "detect_platform",
    "parse_selector",
    "SessionRegistry",
]
