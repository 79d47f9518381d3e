"""
Custom JMESPath functions for filtering element lists.

Adds nvl(), int(), str() and regex_replace() on top of the built-in
JMESPath function set.
"""

import re
from typing import Any

import jmespath
from jmespath import functions


class CustomFunctions(functions.Functions):
    """JMESPath functions available to jmespath_query parameters."""

    @functions.signature({"types": []}, {"types": []})
    def _func_nvl(self, value: Any, default: Any) -> Any:
        """Return default if value is null."""
        return default if value is None else value

    @functions.signature({"types": []})
    def _func_int(self, value: Any) -> int | None:
        """Convert to integer, null on failure."""
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    @functions.signature({"types": []})
    def _func_str(self, value: Any) -> str | None:
        """Convert to string, keeping null."""
        if value is None:
            return None
        return str(value)

    @functions.signature({"types": ["string"]}, {"types": ["string"]}, {"types": ["string", "null"]})
    def _func_regex_replace(self, pattern: str, replacement: str, value: str | None) -> str | None:
        """Regex substitution; invalid patterns leave the value unchanged."""
        if value is None:
            return None
        try:
            return re.sub(pattern, replacement, value)
        except re.error:
            return value


_OPTIONS = jmespath.Options(custom_functions=CustomFunctions())


def search_with_custom_functions(query: str, data: Any) -> Any:
    """
    Evaluate a JMESPath expression with the custom functions registered.

    Raises:
        jmespath.exceptions.JMESPathError: If the expression is invalid
    """
    return jmespath.search(query, data, options=_OPTIONS)
