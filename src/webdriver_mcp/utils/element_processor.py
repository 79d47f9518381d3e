"""
Element list processing for get_visible_elements

Reshapes locator records for transport: picks a primary and an
alternative selector, applies JMESPath queries and formats output.
"""

import json
from io import StringIO
from typing import Any

from jmespath.exceptions import JMESPathError
from ruamel.yaml import YAML

from mobile_locators import ElementWithLocators

from ..types import MobileElementInfo
from .jmespath_extensions import search_with_custom_functions

# Strategy preference for the selector handed to the agent. class-name
# matches every element of a type and is never offered.
LOCATOR_PRIORITY: tuple[str, ...] = (
    "accessibility-id",
    "id",
    "text",
    "predicate-string",
    "class-chain",
    "uiautomator",
    "xpath",
)


def select_best_locators(locators: dict[str, str]) -> tuple[str | None, str | None]:
    """
    Pick the primary and alternative selector by strategy priority.

    Returns:
        (primary_strategy, alternative_strategy); either may be None
    """
    available = [strategy for strategy in LOCATOR_PRIORITY if strategy in locators]
    primary = available[0] if available else None
    alternative = available[1] if len(available) > 1 else None
    return primary, alternative


def to_mobile_element_info(
    element: ElementWithLocators, include_bounds: bool = False
) -> MobileElementInfo | None:
    """
    Convert a locator record to the compact form returned to the agent.

    Empty text fields are omitted. Returns None when the element has no
    usable selector.
    """
    primary, alternative = select_best_locators(element["locators"])
    if primary is None:
        return None

    info: MobileElementInfo = {
        "selector": element["locators"][primary],
        "verified": primary in element["verified_strategies"],
        "tag_name": element["tag_name"],
    }
    if alternative is not None:
        info["alt_selector"] = element["locators"][alternative]

    if element["text"]:
        info["text"] = element["text"]
    if element["resource_id"]:
        info["resource_id"] = element["resource_id"]
    if element["accessibility_id"]:
        info["accessibility_id"] = element["accessibility_id"]

    info["is_in_viewport"] = element["is_in_viewport"]
    info["is_enabled"] = element["enabled"]

    if include_bounds:
        info["bounds"] = element["bounds"]

    return info


def apply_jmespath_query(data: Any, query: str) -> tuple[Any, str | None]:
    """
    Apply a JMESPath query with the custom functions.

    Returns:
        Tuple of (result, error_message)
    """
    try:
        return search_with_custom_functions(query, data), None
    except JMESPathError as e:
        return None, f"JMESPath query error: {e}"


def format_output(data: Any, output_format: str) -> str:
    """
    Serialize data as YAML or JSON.

    Args:
        data: Data to serialize
        output_format: "yaml" or "json" (case-insensitive)
    """
    if output_format.lower() == "json":
        return json.dumps(data, indent=2, ensure_ascii=False)

    yaml = YAML()
    yaml.default_flow_style = False
    yaml.allow_unicode = True
    yaml.width = 4096  # keep long selectors on one line

    stream = StringIO()
    yaml.dump(data, stream)
    return stream.getvalue()
