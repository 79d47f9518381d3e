"""
Element classification and filtering for mobile page sources.

Decides per element whether it is interactable, a layout container, or
carries meaningful content, and applies a FilterOptions configuration.
"""

from collections.abc import Iterable

from .constants import (
    ANDROID_INTERACTABLE_TAGS,
    ANDROID_LAYOUT_CONTAINERS,
    HIERARCHY_TAG,
    IOS_INTERACTABLE_TAGS,
    IOS_LAYOUT_CONTAINERS,
)
from .types import ElementNode, FilterOptions, Platform

_ANDROID_INTERACTION_FLAGS = ("clickable", "focusable", "checkable", "long-clickable")


def matches_tag_list(tag_name: str, tag_list: Iterable[str]) -> bool:
    """
    Check if a tag matches any entry of a tag list.

    Exact matches and suffix/substring matches both count, so fully
    qualified class names with package prefixes still match.
    """
    tags = tuple(tag_list)
    if tag_name in tags:
        return True
    return any(tag_name.endswith(tag) or tag in tag_name for tag in tags)


def _is_filled(value: str | None) -> bool:
    return bool(value) and value.strip() != "" and value != "null"  # type: ignore[union-attr]


def is_interactable(node: ElementNode, platform: Platform) -> bool:
    """Check if an element can be interacted with on the given platform."""
    if platform == "android":
        if matches_tag_list(node.tag_name, ANDROID_INTERACTABLE_TAGS):
            return True
        return any(node.get(flag) == "true" for flag in _ANDROID_INTERACTION_FLAGS)

    if matches_tag_list(node.tag_name, IOS_INTERACTABLE_TAGS):
        return True
    return node.get("accessible") == "true"


def is_layout_container(node: ElementNode, platform: Platform) -> bool:
    """Check if an element is a layout container."""
    containers = ANDROID_LAYOUT_CONTAINERS if platform == "android" else IOS_LAYOUT_CONTAINERS
    return matches_tag_list(node.tag_name, containers)


def has_meaningful_content(node: ElementNode, platform: Platform) -> bool:
    """Check if an element carries text or accessibility information."""
    if _is_filled(node.get("text")):
        return True

    if platform == "android":
        return _is_filled(node.get("content-desc"))

    return _is_filled(node.get("label")) or _is_filled(node.get("name"))


def _matches_tag_filters(
    node: ElementNode, include_tag_names: list[str], exclude_tag_names: list[str]
) -> bool:
    if include_tag_names and not matches_tag_list(node.tag_name, include_tag_names):
        return False
    return not matches_tag_list(node.tag_name, exclude_tag_names)


def _matches_attribute_filters(
    node: ElementNode, require_attributes: list[str], min_attribute_count: int
) -> bool:
    if require_attributes and not any(node.get(attr) for attr in require_attributes):
        return False

    if min_attribute_count > 0:
        filled = sum(1 for value in node.attributes.values() if value)  # type: ignore[attr-defined]
        if filled < min_attribute_count:
            return False

    return True


def should_include_element(
    node: ElementNode, filters: FilterOptions, platform: Platform
) -> bool:
    """
    Determine if an element passes every criterion of a filter configuration.

    Args:
        node: Element to check
        filters: Filter options; missing keys take their defaults
        platform: Platform the page source came from

    Returns:
        True if the element should be included
    """
    include_tag_names = filters.get("include_tag_names", [])
    exclude_tag_names = filters.get("exclude_tag_names", [HIERARCHY_TAG])
    require_attributes = filters.get("require_attributes", [])
    min_attribute_count = filters.get("min_attribute_count", 0)
    fetchable_only = filters.get("fetchable_only", False)
    clickable_only = filters.get("clickable_only", False)
    visible_only = filters.get("visible_only", True)

    if not _matches_tag_filters(node, include_tag_names, exclude_tag_names):
        return False

    if not _matches_attribute_filters(node, require_attributes, min_attribute_count):
        return False

    if clickable_only and node.get("clickable") != "true":
        return False

    if visible_only:
        visibility_attr = "displayed" if platform == "android" else "visible"
        if node.get(visibility_attr) == "false":
            return False

    if fetchable_only and not is_interactable(node, platform):
        return False

    return True


def get_default_filters(platform: Platform, include_containers: bool = False) -> FilterOptions:
    """
    Get the default filter options for a platform.

    Without containers only interactable elements are kept and every layout
    container tag is excluded.
    """
    containers = ANDROID_LAYOUT_CONTAINERS if platform == "android" else IOS_LAYOUT_CONTAINERS
    exclude = [HIERARCHY_TAG] if include_containers else [HIERARCHY_TAG, *containers]

    return {
        "exclude_tag_names": exclude,
        "fetchable_only": not include_containers,
        "visible_only": True,
        "clickable_only": False,
    }
