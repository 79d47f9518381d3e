"""
Mobile Locators

A Python library for generating element locators from Appium page sources
(Android UiAutomator2 and iOS XCUITest XML dumps).
"""

__version__ = "0.1.0"

from .constants import (
    ANDROID_INTERACTABLE_TAGS,
    ANDROID_LAYOUT_CONTAINERS,
    IOS_INTERACTABLE_TAGS,
    IOS_LAYOUT_CONTAINERS,
)
from .element_filter import (
    get_default_filters,
    has_meaningful_content,
    is_interactable,
    is_layout_container,
    should_include_element,
)
from .generate_all_locators import generate_all_element_locators, is_within_viewport
from .locator_generation import (
    LocatorContext,
    build_locator_context,
    get_best_locator,
    get_suggested_locators,
    locators_to_dict,
)
from .source_parsing import (
    build_path_index,
    check_xpath_uniqueness,
    count_attribute_occurrences,
    evaluate_xpath,
    find_dom_node_by_path,
    flatten_element_tree,
    is_attribute_unique,
    parse_android_bounds,
    parse_ios_bounds,
    xml_to_dom,
    xml_to_tree,
)
from .types import (
    Bounds,
    ElementNode,
    ElementWithLocators,
    FilterOptions,
    Locator,
    LocatorStrategy,
    Platform,
    UniquenessResult,
    ViewportSize,
)

__all__ = [
    # Orchestration
    "generate_all_element_locators",
    "is_within_viewport",
    # Parsing
    "xml_to_tree",
    "xml_to_dom",
    "parse_android_bounds",
    "parse_ios_bounds",
    "flatten_element_tree",
    "evaluate_xpath",
    "check_xpath_uniqueness",
    "find_dom_node_by_path",
    "build_path_index",
    "count_attribute_occurrences",
    "is_attribute_unique",
    # Filtering
    "should_include_element",
    "is_interactable",
    "is_layout_container",
    "has_meaningful_content",
    "get_default_filters",
    "ANDROID_INTERACTABLE_TAGS",
    "ANDROID_LAYOUT_CONTAINERS",
    "IOS_INTERACTABLE_TAGS",
    "IOS_LAYOUT_CONTAINERS",
    # Locator generation
    "LocatorContext",
    "build_locator_context",
    "get_suggested_locators",
    "get_best_locator",
    "locators_to_dict",
    # Data types
    "Bounds",
    "ElementNode",
    "ElementWithLocators",
    "FilterOptions",
    "Locator",
    "LocatorStrategy",
    "Platform",
    "UniquenessResult",
    "ViewportSize",
]
