"""
Main orchestrator for generating locators from a page source.

Parses the capture once, walks the element tree in document order and
emits one ElementWithLocators record per selectable element.
"""

import logging

from lxml import etree

from .constants import DEFAULT_VIEWPORT_SIZE
from .element_filter import has_meaningful_content, is_layout_container, should_include_element
from .locator_generation import LocatorContext, build_locator_context, get_suggested_locators, locators_to_dict
from .source_parsing import build_path_index, parse_element_bounds, xml_to_dom, xml_to_tree
from .types import (
    Bounds,
    ElementNode,
    ElementWithLocators,
    FilterOptions,
    Locator,
    Platform,
    ViewportSize,
)

logger = logging.getLogger(__name__)


def is_within_viewport(bounds: Bounds, viewport: ViewportSize) -> bool:
    """Check if a rectangle lies entirely inside the viewport and has a positive area."""
    return (
        bounds["x"] >= 0
        and bounds["y"] >= 0
        and bounds["width"] > 0
        and bounds["height"] > 0
        and bounds["x"] + bounds["width"] <= viewport["width"]
        and bounds["y"] + bounds["height"] <= viewport["height"]
    )


def _verified_strategies(locators: list[Locator]) -> list[str]:
    chosen: dict[str, Locator] = {}
    for locator in locators:
        chosen.setdefault(locator.strategy, locator)
    return [strategy for strategy, locator in chosen.items() if locator.verified]


def _transform_element(
    node: ElementNode, locators: list[Locator], platform: Platform, viewport: ViewportSize
) -> ElementWithLocators:
    bounds = parse_element_bounds(node, platform)
    visibility_attr = "displayed" if platform == "android" else "visible"

    return {
        "tag_name": node.tag_name,
        "locators": locators_to_dict(locators),
        "verified_strategies": _verified_strategies(locators),
        "text": node.get("text") or node.get("label") or "",
        "content_desc": node.get("content-desc") or "",
        "resource_id": node.get("resource-id") or "",
        "accessibility_id": node.get("name") or node.get("content-desc") or "",
        "label": node.get("label") or "",
        "value": node.get("value") or "",
        "class_name": node.get("class") or node.tag_name,
        "clickable": any(
            node.get(flag) == "true" for flag in ("clickable", "accessible", "long-clickable")
        ),
        "enabled": node.get("enabled") != "false",
        "displayed": node.get(visibility_attr) != "false",
        "bounds": bounds,
        "is_in_viewport": is_within_viewport(bounds, viewport),
    }


def _should_process(node: ElementNode, filters: FilterOptions, platform: Platform) -> bool:
    if should_include_element(node, filters, platform):
        return True
    # Containers carrying text are kept even when containers are filtered out
    return is_layout_container(node, platform) and has_meaningful_content(node, platform)


def _process_element(
    node: ElementNode,
    ctx: LocatorContext,
    path_index: dict[str, etree._Element],
    viewport: ViewportSize,
) -> ElementWithLocators | None:
    target = path_index.get(node.path)
    locators = get_suggested_locators(node, ctx.source_xml, ctx.platform, ctx, target)
    if not locators:
        return None
    return _transform_element(node, locators, ctx.platform, viewport)


def generate_all_element_locators(
    source_xml: str,
    platform: Platform,
    viewport_size: ViewportSize | None = None,
    filters: FilterOptions | None = None,
    is_native: bool = True,
) -> list[ElementWithLocators]:
    """
    Generate locators for all selectable elements of a page source.

    Args:
        source_xml: Raw XML page source
        platform: "android" or "ios"
        viewport_size: Screen size; defaults to a 9999x9999 sentinel
        filters: Filter options; an empty configuration keeps every visible element
        is_native: Whether the source comes from the native app context

    Returns:
        Records in document order. Empty when the page source cannot be parsed.
    """
    root = xml_to_tree(source_xml)
    if root is None:
        logger.error("[generate_all_element_locators] Failed to parse page source XML")
        return []

    parsed_dom = xml_to_dom(source_xml)
    ctx = build_locator_context(source_xml, parsed_dom, platform)
    path_index = build_path_index(parsed_dom) if parsed_dom is not None else {}
    viewport = viewport_size or ViewportSize(**DEFAULT_VIEWPORT_SIZE)
    active_filters = filters or {}

    if not is_native:
        logger.debug("[generate_all_element_locators] Page source captured outside the native context")

    results: list[ElementWithLocators] = []
    stack = [root]

    while stack:
        node = stack.pop()
        stack.extend(reversed(node.children))

        if not _should_process(node, active_filters, platform):
            continue

        try:
            record = _process_element(node, ctx, path_index, viewport)
        except Exception as e:
            logger.error(f"[generate_all_element_locators] Error at path {node.path!r}: {e}", exc_info=True)
            continue

        if record is not None and record["locators"]:
            results.append(record)

    logger.debug(f"[generate_all_element_locators] Generated locators for {len(results)} elements")
    return results
