"""
Page source parsing utilities

Converts an Appium page source (UiAutomator2 or XCUITest XML dump) into:
1. A lightweight immutable ElementNode tree addressed by index paths
2. An lxml document used for XPath uniqueness queries

Both parses degrade to None on malformed input and never raise.
"""

import logging
import re
from collections.abc import Mapping

from lxml import etree

from .types import Bounds, ElementNode, Platform, UniquenessResult

logger = logging.getLogger(__name__)

_ANDROID_BOUNDS_PATTERN = re.compile(r"\[(-?\d+),(-?\d+)\]\[(-?\d+),(-?\d+)\]")


def _new_parser() -> etree.XMLParser:
    # One parser per call; lxml parsers are not safe to share across threads
    return etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)


def _parse_document(source_xml: str, caller: str) -> etree._ElementTree | None:
    """Parse XML text into an lxml document, logging and returning None on failure."""
    if not source_xml or not source_xml.strip():
        logger.error(f"[{caller}] XML parsing error: empty page source")
        return None

    try:
        root = etree.fromstring(source_xml.encode("utf-8"), parser=_new_parser())
    except (etree.XMLSyntaxError, ValueError) as e:
        logger.error(f"[{caller}] XML parsing error: {e}")
        return None

    return root.getroottree()


def element_children(element: etree._Element) -> list[etree._Element]:
    """Get child nodes that are elements (not text, comments or processing instructions)."""
    return [child for child in element if isinstance(child.tag, str)]


def _translate(root: etree._Element) -> ElementNode:
    """
    Build the ElementNode tree for a document root without recursion.

    Elements are listed in pre-order, then assembled in reverse so every
    node is created after its children.
    """
    ordered: list[tuple[etree._Element, str, int]] = []
    pending: list[tuple[etree._Element, str]] = [(root, "")]
    while pending:
        element, path = pending.pop()
        children = element_children(element)
        ordered.append((element, path, len(children)))
        for index in reversed(range(len(children))):
            pending.append((children[index], f"{path}.{index}" if path else str(index)))

    # In reverse pre-order the first child of a node is built last, so it sits on top
    built: list[ElementNode] = []
    for element, path, child_count in reversed(ordered):
        attributes = {
            str(name): value.replace("\n", "\\n") for name, value in element.attrib.items()
        }
        node_children = tuple(built.pop() for _ in range(child_count))
        built.append(
            ElementNode(
                tag_name=str(element.tag),
                attributes=attributes,  # type: ignore[arg-type]
                children=node_children,
                path=path,
            )
        )

    return built[0]


def xml_to_tree(source_xml: str) -> ElementNode | None:
    """
    Convert XML page source to an ElementNode tree.

    Args:
        source_xml: The XML string from the driver's page source

    Returns:
        Root ElementNode (path "") or None if parsing fails
    """
    doc = _parse_document(source_xml, "xml_to_tree")
    if doc is None:
        return None
    return _translate(doc.getroot())


def xml_to_dom(source_xml: str) -> etree._ElementTree | None:
    """
    Parse XML page source to an lxml document for XPath evaluation.

    Args:
        source_xml: The XML string from the driver's page source

    Returns:
        Parsed document or None if parsing fails
    """
    return _parse_document(source_xml, "xml_to_dom")


def evaluate_xpath(doc: etree._ElementTree, xpath_expr: str) -> list[etree._Element]:
    """
    Execute an XPath query and return the matching elements.

    Non node-set results (strings, numbers, booleans) and evaluation
    errors both yield an empty list.
    """
    try:
        result = doc.xpath(xpath_expr)
    except etree.XPathError as e:
        logger.warning(f"[evaluate_xpath] Failed to evaluate {xpath_expr!r}: {e}")
        return []

    if not isinstance(result, list):
        return []
    return [node for node in result if isinstance(node, etree._Element)]


def is_same_element(node1: etree._Element, node2: etree._Element) -> bool:
    """
    Compare two elements by tag and geometry.

    Used when identity comparison fails. Android elements are compared by
    their bounds string, iOS elements by x/y/width/height.
    """
    if node1.tag != node2.tag:
        return False

    bounds1 = node1.get("bounds")
    bounds2 = node2.get("bounds")
    if bounds1 and bounds2:
        return bounds1 == bounds2

    x1, y1 = node1.get("x"), node1.get("y")
    x2, y2 = node2.get("x"), node2.get("y")
    if x1 and y1 and x2 and y2:
        return (
            x1 == x2
            and y1 == y2
            and node1.get("width") == node2.get("width")
            and node1.get("height") == node2.get("height")
        )

    return False


def check_xpath_uniqueness(
    doc: etree._ElementTree,
    xpath_expr: str,
    target: etree._Element | None = None,
) -> UniquenessResult:
    """
    Check if an XPath selector is unique and get the target's index if not.

    Args:
        doc: Parsed document to query
        xpath_expr: XPath expression to check
        target: The element we are generating a locator for (optional)

    Returns:
        UniquenessResult; index (1-based) is set only when the expression is
        not unique and the target was found among the matches
    """
    nodes = evaluate_xpath(doc, xpath_expr)
    total_matches = len(nodes)

    if total_matches == 0:
        return UniquenessResult(is_unique=False)

    if total_matches == 1:
        return UniquenessResult(is_unique=True)

    if target is not None:
        for position, node in enumerate(nodes, start=1):
            if node is target or is_same_element(node, target):
                return UniquenessResult(
                    is_unique=False, index=position, total_matches=total_matches
                )

    return UniquenessResult(is_unique=False, total_matches=total_matches)


def find_dom_node_by_path(doc: etree._ElementTree, path: str) -> etree._Element | None:
    """
    Find the document element addressed by an ElementNode path (e.g. "0.2.1").

    Returns:
        Matching element, or None when the path leaves the document
    """
    current = doc.getroot()
    if not path:
        return current

    for segment in path.split("."):
        children = element_children(current)
        index = int(segment)
        if index >= len(children):
            return None
        current = children[index]

    return current


def build_path_index(doc: etree._ElementTree) -> dict[str, etree._Element]:
    """Map every ElementNode path of a capture to its document element in one walk."""
    index: dict[str, etree._Element] = {}
    stack: list[tuple[etree._Element, str]] = [(doc.getroot(), "")]

    while stack:
        element, path = stack.pop()
        index[path] = element
        for position, child in enumerate(element_children(element)):
            stack.append((child, f"{path}.{position}" if path else str(position)))

    return index


def parse_android_bounds(bounds: str) -> Bounds:
    """
    Parse an Android bounds string "[x1,y1][x2,y2]".

    Unparseable input yields a zero rectangle.
    """
    match = _ANDROID_BOUNDS_PATTERN.search(bounds or "")
    if not match:
        return {"x": 0, "y": 0, "width": 0, "height": 0}

    x1, y1, x2, y2 = (int(group) for group in match.groups())
    return {"x": x1, "y": y1, "width": max(0, x2 - x1), "height": max(0, y2 - y1)}


def _to_int(value: str | None) -> int:
    if not value:
        return 0
    try:
        return int(float(value))
    except ValueError:
        return 0


def parse_ios_bounds(attributes: Mapping[str, str]) -> Bounds:
    """Parse iOS bounds from the discrete x, y, width and height attributes."""
    return {
        "x": _to_int(attributes.get("x")),
        "y": _to_int(attributes.get("y")),
        "width": max(0, _to_int(attributes.get("width"))),
        "height": max(0, _to_int(attributes.get("height"))),
    }


def parse_element_bounds(node: ElementNode, platform: Platform) -> Bounds:
    """Parse element bounds using the platform's encoding."""
    if platform == "android":
        return parse_android_bounds(node.get("bounds") or "")
    return parse_ios_bounds(node.attributes)  # type: ignore[arg-type]


def flatten_element_tree(root: ElementNode) -> list[ElementNode]:
    """Flatten an ElementNode tree to a list in document (pre-)order."""
    result: list[ElementNode] = []
    stack = [root]

    while stack:
        node = stack.pop()
        result.append(node)
        stack.extend(reversed(node.children))

    return result


def count_attribute_occurrences(source_xml: str, attribute: str, value: str) -> int:
    """
    Count attribute="value" occurrences in raw XML text.

    A fast, DOM-free check that may report false positives.
    """
    pattern = re.compile(f"{re.escape(attribute)}=[\"']{re.escape(value)}[\"']")
    return len(pattern.findall(source_xml))


def is_attribute_unique(source_xml: str, attribute: str, value: str) -> bool:
    """
    Check if an attribute value occurs exactly once in the raw XML text.

    For accurate results use check_xpath_uniqueness with a parsed document.
    """
    return count_attribute_occurrences(source_xml, attribute, value) == 1
