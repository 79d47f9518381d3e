"""
Locator strategy generation for mobile elements.

For one element, builds every viable (strategy, value) candidate:

1. Simple locators on a single attribute, each checked for uniqueness
   against the whole capture and indexed where the syntax allows it
2. Complex locators combining several attributes, including an XPath with
   positional and hierarchical fallbacks
3. Deduplication by value, first occurrence wins

The resulting list is priority ordered; its first entry is the best locator.
"""

import re
from dataclasses import dataclass

from lxml import etree

from .constants import HIERARCHY_TAG, MAX_HIERARCHY_DEPTH, MAX_SELECTOR_TEXT_LENGTH
from .source_parsing import (
    check_xpath_uniqueness,
    element_children,
    evaluate_xpath,
    is_attribute_unique,
)
from .types import ElementNode, Locator, LocatorStrategy, Platform, UniquenessResult

_SIMPLE_ATTRIBUTE_XPATH = re.compile(r"""//\*\[@([\w:.-]+)=(?:"([^"]*)"|'([^']*)')\]""")


@dataclass(frozen=True)
class LocatorContext:
    """Per-capture state shared by every locator computation."""

    source_xml: str
    parsed_dom: etree._ElementTree | None
    platform: Platform
    hierarchy_child_count: int = 0

    @property
    def is_android(self) -> bool:
        return self.platform == "android"

    @property
    def has_parsed_document(self) -> bool:
        return self.parsed_dom is not None


def build_locator_context(
    source_xml: str, parsed_dom: etree._ElementTree | None, platform: Platform
) -> LocatorContext:
    """Create the context for one capture, counting the children of the hierarchy root once."""
    hierarchy_child_count = 0
    if parsed_dom is not None:
        hierarchy_child_count = len(evaluate_xpath(parsed_dom, f"/{HIERARCHY_TAG}/*"))

    return LocatorContext(
        source_xml=source_xml,
        parsed_dom=parsed_dom,
        platform=platform,
        hierarchy_child_count=hierarchy_child_count,
    )


# ===== Escaping =====


def _is_valid_value(value: str | None) -> bool:
    return value is not None and value != "null" and value.strip() != ""


def escape_text(text: str) -> str:
    """Escape double quotes and newlines for UiAutomator and predicate string selectors."""
    return text.replace('"', '\\"').replace("\n", "\\n")


def escape_xpath_value(value: str) -> str:
    """
    Quote a value as an XPath string literal.

    Double quotes are used unless the value contains one; values holding
    both quote characters are built with concat().
    """
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"

    parts = []
    for index, segment in enumerate(value.split("'")):
        if index > 0:
            parts.append('"\'"')
        if segment:
            parts.append(f"'{segment}'")
    return f"concat({','.join(parts)})"


def _document_value(node: ElementNode, attribute: str, target: etree._Element | None) -> str:
    """
    Get an attribute value as it appears in the parsed document.

    Tree values carry newlines as a literal backslash-n. The target element
    holds the original value; without one the escape is reversed, which
    cannot tell a real backslash-n apart from a newline.
    """
    value = node.get(attribute) or ""
    if target is not None:
        original = target.get(attribute)
        if original is not None and original.replace("\n", "\\n") == value:
            return original
    return value.replace("\\n", "\n")


def _attribute_xpath(node: ElementNode, attribute: str, target: etree._Element | None) -> str:
    return f"//*[@{attribute}={escape_xpath_value(_document_value(node, attribute, target))}]"


def generate_indexed_xpath(base_xpath: str, index: int) -> str:
    """Wrap a non-unique XPath with a 1-based positional predicate."""
    return f"({base_xpath})[{index}]"


def generate_indexed_uiautomator(base_selector: str, index: int) -> str:
    """Append a 0-based .instance(n) to a UiAutomator selector."""
    return f"{base_selector}.instance({index - 1})"


# ===== Uniqueness =====


def check_uniqueness(
    ctx: LocatorContext, xpath: str, target: etree._Element | None = None
) -> UniquenessResult:
    """
    Check if an XPath resolves to exactly one element of the capture.

    Uses the parsed document when available. Without one, only simple
    //*[@attr="value"] expressions can be checked, by counting occurrences
    in the raw XML text.
    """
    if ctx.has_parsed_document:
        return check_xpath_uniqueness(ctx.parsed_dom, xpath, target)  # type: ignore[arg-type]

    match = _SIMPLE_ATTRIBUTE_XPATH.fullmatch(xpath)
    if match:
        attribute = match.group(1)
        value = match.group(2) if match.group(2) is not None else match.group(3)
        return UniquenessResult(is_unique=is_attribute_unique(ctx.source_xml, attribute, value))

    return UniquenessResult(is_unique=False)


def is_in_uiautomator_scope(node: ElementNode, ctx: LocatorContext) -> bool:
    """
    Check if an Android element can be addressed by UiAutomator selectors.

    UiAutomator only sees the last child subtree of the hierarchy root.
    """
    if not ctx.has_parsed_document or ctx.hierarchy_child_count == 0:
        return True
    if not node.path:
        return True

    first_index = int(node.path.split(".")[0])
    return first_index == ctx.hierarchy_child_count - 1


# ===== Hierarchical XPath =====


def _same_tag_siblings(element: etree._Element) -> list[etree._Element]:
    parent = element.getparent()
    if parent is None:
        return [element]
    return [child for child in element_children(parent) if child.tag == element.tag]


def _find_unique_attribute(element: etree._Element, ctx: LocatorContext) -> str | None:
    attributes = ("resource-id", "content-desc", "text") if ctx.is_android else ("name", "label", "value")

    for attribute in attributes:
        value = element.get(attribute)
        if value and value.strip():
            literal = escape_xpath_value(value)
            if check_uniqueness(ctx, f"//*[@{attribute}={literal}]").is_unique:
                return f"@{attribute}={literal}"

    return None


def build_hierarchical_xpath(
    ctx: LocatorContext, element: etree._Element, max_depth: int = MAX_HIERARCHY_DEPTH
) -> str | None:
    """
    Build an XPath by walking up the ancestor chain of an element.

    Each level anchors on a uniquely identifying attribute if one exists
    (and stops there), otherwise uses tag[n] among same-tag siblings.
    """
    if not ctx.has_parsed_document:
        return None

    parts: list[str] = []
    current: etree._Element | None = element
    depth = 0

    while current is not None and depth < max_depth:
        tag = str(current.tag)
        unique_attribute = _find_unique_attribute(current, ctx)

        if unique_attribute:
            parts.insert(0, f"//{tag}[{unique_attribute}]")
            break

        siblings = _same_tag_siblings(current)
        if len(siblings) > 1:
            position = next(i for i, sibling in enumerate(siblings, start=1) if sibling is current)
            parts.insert(0, f"{tag}[{position}]")
        else:
            parts.insert(0, tag)

        current = current.getparent()
        depth += 1

    if not parts:
        return None

    result = "/".join(parts)
    if not result.startswith("//"):
        result = "//" + result
    return result


def add_xpath_locator(
    results: list[Locator],
    xpath: str,
    ctx: LocatorContext,
    target: etree._Element | None = None,
) -> None:
    """
    Append an XPath locator with uniqueness checking and fallbacks.

    Unique expressions are used as-is and non-unique ones are indexed when
    the target is among the matches. Otherwise a hierarchical XPath is
    tried, and the original expression is always appended as a last resort.
    """
    uniqueness = check_uniqueness(ctx, xpath, target)
    if uniqueness.is_unique:
        results.append(Locator("xpath", xpath, verified=True))
        return

    if uniqueness.index:
        results.append(Locator("xpath", generate_indexed_xpath(xpath, uniqueness.index), verified=True))
        return

    if target is not None and ctx.has_parsed_document:
        hierarchical = build_hierarchical_xpath(ctx, target)
        if hierarchical:
            verified = check_uniqueness(ctx, hierarchical, target).is_unique
            results.append(Locator("xpath", hierarchical, verified=verified))

    results.append(Locator("xpath", xpath, verified=False))


# ===== Selector builders =====


def build_uiautomator_selector(node: ElementNode) -> str | None:
    """Build an Android UiSelector chaining every present attribute."""
    parts = []

    resource_id = node.get("resource-id")
    if _is_valid_value(resource_id):
        parts.append(f'resourceId("{escape_text(resource_id)}")')  # type: ignore[arg-type]

    text = node.get("text")
    if _is_valid_value(text) and len(text) < MAX_SELECTOR_TEXT_LENGTH:  # type: ignore[arg-type]
        parts.append(f'text("{escape_text(text)}")')  # type: ignore[arg-type]

    content_desc = node.get("content-desc")
    if _is_valid_value(content_desc):
        parts.append(f'description("{escape_text(content_desc)}")')  # type: ignore[arg-type]

    class_name = node.get("class")
    if _is_valid_value(class_name):
        parts.append(f'className("{class_name}")')

    if not parts:
        return None
    return "android=new UiSelector()." + ".".join(parts)


def build_predicate_string(node: ElementNode) -> str | None:
    """Build an iOS predicate string ANDing every present condition."""
    conditions = []

    for attribute in ("name", "label", "value"):
        value = node.get(attribute)
        if _is_valid_value(value):
            conditions.append(f'{attribute} == "{escape_text(value)}"')  # type: ignore[arg-type]

    if node.get("visible") == "true":
        conditions.append("visible == 1")
    if node.get("enabled") == "true":
        conditions.append("enabled == 1")

    if not conditions:
        return None
    return "-ios predicate string:" + " AND ".join(conditions)


def build_class_chain(node: ElementNode) -> str | None:
    """Build an iOS class chain selector, for XCUI element types only."""
    if not node.tag_name.startswith("XCUI"):
        return None

    selector = f"**/{node.tag_name}"
    label = node.get("label")
    name = node.get("name")
    if _is_valid_value(label):
        selector += f'[`label == "{escape_text(label)}"`]'  # type: ignore[arg-type]
    elif _is_valid_value(name):
        selector += f'[`name == "{escape_text(name)}"`]'  # type: ignore[arg-type]

    return f"-ios class chain:{selector}"


def build_xpath(
    node: ElementNode, platform: Platform, target: etree._Element | None = None
) -> str:
    """
    Build an XPath for an element from its identifying attributes.

    Values are taken from the target document element when one is given.
    """
    if platform == "android":
        attributes = ("resource-id", "content-desc", "text")
    else:
        attributes = ("name", "label", "value")

    conditions = []
    for attribute in attributes:
        value = node.get(attribute)
        if not _is_valid_value(value):
            continue
        if attribute == "text" and len(value) >= MAX_SELECTOR_TEXT_LENGTH:  # type: ignore[arg-type]
            continue
        literal = escape_xpath_value(_document_value(node, attribute, target))
        conditions.append(f"@{attribute}={literal}")

    if not conditions:
        return f"//{node.tag_name}"
    return f"//{node.tag_name}[{' and '.join(conditions)}]"


# ===== Locator generation =====


def _add_indexable_uiautomator(
    results: list[Locator],
    strategy: LocatorStrategy,
    selector: str,
    uniqueness: UniquenessResult,
    ctx: LocatorContext,
) -> None:
    if uniqueness.is_unique:
        results.append(Locator(strategy, selector, verified=ctx.has_parsed_document))
    elif uniqueness.index:
        results.append(Locator(strategy, generate_indexed_uiautomator(selector, uniqueness.index)))


def _get_android_simple_locators(
    node: ElementNode, ctx: LocatorContext, target: etree._Element | None
) -> list[Locator]:
    results: list[Locator] = []
    in_scope = is_in_uiautomator_scope(node, ctx)

    resource_id = node.get("resource-id")
    if _is_valid_value(resource_id):
        uniqueness = check_uniqueness(ctx, _attribute_xpath(node, "resource-id", target), target)
        if in_scope:
            selector = f'android=new UiSelector().resourceId("{escape_text(resource_id)}")'  # type: ignore[arg-type]
            _add_indexable_uiautomator(results, "id", selector, uniqueness, ctx)

    content_desc = node.get("content-desc")
    if _is_valid_value(content_desc):
        uniqueness = check_uniqueness(ctx, _attribute_xpath(node, "content-desc", target), target)
        if uniqueness.is_unique:
            results.append(Locator("accessibility-id", f"~{content_desc}", verified=ctx.has_parsed_document))

    text = node.get("text")
    if _is_valid_value(text) and len(text) < MAX_SELECTOR_TEXT_LENGTH:  # type: ignore[arg-type]
        uniqueness = check_uniqueness(ctx, _attribute_xpath(node, "text", target), target)
        if in_scope:
            selector = f'android=new UiSelector().text("{escape_text(text)}")'  # type: ignore[arg-type]
            _add_indexable_uiautomator(results, "text", selector, uniqueness, ctx)

    return results


def _get_ios_simple_locators(
    node: ElementNode, ctx: LocatorContext, target: etree._Element | None
) -> list[Locator]:
    results: list[Locator] = []
    verified = ctx.has_parsed_document

    name = node.get("name")
    if _is_valid_value(name):
        if check_uniqueness(ctx, _attribute_xpath(node, "name", target), target).is_unique:
            results.append(Locator("accessibility-id", f"~{name}", verified=verified))

    label = node.get("label")
    if _is_valid_value(label) and label != name:
        if check_uniqueness(ctx, _attribute_xpath(node, "label", target), target).is_unique:
            value = f'-ios predicate string:label == "{escape_text(label)}"'  # type: ignore[arg-type]
            results.append(Locator("predicate-string", value, verified=verified))

    value_attr = node.get("value")
    if _is_valid_value(value_attr):
        if check_uniqueness(ctx, _attribute_xpath(node, "value", target), target).is_unique:
            value = f'-ios predicate string:value == "{escape_text(value_attr)}"'  # type: ignore[arg-type]
            results.append(Locator("predicate-string", value, verified=verified))

    return results


def get_simple_locators(
    node: ElementNode, ctx: LocatorContext, target: etree._Element | None = None
) -> list[Locator]:
    """Get locators built on a single attribute, uniqueness-checked."""
    if ctx.is_android:
        return _get_android_simple_locators(node, ctx, target)
    return _get_ios_simple_locators(node, ctx, target)


def get_complex_locators(
    node: ElementNode, ctx: LocatorContext, target: etree._Element | None = None
) -> list[Locator]:
    """Get locators combining several attributes, plus XPath and class-based fallbacks."""
    results: list[Locator] = []

    if ctx.is_android:
        in_scope = is_in_uiautomator_scope(node, ctx)

        if in_scope:
            selector = build_uiautomator_selector(node)
            if selector:
                results.append(Locator("uiautomator", selector, verified=False))

        add_xpath_locator(results, build_xpath(node, "android", target), ctx, target)

        class_name = node.get("class")
        if in_scope and _is_valid_value(class_name):
            results.append(
                Locator("class-name", f'android=new UiSelector().className("{class_name}")', verified=False)
            )
        return results

    predicate = build_predicate_string(node)
    if predicate:
        results.append(Locator("predicate-string", predicate, verified=False))

    class_chain = build_class_chain(node)
    if class_chain:
        results.append(Locator("class-chain", class_chain, verified=False))

    add_xpath_locator(results, build_xpath(node, "ios", target), ctx, target)

    if node.tag_name.startswith("XCUIElementType"):
        results.append(Locator("class-name", f"-ios class chain:**/{node.tag_name}", verified=False))

    return results


def get_suggested_locators(
    node: ElementNode,
    source_xml: str,
    platform: Platform,
    ctx: LocatorContext | None = None,
    target: etree._Element | None = None,
) -> list[Locator]:
    """
    Get all suggested locators for an element, in priority order.

    Args:
        node: Element to build locators for
        source_xml: Raw page source the element came from
        platform: Platform of the page source
        ctx: Shared capture context; without one only the raw XML is used
        target: Document element matching node, used for index disambiguation

    Returns:
        Deduplicated locators, simple before complex
    """
    locator_ctx = ctx if ctx is not None else LocatorContext(source_xml, None, platform)

    candidates = get_simple_locators(node, locator_ctx, target) + get_complex_locators(
        node, locator_ctx, target
    )

    seen: set[str] = set()
    results: list[Locator] = []
    for locator in candidates:
        if locator.value not in seen:
            seen.add(locator.value)
            results.append(locator)

    return results


def get_best_locator(node: ElementNode, source_xml: str, platform: Platform) -> str | None:
    """Get the highest priority locator value for an element."""
    locators = get_suggested_locators(node, source_xml, platform)
    return locators[0].value if locators else None


def locators_to_dict(locators: list[Locator]) -> dict[str, str]:
    """Convert a locator list to a strategy -> value mapping, keeping the first per strategy."""
    result: dict[str, str] = {}
    for locator in locators:
        result.setdefault(locator.strategy, locator.value)
    return result
