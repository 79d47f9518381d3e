"""Data models for mobile locator generation."""

from dataclasses import dataclass, field
from typing import Literal, NamedTuple, Union

from typing_extensions import TypedDict

Platform = Literal["android", "ios"]

LocatorStrategy = Literal[
    "accessibility-id",
    "id",
    "class-name",
    "xpath",
    "predicate-string",
    "class-chain",
    "uiautomator",
    "text",
]

# Attribute schemas as emitted by UiAutomator2 and XCUITest page sources.
# Hyphenated keys need the functional TypedDict syntax.
AndroidAttributes = TypedDict(
    "AndroidAttributes",
    {
        "resource-id": str,
        "content-desc": str,
        "text": str,
        "class": str,
        "package": str,
        "index": str,
        "clickable": str,
        "long-clickable": str,
        "focusable": str,
        "checkable": str,
        "checked": str,
        "scrollable": str,
        "enabled": str,
        "displayed": str,
        "bounds": str,
    },
    total=False,
)


class IOSAttributes(TypedDict, total=False):
    """Attributes of an XCUITest element."""

    type: str
    name: str
    label: str
    value: str
    accessible: str
    visible: str
    enabled: str
    x: str
    y: str
    width: str
    height: str


ElementAttributes = Union[AndroidAttributes, IOSAttributes]


@dataclass(frozen=True)
class ElementNode:
    """
    One element of a parsed page source.

    The path is a dot-separated chain of element-child indices from the
    root ("" for the root itself, "0.2.1" for a descendant). It is only
    meaningful within the capture it was parsed from.
    """

    tag_name: str
    attributes: ElementAttributes = field(default_factory=dict)  # type: ignore[assignment]
    children: tuple["ElementNode", ...] = field(default_factory=tuple)
    path: str = ""

    def get(self, name: str, default: str | None = None) -> str | None:
        """Look up an attribute by its page-source name."""
        return self.attributes.get(name, default)  # type: ignore[attr-defined]


class Bounds(TypedDict):
    """Pixel rectangle of an element."""

    x: int
    y: int
    width: int
    height: int


class ViewportSize(TypedDict):
    """Screen size reported by the driver."""

    width: int
    height: int


@dataclass(frozen=True)
class UniquenessResult:
    """Outcome of matching an XPath against the whole capture."""

    is_unique: bool
    index: int | None = None  # 1-based position of the target among the matches
    total_matches: int | None = None


class Locator(NamedTuple):
    """A selector proposal for one element."""

    strategy: LocatorStrategy
    value: str
    verified: bool = True  # resolved to exactly one node of the capture


class FilterOptions(TypedDict, total=False):
    """Caller-supplied element filter configuration."""

    include_tag_names: list[str]  # whitelist, empty means no restriction
    exclude_tag_names: list[str]  # blacklist
    require_attributes: list[str]  # must have at least one of these
    min_attribute_count: int  # minimum number of non-empty attributes
    fetchable_only: bool  # interactable elements only
    clickable_only: bool  # clickable="true" only
    visible_only: bool  # drop displayed/visible="false"


class ElementWithLocators(TypedDict):
    """Output record for one selectable element."""

    tag_name: str
    locators: dict[str, str]
    verified_strategies: list[str]
    text: str
    content_desc: str
    resource_id: str
    accessibility_id: str
    label: str
    value: str
    class_name: str
    clickable: bool
    enabled: bool
    displayed: bool
    bounds: Bounds
    is_in_viewport: bool
