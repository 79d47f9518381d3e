"""
Type Definitions

Define TypedDict classes for tool responses of the WebDriver MCP server.
"""

from typing import Any

from typing_extensions import TypedDict

from mobile_locators import Bounds


class SessionInfo(TypedDict, total=False):
    """Description of an open Appium session."""

    session_id: str
    platform: str
    appium_url: str
    automation_name: str
    device_name: str
    is_current: bool


class MobileElementInfo(TypedDict, total=False):
    """
    One selectable element as returned by get_visible_elements.

    selector is the preferred locator; alt_selector is the next best one
    of a different strategy, when there is one.
    """

    selector: str
    alt_selector: str
    verified: bool  # selector resolves to exactly one element of the capture
    tag_name: str
    text: str
    resource_id: str
    accessibility_id: str
    is_in_viewport: bool
    is_enabled: bool
    bounds: Bounds


class VisibleElementsResponse(TypedDict, total=False):
    """
    Response for get_visible_elements with pagination support.

    elements holds the formatted (YAML or JSON) page of results.
    """

    success: bool
    platform: str
    total_items: int
    offset: int
    limit: int
    has_more: bool
    elements: str | list[Any] | None
    error: str | None
    output_format: str
    session_id: str


class SessionResponse(TypedDict, total=False):
    """Response for session lifecycle tools."""

    success: bool
    message: str
    session: SessionInfo | None
    sessions: list[SessionInfo]
    error: str | None


class ElementActionResponse(TypedDict, total=False):
    """
    Response for element tools (find, click, set_value, text, displayed).

    Only the fields relevant to the tool are set.
    """

    success: bool
    selector: str
    message: str
    text: str
    displayed: bool
    error: str | None
    session_id: str


class PageSourceResponse(TypedDict, total=False):
    """Response for get_page_source."""

    success: bool
    page_source: str | None
    error: str | None
    session_id: str


class AppStateResponse(TypedDict, total=False):
    """
    Response for the app lifecycle tools.

    state is the Appium app state code, state_name its readable form.
    """

    success: bool
    app_id: str
    state: int
    state_name: str
    message: str
    error: str | None
    session_id: str


class ContextResponse(TypedDict, total=False):
    """Response for the context tools (native app vs. webviews)."""

    success: bool
    current_context: str
    contexts: list[str]
    message: str
    error: str | None
    session_id: str
