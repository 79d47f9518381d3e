"""
WebDriver MCP Server

An MCP server for mobile app automation through Appium.

This server:
1. Opens and tracks Appium sessions on Android and iOS devices
2. Lists the elements on screen with ready-to-use locators, generated
   from a single page source capture
3. Finds, taps, types into and reads elements by locator
4. Captures screenshots and raw page sources
5. Controls app lifecycle and switches between native and webview contexts
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, cast

from fastmcp import FastMCP
from fastmcp.utilities.types import Image

from mobile_locators import ViewportSize, generate_all_element_locators, get_default_filters

from .appium import APP_STATE_NAMES, NATIVE_CONTEXT, AppiumSession, SessionRegistry, load_appium_config
from .middleware import MCPLoggingMiddleware
from .types import (
    AppStateResponse,
    ContextResponse,
    ElementActionResponse,
    PageSourceResponse,
    SessionResponse,
    VisibleElementsResponse,
)
from .utils.element_processor import apply_jmespath_query, format_output, to_mobile_element_info
from .utils.logging_config import get_logger, log_dict, log_tool_result, setup_file_logging

# Configuration is loaded once; invalid settings fail at startup
appium_config = load_appium_config()

# Configure logging using centralized utility
setup_file_logging(
    log_file=appium_config["log_file"],
    level=logging.getLevelName(appium_config["log_level"]),
)
logger = get_logger(__name__)

# Log Python interpreter information at startup
logger.info(f"Python interpreter: {sys.executable}")
logger.info(f"Python version: {sys.version}")

# Global components
session_registry: SessionRegistry | None = None


@asynccontextmanager
async def lifespan_context(server):
    """Lifespan context manager for startup and shutdown"""
    global session_registry

    logger.info("Starting WebDriver MCP Server...")

    try:
        log_dict(logger, "Appium configuration:", dict(appium_config))
        session_registry = SessionRegistry(appium_config)

        logger.info("WebDriver MCP Server started successfully")

        # Yield control to the server
        yield

    except Exception as e:
        logger.error(f"Failed to start WebDriver MCP Server: {e}", exc_info=True)
        raise

    finally:
        logger.info("Shutting down WebDriver MCP Server...")

        try:
            if session_registry:
                await session_registry.dispose_all()

            logger.info("WebDriver MCP Server shut down successfully")

        except Exception as e:
            logger.error(f"Error during shutdown: {e}", exc_info=True)


# Initialize the MCP server
mcp = FastMCP(
    name="WebDriver MCP Server",
    instructions="""
    Mobile app automation for Android and iOS through an Appium server.

    Start with start_app_session, then call get_visible_elements to list the
    elements on screen. Each element comes with a ready-to-use selector
    (and usually an alternative) that the element tools accept directly:
    find_element, click_element, set_value, get_element_text, is_displayed.

    Selectors use Appium syntax: "~accessibility id", "android=new UiSelector()...",
    "-ios predicate string:...", "-ios class chain:...", or XPath.

    get_app_state, activate_app and terminate_app control apps by package
    name or bundle id. get_contexts and switch_context move between the
    native app and webviews.
    """,
    lifespan=lifespan_context,
)

# Register MCP request/response logging middleware
# Logs all client MCP requests and responses with "CLIENT_MCP" prefix for easy filtering
mcp.add_middleware(
    MCPLoggingMiddleware(
        log_request_params=True,
        log_response_data=appium_config["log_responses"],
        max_log_length=5000,
    )
)


def _get_registry() -> SessionRegistry:
    if session_registry is None:
        raise RuntimeError("Session registry not initialized")
    return session_registry


def _get_session(session_id: str | None) -> AppiumSession:
    return _get_registry().get(session_id)


def _resolve_timeout(timeout: int | None) -> int:
    if timeout is None:
        return appium_config["default_timeout_ms"]
    if timeout <= 0:
        raise ValueError("timeout must be a positive number of milliseconds")
    return timeout


# =============================================================================
# SESSION TOOLS
# =============================================================================


@mcp.tool()
@log_tool_result(logger)
async def start_app_session(
    capabilities: dict[str, Any],
    platform: str | None = None,
    appium_url: str | None = None,
) -> SessionResponse:
    """
    Start a mobile app session (iOS/Android) via Appium.

    The capabilities are passed to Appium as given, for example:
        {
            "platformName": "Android",
            "appium:automationName": "UiAutomator2",
            "appium:deviceName": "emulator-5554",
            "appium:app": "/path/to/app.apk"
        }

    The new session becomes the current session used by all other tools.

    Args:
        capabilities: W3C capabilities for the session
        platform: "android" or "ios". Default: detected from platformName/automationName
        appium_url: Appium server URL. Default: WDIO_MCP_APPIUM_URL (http://127.0.0.1:4723)

    Returns:
        SessionResponse with the session details
    """
    normalized_platform = platform.lower() if platform else None
    if normalized_platform not in (None, "android", "ios"):
        return SessionResponse(
            success=False, session=None, error="platform must be 'android' or 'ios'"
        )

    try:
        session = await _get_registry().create(
            capabilities,
            platform=cast(Any, normalized_platform),
            appium_url=appium_url,
        )
    except (ValueError, RuntimeError) as e:
        return SessionResponse(success=False, session=None, error=f"Error starting app session: {e}")

    info = session.info()
    return SessionResponse(
        success=True,
        message=f"{session.platform} app session started with sessionId: {session.session_id}",
        session=info,
        error=None,
    )


@mcp.tool()
@log_tool_result(logger)
async def close_session(session_id: str | None = None, detach: bool = False) -> SessionResponse:
    """
    Close or detach from an app session.

    Args:
        session_id: Session to close. Default: the current session
        detach: If True, forget the session without terminating it on the
                Appium server (preserves app state). Default: False

    Returns:
        SessionResponse describing the closed session
    """
    try:
        info = await _get_registry().dispose(session_id, detach=detach)
    except (ValueError, RuntimeError) as e:
        return SessionResponse(success=False, session=None, error=f"Error closing session: {e}")

    action = "detached from" if detach else "closed"
    return SessionResponse(
        success=True,
        message=f"Session {action}: {info['session_id']}",
        session=info,
        error=None,
    )


@mcp.tool()
@log_tool_result(logger)
async def list_sessions() -> SessionResponse:
    """
    List open app sessions.

    Returns:
        SessionResponse with all sessions; the current one has is_current=True
    """
    try:
        sessions = _get_registry().list_sessions()
    except RuntimeError as e:
        return SessionResponse(success=False, sessions=[], error=str(e))

    return SessionResponse(success=True, sessions=sessions, error=None)


# =============================================================================
# ELEMENT DISCOVERY TOOLS
# =============================================================================


def _create_elements_error(
    error: str,
    offset: int = 0,
    limit: int = 100,
    output_format: str = "yaml",
) -> VisibleElementsResponse:
    """Create a get_visible_elements error response."""
    return VisibleElementsResponse(
        success=False,
        total_items=0,
        offset=offset,
        limit=limit,
        has_more=False,
        elements=None,
        error=error,
        output_format=output_format,
    )


def _validate_elements_params(output_format: str, offset: int, limit: int) -> str | None:
    """
    Validate get_visible_elements parameters.

    Returns error message if validation fails, None if valid.
    """
    if output_format.lower() not in ["json", "yaml"]:
        return "output_format must be 'json' or 'yaml'"

    if offset < 0:
        return "offset must be non-negative"

    if limit < 1 or limit > 10000:
        return "limit must be between 1 and 10000"

    return None


def _paginate_result_data(
    result_data: Any, offset: int, limit: int
) -> tuple[list[Any], int, bool]:
    """
    Apply pagination to result data.

    Args:
        result_data: Data to paginate (list or single item)
        offset: Starting index
        limit: Maximum items

    Returns:
        Tuple of (paginated_data, total_items, has_more)
    """
    if isinstance(result_data, list):
        total = len(result_data)
        paginated = result_data[offset : offset + limit]
        has_more = offset + limit < total
    else:
        result_data = [result_data]
        total = 1
        paginated = result_data if offset == 0 else []
        has_more = False

    return paginated, total, has_more


async def _get_viewport_size(session: AppiumSession) -> ViewportSize:
    """Get the screen size, falling back to the configured sentinel size."""
    try:
        return await session.get_window_size()
    except RuntimeError as e:
        logger.warning(f"Could not get window size, using fallback viewport: {e}")
        return {
            "width": appium_config["viewport_fallback_width"],
            "height": appium_config["viewport_fallback_height"],
        }


async def _is_native_context(session: AppiumSession) -> bool:
    """Check whether the session is in the native app context, assuming native if unknown."""
    try:
        return await session.get_current_context() == NATIVE_CONTEXT
    except RuntimeError as e:
        logger.warning(f"Could not get current context, assuming {NATIVE_CONTEXT}: {e}")
        return True


@mcp.tool()
@log_tool_result(logger)
async def get_visible_elements(
    in_viewport_only: bool = True,
    include_containers: bool = False,
    include_bounds: bool = False,
    jmespath_query: str | None = None,
    output_format: str = "yaml",
    offset: int = 0,
    limit: int = 100,
    session_id: str | None = None,
) -> VisibleElementsResponse:
    """
    List the selectable elements on the current screen with their locators.

    Uses a single page source capture: every element gets a primary
    selector, chosen in the order accessibility-id, id, text,
    predicate-string, class-chain, uiautomator, xpath, plus an alternative
    selector of a different strategy when one exists. Selectors are checked
    for uniqueness against the whole screen; verified=True means the
    selector matches exactly one element.

    ELEMENT STRUCTURE:
        selector: str            # Preferred selector
        alt_selector: str        # Next best selector (optional)
        verified: bool           # Selector matches exactly one element
        tag_name: str            # Element class / XCUIElementType
        text: str                # Visible text or label (optional)
        resource_id: str         # Android resource-id (optional)
        accessibility_id: str    # content-desc / name (optional)
        is_in_viewport: bool
        is_enabled: bool
        bounds: {x, y, width, height}   # Only with include_bounds=True

    Args:
        in_viewport_only: Only return elements fully inside the screen. Default: True.
                          Set to False to get ALL elements in the page source.
        include_containers: Include layout containers (ViewGroup, FrameLayout,
                            XCUIElementTypeOther, etc). Default: False.
                            Containers with text are always included.
        include_bounds: Include element bounds. Default: False
        jmespath_query: JMESPath expression applied to the element list before
                        pagination. Default: None

            Examples:
            - "[?contains(nvl(text, ''), 'Login')]" - Elements whose text contains 'Login'
            - "[?is_enabled == `false`]" - Disabled elements
            - "[].selector" - Selectors only

            Custom functions: nvl(value, default), int(value), str(value),
            regex_replace(pattern, replacement, value)

        output_format: 'yaml' or 'json'. Default: 'yaml'
        offset: Starting index for pagination. Default: 0
        limit: Maximum elements to return (1-10000). Default: 100
        session_id: Session to use. Default: the current session

    Returns:
        VisibleElementsResponse with the formatted page of elements
    """
    validation_error = _validate_elements_params(output_format, offset, limit)
    if validation_error:
        return _create_elements_error(validation_error, offset, limit, output_format)

    try:
        session = _get_session(session_id)
        viewport = await _get_viewport_size(session)
        page_source = await session.get_page_source()
    except (ValueError, RuntimeError) as e:
        return _create_elements_error(
            f"Error getting visible elements: {e}", offset, limit, output_format
        )

    is_native = await _is_native_context(session)
    filters = get_default_filters(session.platform, include_containers)
    # CPU bound, run in a worker thread
    records = await asyncio.to_thread(
        generate_all_element_locators,
        page_source,
        session.platform,
        viewport,
        filters,
        is_native,
    )

    elements = [
        info
        for record in records
        if (info := to_mobile_element_info(record, include_bounds)) is not None
    ]
    if in_viewport_only:
        elements = [element for element in elements if element["is_in_viewport"]]

    result_data: Any = elements
    if jmespath_query:
        result_data, query_error = apply_jmespath_query(elements, jmespath_query)
        if query_error:
            return _create_elements_error(query_error, offset, limit, output_format)

    paginated_data, total, has_more = _paginate_result_data(result_data, offset, limit)

    return VisibleElementsResponse(
        success=True,
        platform=session.platform,
        total_items=total,
        offset=offset,
        limit=limit,
        has_more=has_more,
        elements=format_output(paginated_data, output_format),
        error=None,
        output_format=output_format.lower(),
        session_id=session.session_id,
    )


@mcp.tool()
@log_tool_result(logger)
async def get_page_source(session_id: str | None = None) -> PageSourceResponse:
    """
    Get the raw XML page source of the current screen.

    Prefer get_visible_elements, which is much smaller and comes with locators.

    Args:
        session_id: Session to use. Default: the current session

    Returns:
        PageSourceResponse with the XML page source
    """
    try:
        session = _get_session(session_id)
        source = await session.get_page_source()
    except (ValueError, RuntimeError) as e:
        return PageSourceResponse(success=False, page_source=None, error=f"Error getting page source: {e}")

    return PageSourceResponse(
        success=True, page_source=source, error=None, session_id=session.session_id
    )


# =============================================================================
# ELEMENT INTERACTION TOOLS
# =============================================================================


def _element_error(selector: str, action: str, error: Exception) -> ElementActionResponse:
    return ElementActionResponse(success=False, selector=selector, error=f"Error {action}: {error}")


@mcp.tool()
@log_tool_result(logger)
async def find_element(
    selector: str, timeout: int | None = None, session_id: str | None = None
) -> ElementActionResponse:
    """
    Wait for an element to exist.

    Args:
        selector: Appium selector ("~id", "android=...", "-ios predicate string:...",
                  "-ios class chain:...", XPath or a plain resource id)
        timeout: Maximum time to wait in milliseconds. Default: 3000
        session_id: Session to use. Default: the current session

    Returns:
        ElementActionResponse
    """
    try:
        session = _get_session(session_id)
        await session.find_element(selector, _resolve_timeout(timeout))
    except (ValueError, RuntimeError) as e:
        return _element_error(selector, "finding element", e)

    return ElementActionResponse(
        success=True, selector=selector, message="Element found", error=None,
        session_id=session.session_id,
    )


@mcp.tool()
@log_tool_result(logger)
async def click_element(
    selector: str, timeout: int | None = None, session_id: str | None = None
) -> ElementActionResponse:
    """
    Tap an element.

    Args:
        selector: Appium selector, as returned by get_visible_elements
        timeout: Maximum time to wait for the element in milliseconds. Default: 3000
        session_id: Session to use. Default: the current session

    Returns:
        ElementActionResponse
    """
    try:
        session = _get_session(session_id)
        await session.click(selector, _resolve_timeout(timeout))
    except (ValueError, RuntimeError) as e:
        return _element_error(selector, "clicking element", e)

    return ElementActionResponse(
        success=True, selector=selector, message=f"Element clicked (selector: {selector})",
        error=None, session_id=session.session_id,
    )


@mcp.tool()
@log_tool_result(logger)
async def set_value(
    selector: str,
    value: str,
    timeout: int | None = None,
    session_id: str | None = None,
) -> ElementActionResponse:
    """
    Clear an input element and type text into it.

    Args:
        selector: Appium selector, as returned by get_visible_elements
        value: Text to enter
        timeout: Maximum time to wait for the element in milliseconds. Default: 3000
        session_id: Session to use. Default: the current session

    Returns:
        ElementActionResponse
    """
    try:
        session = _get_session(session_id)
        await session.set_value(selector, value, _resolve_timeout(timeout))
    except (ValueError, RuntimeError) as e:
        return _element_error(selector, "entering text", e)

    return ElementActionResponse(
        success=True, selector=selector, message=f'Text "{value}" entered into element',
        error=None, session_id=session.session_id,
    )


@mcp.tool()
@log_tool_result(logger)
async def get_element_text(
    selector: str, timeout: int | None = None, session_id: str | None = None
) -> ElementActionResponse:
    """
    Read the text of an element.

    Args:
        selector: Appium selector, as returned by get_visible_elements
        timeout: Maximum time to wait for the element in milliseconds. Default: 3000
        session_id: Session to use. Default: the current session

    Returns:
        ElementActionResponse with the text
    """
    try:
        session = _get_session(session_id)
        text = await session.get_text(selector, _resolve_timeout(timeout))
    except (ValueError, RuntimeError) as e:
        return _element_error(selector, "getting element text", e)

    return ElementActionResponse(
        success=True, selector=selector, text=text, error=None, session_id=session.session_id
    )


@mcp.tool()
@log_tool_result(logger)
async def is_displayed(
    selector: str, timeout: int | None = None, session_id: str | None = None
) -> ElementActionResponse:
    """
    Check whether an element is displayed.

    Args:
        selector: Appium selector, as returned by get_visible_elements
        timeout: Maximum time to wait for the element in milliseconds. Default: 3000
        session_id: Session to use. Default: the current session

    Returns:
        ElementActionResponse with displayed set
    """
    try:
        session = _get_session(session_id)
        displayed = await session.is_displayed(selector, _resolve_timeout(timeout))
    except (ValueError, RuntimeError) as e:
        return _element_error(selector, "checking if element is displayed", e)

    return ElementActionResponse(
        success=True, selector=selector, displayed=displayed, error=None,
        session_id=session.session_id,
    )


# =============================================================================
# APP LIFECYCLE TOOLS
# =============================================================================


def _app_error(app_id: str, action: str, error: Exception) -> AppStateResponse:
    return AppStateResponse(success=False, app_id=app_id, error=f"Error {action}: {error}")


@mcp.tool()
@log_tool_result(logger)
async def get_app_state(app_id: str, session_id: str | None = None) -> AppStateResponse:
    """
    Get the state of an installed app.

    States: 0 not_installed, 1 not_running, 2 running_in_background_suspended,
    3 running_in_background, 4 running_in_foreground.

    Args:
        app_id: Android package name or iOS bundle id
        session_id: Session to use. Default: the current session

    Returns:
        AppStateResponse with state and state_name
    """
    try:
        session = _get_session(session_id)
        state = await session.query_app_state(app_id)
    except (ValueError, RuntimeError) as e:
        return _app_error(app_id, "getting app state", e)

    return AppStateResponse(
        success=True,
        app_id=app_id,
        state=state,
        state_name=APP_STATE_NAMES.get(state, "unknown"),
        error=None,
        session_id=session.session_id,
    )


@mcp.tool()
@log_tool_result(logger)
async def activate_app(app_id: str, session_id: str | None = None) -> AppStateResponse:
    """
    Bring an app to the foreground, launching it if it is not running.

    Args:
        app_id: Android package name or iOS bundle id
        session_id: Session to use. Default: the current session

    Returns:
        AppStateResponse
    """
    try:
        session = _get_session(session_id)
        await session.activate_app(app_id)
    except (ValueError, RuntimeError) as e:
        return _app_error(app_id, "activating app", e)

    return AppStateResponse(
        success=True, app_id=app_id, message=f"App activated: {app_id}", error=None,
        session_id=session.session_id,
    )


@mcp.tool()
@log_tool_result(logger)
async def terminate_app(app_id: str, session_id: str | None = None) -> AppStateResponse:
    """
    Stop a running app.

    Args:
        app_id: Android package name or iOS bundle id
        session_id: Session to use. Default: the current session

    Returns:
        AppStateResponse; the message says whether the app was running
    """
    try:
        session = _get_session(session_id)
        terminated = await session.terminate_app(app_id)
    except (ValueError, RuntimeError) as e:
        return _app_error(app_id, "terminating app", e)

    message = f"App terminated: {app_id}" if terminated else f"App was not running: {app_id}"
    return AppStateResponse(
        success=True, app_id=app_id, message=message, error=None, session_id=session.session_id
    )


# =============================================================================
# CONTEXT TOOLS
# =============================================================================


@mcp.tool()
@log_tool_result(logger)
async def get_contexts(session_id: str | None = None) -> ContextResponse:
    """
    List the available contexts: NATIVE_APP plus one WEBVIEW_* per inspectable webview.

    Args:
        session_id: Session to use. Default: the current session

    Returns:
        ContextResponse with contexts
    """
    try:
        session = _get_session(session_id)
        contexts = await session.get_contexts()
    except (ValueError, RuntimeError) as e:
        return ContextResponse(success=False, error=f"Error getting contexts: {e}")

    return ContextResponse(
        success=True, contexts=contexts, error=None, session_id=session.session_id
    )


@mcp.tool()
@log_tool_result(logger)
async def get_current_context(session_id: str | None = None) -> ContextResponse:
    """
    Get the active context.

    Args:
        session_id: Session to use. Default: the current session

    Returns:
        ContextResponse with current_context
    """
    try:
        session = _get_session(session_id)
        context = await session.get_current_context()
    except (ValueError, RuntimeError) as e:
        return ContextResponse(success=False, error=f"Error getting current context: {e}")

    return ContextResponse(
        success=True, current_context=context, error=None, session_id=session.session_id
    )


@mcp.tool()
@log_tool_result(logger)
async def switch_context(context: str, session_id: str | None = None) -> ContextResponse:
    """
    Switch between the native app and a webview.

    get_visible_elements is built for the native context; in a webview
    context pass XPath selectors to the element tools.

    Args:
        context: Context name from get_contexts, e.g. "NATIVE_APP" or "WEBVIEW_com.example.app",
                 or its 1-based position in the get_contexts list
        session_id: Session to use. Default: the current session

    Returns:
        ContextResponse with current_context set to the new context
    """
    if not context or not context.strip():
        return ContextResponse(success=False, error="context must not be empty")

    try:
        session = _get_session(session_id)
        target = context
        if context.isdigit():
            contexts = await session.get_contexts()
            position = int(context)
            if not 1 <= position <= len(contexts):
                raise ValueError(
                    f"Invalid context index {context}. Available contexts: {len(contexts)}"
                )
            target = contexts[position - 1]
        await session.switch_context(target)
    except (ValueError, RuntimeError) as e:
        return ContextResponse(success=False, error=f"Error switching context: {e}")

    return ContextResponse(
        success=True,
        current_context=target,
        message=f"Switched to context: {target}",
        error=None,
        session_id=session.session_id,
    )


# =============================================================================
# SCREENSHOT TOOLS
# =============================================================================


@mcp.tool()
@log_tool_result(logger)
async def take_screenshot(session_id: str | None = None) -> Image:
    """
    Take a screenshot of the device screen.

    You can't perform actions based on the screenshot, use get_visible_elements for actions.

    Args:
        session_id: Session to use. Default: the current session

    Returns:
        PNG image
    """
    try:
        session = _get_session(session_id)
        png = await session.take_screenshot()
    except (ValueError, RuntimeError) as e:
        raise RuntimeError(f"Error taking screenshot: {e}") from e

    return Image(data=png, format="png")


# =============================================================================
# RESOURCES
# =============================================================================


@mcp.resource("webdriver-mcp://status")
async def get_server_status() -> str:
    """Get the current server status"""
    if session_registry is None:
        return "WebDriver MCP Server is not initialized"

    sessions = session_registry.list_sessions()
    current = session_registry.current_session_id or "none"
    return f"WebDriver MCP Server is running ({len(sessions)} open sessions, current: {current})"


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Run the MCP server"""
    logger.info("Initializing WebDriver MCP Server...")
    mcp.run()


if __name__ == "__main__":
    main()
