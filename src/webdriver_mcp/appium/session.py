"""
Appium session wrapper

Wraps one Appium WebDriver session behind an async interface. The Appium
Python client is blocking, so every driver call runs in a worker thread.
"""

import asyncio
import logging
import re
from collections.abc import Callable
from typing import Any, TypeVar

from appium import webdriver
from appium.options.common.base import AppiumOptions
from appium.webdriver.common.appiumby import AppiumBy
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from mobile_locators import Platform, ViewportSize

from ..types import SessionInfo

logger = logging.getLogger(__name__)

T = TypeVar("T")

NATIVE_CONTEXT = "NATIVE_APP"

# Appium app state codes
APP_STATE_NAMES = {
    0: "not_installed",
    1: "not_running",
    2: "running_in_background_suspended",
    3: "running_in_background",
    4: "running_in_foreground",
}

# Selector prefixes emitted by get_visible_elements, checked in order
_SELECTOR_STRATEGIES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"^~(.+)$", re.DOTALL), AppiumBy.ACCESSIBILITY_ID),
    (re.compile(r"^android=(.+)$", re.DOTALL), AppiumBy.ANDROID_UIAUTOMATOR),
    (re.compile(r"^-ios predicate string:(.+)$", re.DOTALL), AppiumBy.IOS_PREDICATE),
    (re.compile(r"^-ios class chain:(.+)$", re.DOTALL), AppiumBy.IOS_CLASS_CHAIN),
    (re.compile(r"^xpath=(.+)$", re.DOTALL), AppiumBy.XPATH),
    (re.compile(r"^(\(*/.*)$", re.DOTALL), AppiumBy.XPATH),
    (re.compile(r"^id=(.+)$", re.DOTALL), AppiumBy.ID),
    (re.compile(r"^class=(.+)$", re.DOTALL), AppiumBy.CLASS_NAME),
]


def parse_selector(selector: str) -> tuple[str, str]:
    """
    Translate a selector string into an Appium (by, value) pair.

    Supported forms: "~accessibility id", "android=<UiSelector>",
    "-ios predicate string:...", "-ios class chain:...", XPath (leading
    "/" or "(", or "xpath=" prefix), "id=..." and "class=...". Anything
    else is treated as an element id.

    Raises:
        ValueError: If the selector is empty
    """
    if not selector or not selector.strip():
        raise ValueError("selector must not be empty")

    for pattern, by in _SELECTOR_STRATEGIES:
        match = pattern.match(selector)
        if match:
            return by, match.group(1)

    return AppiumBy.ID, selector


def _get_capability(capabilities: dict[str, Any], name: str) -> Any:
    if name in capabilities:
        return capabilities[name]
    return capabilities.get(f"appium:{name}")


def detect_platform(capabilities: dict[str, Any]) -> Platform:
    """
    Determine the platform of a session from its capabilities.

    platformName decides when present. Otherwise the automation name is
    matched: UiAutomator2 and Espresso are Android, XCUITest is iOS.

    Raises:
        ValueError: If the platform cannot be determined
    """
    platform_name = str(_get_capability(capabilities, "platformName") or "").lower()
    if platform_name == "android":
        return "android"
    if platform_name == "ios":
        return "ios"

    automation_name = str(_get_capability(capabilities, "automationName") or "").lower()
    if "uiautomator" in automation_name or "espresso" in automation_name:
        return "android"
    if "xcuitest" in automation_name:
        return "ios"

    raise ValueError(
        "Cannot determine platform: set platformName to 'Android' or 'iOS' in the capabilities"
    )


class AppiumSession:
    """An open Appium session on one device."""

    def __init__(
        self,
        driver: Any,
        platform: Platform,
        capabilities: dict[str, Any],
        appium_url: str,
    ) -> None:
        self.driver = driver
        self.platform = platform
        self.capabilities = capabilities
        self.appium_url = appium_url
        self.session_id: str = driver.session_id
        self.closed = False

    @classmethod
    async def connect(
        cls,
        capabilities: dict[str, Any],
        appium_url: str,
        platform: Platform | None = None,
        new_command_timeout: int | None = None,
    ) -> "AppiumSession":
        """
        Open a new session on an Appium server.

        Args:
            capabilities: W3C capabilities, passed through as given
            appium_url: Appium server URL
            platform: Platform override; detected from capabilities when omitted
            new_command_timeout: Seconds Appium waits for a command, applied
                only when the capabilities do not set it

        Raises:
            ValueError: If the platform cannot be determined
            RuntimeError: If the session cannot be created
        """
        resolved_platform = platform or detect_platform(capabilities)

        caps = dict(capabilities)
        if new_command_timeout is not None and _get_capability(caps, "newCommandTimeout") is None:
            caps["appium:newCommandTimeout"] = new_command_timeout

        options = AppiumOptions()
        options.load_capabilities(caps)

        logger.info(f"Creating Appium session on {appium_url} ({resolved_platform})")
        try:
            driver = await asyncio.to_thread(
                webdriver.Remote, command_executor=appium_url, options=options
            )
        except WebDriverException as e:
            raise RuntimeError(f"Failed to create Appium session: {e.msg or e}") from e

        session = cls(driver, resolved_platform, caps, appium_url)
        logger.info(f"Appium session created: {session.session_id}")
        return session

    async def _run(self, action: str, func: Callable[..., T], *args: Any) -> T:
        if self.closed:
            raise RuntimeError(f"Session {self.session_id} is closed")
        try:
            return await asyncio.to_thread(func, *args)
        except TimeoutException as e:
            raise RuntimeError(f"{action} timed out") from e
        except WebDriverException as e:
            raise RuntimeError(f"{action} failed: {e.msg or e}") from e

    def _wait_for(self, selector: str, timeout_ms: int) -> WebElement:
        locator = parse_selector(selector)
        wait = WebDriverWait(self.driver, timeout_ms / 1000)
        return wait.until(EC.presence_of_element_located(locator))

    async def get_page_source(self) -> str:
        """Fetch the current page source XML."""
        return await self._run("Get page source", lambda: self.driver.page_source)

    async def get_window_size(self) -> ViewportSize:
        """Fetch the screen size."""
        size = await self._run("Get window size", self.driver.get_window_size)
        return {"width": int(size["width"]), "height": int(size["height"])}

    async def find_element(self, selector: str, timeout_ms: int) -> WebElement:
        """Wait up to timeout_ms for an element to exist."""
        return await self._run(f"Find element '{selector}'", self._wait_for, selector, timeout_ms)

    async def click(self, selector: str, timeout_ms: int) -> None:
        """Wait for an element and tap it."""

        def _click() -> None:
            self._wait_for(selector, timeout_ms).click()

        await self._run(f"Click element '{selector}'", _click)

    async def set_value(self, selector: str, value: str, timeout_ms: int) -> None:
        """Wait for an element, clear it and type a value."""

        def _set_value() -> None:
            element = self._wait_for(selector, timeout_ms)
            element.clear()
            element.send_keys(value)

        await self._run(f"Set value on '{selector}'", _set_value)

    async def get_text(self, selector: str, timeout_ms: int) -> str:
        """Wait for an element and read its text."""
        return await self._run(
            f"Get text of '{selector}'", lambda: self._wait_for(selector, timeout_ms).text
        )

    async def is_displayed(self, selector: str, timeout_ms: int) -> bool:
        """Wait for an element and check whether it is displayed."""
        return await self._run(
            f"Check display of '{selector}'",
            lambda: self._wait_for(selector, timeout_ms).is_displayed(),
        )

    async def take_screenshot(self) -> bytes:
        """Capture the screen as PNG bytes."""
        return await self._run("Take screenshot", self.driver.get_screenshot_as_png)

    async def query_app_state(self, app_id: str) -> int:
        """Get the state code of an app (package name or bundle id)."""
        state = await self._run(f"Query state of '{app_id}'", self.driver.query_app_state, app_id)
        return int(state)

    async def activate_app(self, app_id: str) -> None:
        """Bring an installed app to the foreground, launching it if needed."""
        await self._run(f"Activate app '{app_id}'", self.driver.activate_app, app_id)

    async def terminate_app(self, app_id: str) -> bool:
        """Stop a running app. Returns False if it was not running."""
        return bool(await self._run(f"Terminate app '{app_id}'", self.driver.terminate_app, app_id))

    async def get_contexts(self) -> list[str]:
        """List the available contexts (NATIVE_APP and any WEBVIEW_*)."""
        contexts = await self._run("Get contexts", lambda: self.driver.contexts)
        return [str(context) for context in contexts or []]

    async def get_current_context(self) -> str:
        """Get the name of the active context."""
        return str(await self._run("Get current context", lambda: self.driver.current_context))

    async def switch_context(self, name: str) -> None:
        """Switch the session to another context."""
        await self._run(f"Switch to context '{name}'", self.driver.switch_to.context, name)

    async def close(self, detach: bool = False) -> None:
        """
        End the session.

        With detach=True the local handle is dropped but the session stays
        alive on the Appium server.
        """
        if self.closed:
            return
        if not detach:
            await self._run("Close session", self.driver.quit)
        self.closed = True
        logger.info(f"Session {self.session_id} {'detached' if detach else 'closed'}")

    def info(self) -> SessionInfo:
        """Describe the session for tool responses."""
        return {
            "session_id": self.session_id,
            "platform": self.platform,
            "appium_url": self.appium_url,
            "automation_name": str(_get_capability(self.capabilities, "automationName") or ""),
            "device_name": str(_get_capability(self.capabilities, "deviceName") or ""),
        }
