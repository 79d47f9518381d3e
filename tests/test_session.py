"""Tests for the Appium session wrapper"""

from unittest.mock import MagicMock, patch

import pytest
from appium.options.common.base import AppiumOptions
from appium.webdriver.common.appiumby import AppiumBy
from selenium.common.exceptions import NoSuchElementException, WebDriverException

from webdriver_mcp.appium.session import AppiumSession, detect_platform, parse_selector


class TestParseSelector:
    """Tests for parse_selector"""

    @pytest.mark.parametrize(
        "selector,expected",
        [
            ("~login_button", (AppiumBy.ACCESSIBILITY_ID, "login_button")),
            (
                'android=new UiSelector().text("OK").instance(1)',
                (AppiumBy.ANDROID_UIAUTOMATOR, 'new UiSelector().text("OK").instance(1)'),
            ),
            (
                '-ios predicate string:label == "Log In"',
                (AppiumBy.IOS_PREDICATE, 'label == "Log In"'),
            ),
            (
                "-ios class chain:**/XCUIElementTypeButton",
                (AppiumBy.IOS_CLASS_CHAIN, "**/XCUIElementTypeButton"),
            ),
            ("//android.widget.Button[@text='OK']", (AppiumBy.XPATH, "//android.widget.Button[@text='OK']")),
            ('(//*[@text="Submit"])[2]', (AppiumBy.XPATH, '(//*[@text="Submit"])[2]')),
            ("xpath=//XCUIElementTypeCell", (AppiumBy.XPATH, "//XCUIElementTypeCell")),
            ("id=com.example.app:id/title", (AppiumBy.ID, "com.example.app:id/title")),
            ("class=android.widget.EditText", (AppiumBy.CLASS_NAME, "android.widget.EditText")),
            ("com.example.app:id/title", (AppiumBy.ID, "com.example.app:id/title")),
        ],
    )
    def test_strategies(self, selector, expected):
        assert parse_selector(selector) == expected

    def test_multiline_value(self):
        assert parse_selector("~Line1\nLine2") == (AppiumBy.ACCESSIBILITY_ID, "Line1\nLine2")

    @pytest.mark.parametrize("selector", ["", "   "])
    def test_empty_selector(self, selector):
        with pytest.raises(ValueError, match="selector must not be empty"):
            parse_selector(selector)


class TestDetectPlatform:
    """Tests for detect_platform"""

    @pytest.mark.parametrize(
        "capabilities,expected",
        [
            ({"platformName": "Android"}, "android"),
            ({"platformName": "iOS"}, "ios"),
            ({"appium:platformName": "IOS"}, "ios"),
            ({"appium:automationName": "UiAutomator2"}, "android"),
            ({"automationName": "Espresso"}, "android"),
            ({"appium:automationName": "XCUITest"}, "ios"),
        ],
    )
    def test_detection(self, capabilities, expected):
        assert detect_platform(capabilities) == expected

    def test_platform_name_wins(self):
        capabilities = {"platformName": "iOS", "appium:automationName": "UiAutomator2"}

        assert detect_platform(capabilities) == "ios"

    @pytest.mark.parametrize(
        "capabilities",
        [{}, {"platformName": "Windows"}, {"appium:automationName": "Flutter"}],
    )
    def test_undetectable(self, capabilities):
        with pytest.raises(ValueError, match="Cannot determine platform"):
            detect_platform(capabilities)


@pytest.mark.asyncio
class TestAppiumSession:
    """Tests for AppiumSession with a mocked driver"""

    @pytest.fixture
    def session(self, mock_driver, android_capabilities):
        return AppiumSession(mock_driver, "android", android_capabilities, "http://127.0.0.1:4723")

    async def test_connect(self, android_capabilities, mock_driver):
        with patch("webdriver_mcp.appium.session.webdriver.Remote", return_value=mock_driver) as remote:
            session = await AppiumSession.connect(
                android_capabilities, "http://127.0.0.1:4723", new_command_timeout=300
            )

        assert session.session_id == "session-android-1"
        assert session.platform == "android"
        assert session.capabilities["appium:newCommandTimeout"] == 300
        assert remote.call_args.kwargs["command_executor"] == "http://127.0.0.1:4723"
        assert isinstance(remote.call_args.kwargs["options"], AppiumOptions)
        # Caller capabilities are not mutated
        assert "appium:newCommandTimeout" not in android_capabilities

    async def test_connect_keeps_caller_command_timeout(self, android_capabilities, mock_driver):
        android_capabilities["appium:newCommandTimeout"] = 30

        with patch("webdriver_mcp.appium.session.webdriver.Remote", return_value=mock_driver):
            session = await AppiumSession.connect(
                android_capabilities, "http://127.0.0.1:4723", new_command_timeout=300
            )

        assert session.capabilities["appium:newCommandTimeout"] == 30

    async def test_connect_platform_override(self, mock_driver):
        with patch("webdriver_mcp.appium.session.webdriver.Remote", return_value=mock_driver):
            session = await AppiumSession.connect({"appium:app": "/apps/x.ipa"}, "http://h:4723", platform="ios")

        assert session.platform == "ios"

    async def test_connect_undetectable_platform(self):
        with patch("webdriver_mcp.appium.session.webdriver.Remote") as remote:
            with pytest.raises(ValueError, match="Cannot determine platform"):
                await AppiumSession.connect({}, "http://127.0.0.1:4723")

        remote.assert_not_called()

    async def test_connect_failure(self, android_capabilities):
        with patch(
            "webdriver_mcp.appium.session.webdriver.Remote",
            side_effect=WebDriverException("Could not find a connected Android device"),
        ):
            with pytest.raises(RuntimeError, match="Failed to create Appium session: Could not find"):
                await AppiumSession.connect(android_capabilities, "http://127.0.0.1:4723")

    async def test_get_page_source(self, session, android_source):
        assert await session.get_page_source() == android_source

    async def test_get_window_size(self, session):
        assert await session.get_window_size() == {"width": 1080, "height": 2400}

    async def test_driver_error_becomes_runtime_error(self, session, mock_driver):
        mock_driver.get_window_size.side_effect = WebDriverException("not supported")

        with pytest.raises(RuntimeError, match="Get window size failed: not supported"):
            await session.get_window_size()

    async def test_click(self, session, mock_driver):
        element = MagicMock()
        mock_driver.find_element.return_value = element

        await session.click("~login_button", 1000)

        mock_driver.find_element.assert_called_with(AppiumBy.ACCESSIBILITY_ID, "login_button")
        element.click.assert_called_once()

    async def test_set_value_clears_first(self, session, mock_driver):
        element = MagicMock()
        mock_driver.find_element.return_value = element

        await session.set_value("id=com.example.app:id/username", "demo", 1000)

        mock_driver.find_element.assert_called_with(AppiumBy.ID, "com.example.app:id/username")
        element.clear.assert_called_once()
        element.send_keys.assert_called_once_with("demo")

    async def test_get_text(self, session, mock_driver):
        mock_driver.find_element.return_value = MagicMock(text="Welcome back")

        assert await session.get_text('android=new UiSelector().text("Welcome back")', 1000) == "Welcome back"

    async def test_is_displayed(self, session, mock_driver):
        element = MagicMock()
        element.is_displayed.return_value = False
        mock_driver.find_element.return_value = element

        assert await session.is_displayed("~Promotions", 1000) is False

    async def test_find_element_times_out(self, session, mock_driver):
        mock_driver.find_element.side_effect = NoSuchElementException("no such element")

        with pytest.raises(RuntimeError, match="Find element '~missing' timed out"):
            await session.find_element("~missing", 50)

    async def test_invalid_selector(self, session):
        with pytest.raises(ValueError, match="selector must not be empty"):
            await session.click("", 1000)

    async def test_take_screenshot(self, session):
        assert (await session.take_screenshot()).startswith(b"\x89PNG")

    async def test_query_app_state(self, session, mock_driver):
        mock_driver.query_app_state.return_value = 4

        assert await session.query_app_state("com.example.app") == 4
        mock_driver.query_app_state.assert_called_once_with("com.example.app")

    async def test_activate_app(self, session, mock_driver):
        await session.activate_app("com.example.app")

        mock_driver.activate_app.assert_called_once_with("com.example.app")

    async def test_terminate_app(self, session, mock_driver):
        mock_driver.terminate_app.return_value = False

        assert await session.terminate_app("com.example.app") is False
        mock_driver.terminate_app.assert_called_once_with("com.example.app")

    async def test_app_error_names_the_app(self, session, mock_driver):
        mock_driver.activate_app.side_effect = WebDriverException("App is not installed")

        with pytest.raises(RuntimeError, match="Activate app 'com.example.app' failed: App is not installed"):
            await session.activate_app("com.example.app")

    async def test_contexts(self, session, mock_driver):
        mock_driver.contexts = ["NATIVE_APP", "WEBVIEW_com.example.app"]
        mock_driver.current_context = "NATIVE_APP"

        assert await session.get_contexts() == ["NATIVE_APP", "WEBVIEW_com.example.app"]
        assert await session.get_current_context() == "NATIVE_APP"

    async def test_no_contexts(self, session, mock_driver):
        mock_driver.contexts = None

        assert await session.get_contexts() == []

    async def test_switch_context(self, session, mock_driver):
        await session.switch_context("WEBVIEW_com.example.app")

        mock_driver.switch_to.context.assert_called_once_with("WEBVIEW_com.example.app")

    async def test_switch_to_unknown_context(self, session, mock_driver):
        mock_driver.switch_to.context.side_effect = WebDriverException("No such context found.")

        with pytest.raises(RuntimeError, match="Switch to context 'WEBVIEW_x' failed: No such context found."):
            await session.switch_context("WEBVIEW_x")

    async def test_close(self, session, mock_driver):
        await session.close()

        mock_driver.quit.assert_called_once()
        assert session.closed is True

    async def test_close_twice_is_noop(self, session, mock_driver):
        await session.close()
        await session.close()

        mock_driver.quit.assert_called_once()

    async def test_detach_keeps_server_session(self, session, mock_driver):
        await session.close(detach=True)

        mock_driver.quit.assert_not_called()
        assert session.closed is True

    async def test_commands_after_close_fail(self, session):
        await session.close()

        with pytest.raises(RuntimeError, match="is closed"):
            await session.get_page_source()

    async def test_info(self, session):
        assert session.info() == {
            "session_id": "session-android-1",
            "platform": "android",
            "appium_url": "http://127.0.0.1:4723",
            "automation_name": "UiAutomator2",
            "device_name": "emulator-5554",
        }
