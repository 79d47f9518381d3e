"""
Pytest Configuration and Fixtures

This module provides shared fixtures for all tests: sample page sources
for both platforms and mocked Appium sessions.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

# Two hierarchy children: the status bar window (outside UiAutomator scope)
# and the app content. Paths of interest:
#   0.0       battery icon (status bar)
#   1.0.0     title TextView
#   1.0.1     username EditText
#   1.0.2.0   OK button in the left panel
#   1.0.3.0   OK button in the right panel
#   1.0.4-6   three Submit buttons sharing a resource-id
#   1.0.7     ViewGroup container with a content-desc
#   1.0.8     hidden TextView
#   1.0.9     Load more button below the screen
ANDROID_PAGE_SOURCE = """<?xml version='1.0' encoding='UTF-8' standalone='yes' ?>
<hierarchy index="0" class="hierarchy" rotation="0" width="1080" height="2400">
  <android.widget.FrameLayout index="0" package="com.android.systemui" class="android.widget.FrameLayout" text="" resource-id="" content-desc="" clickable="false" enabled="true" displayed="true" bounds="[0,0][1080,80]">
    <android.widget.ImageView index="0" package="com.android.systemui" class="android.widget.ImageView" text="" resource-id="com.android.systemui:id/battery" content-desc="Battery 80 percent." clickable="false" enabled="true" displayed="true" bounds="[980,10][1060,70]" />
  </android.widget.FrameLayout>
  <android.widget.FrameLayout index="1" package="com.example.app" class="android.widget.FrameLayout" text="" resource-id="" content-desc="" clickable="false" enabled="true" displayed="true" bounds="[0,80][1080,2400]">
    <android.widget.LinearLayout index="0" package="com.example.app" class="android.widget.LinearLayout" text="" resource-id="com.example.app:id/content" content-desc="" clickable="false" enabled="true" displayed="true" bounds="[0,80][1080,2400]">
      <android.widget.TextView index="0" package="com.example.app" class="android.widget.TextView" text="Welcome back" resource-id="com.example.app:id/title" content-desc="" clickable="false" enabled="true" displayed="true" bounds="[40,120][1040,200]" />
      <android.widget.EditText index="1" package="com.example.app" class="android.widget.EditText" text="" resource-id="com.example.app:id/username" content-desc="Username" clickable="true" focusable="true" enabled="true" displayed="true" bounds="[40,240][1040,340]" />
      <android.widget.LinearLayout index="2" package="com.example.app" class="android.widget.LinearLayout" text="" resource-id="com.example.app:id/left_panel" content-desc="" clickable="false" enabled="true" displayed="true" bounds="[40,380][520,500]">
        <android.widget.Button index="0" package="com.example.app" class="android.widget.Button" text="OK" resource-id="com.example.app:id/ok_left" content-desc="" clickable="true" enabled="true" displayed="true" bounds="[40,380][520,500]" />
      </android.widget.LinearLayout>
      <android.widget.LinearLayout index="3" package="com.example.app" class="android.widget.LinearLayout" text="" resource-id="com.example.app:id/right_panel" content-desc="" clickable="false" enabled="true" displayed="true" bounds="[560,380][1040,500]">
        <android.widget.Button index="0" package="com.example.app" class="android.widget.Button" text="OK" resource-id="com.example.app:id/ok_right" content-desc="" clickable="true" enabled="false" displayed="true" bounds="[560,380][1040,500]" />
      </android.widget.LinearLayout>
      <android.widget.Button index="4" package="com.example.app" class="android.widget.Button" text="Submit" resource-id="com.example.app:id/submit" content-desc="" clickable="true" enabled="true" displayed="true" bounds="[40,540][1040,620]" />
      <android.widget.Button index="5" package="com.example.app" class="android.widget.Button" text="Submit" resource-id="com.example.app:id/submit" content-desc="" clickable="true" enabled="true" displayed="true" bounds="[40,660][1040,740]" />
      <android.widget.Button index="6" package="com.example.app" class="android.widget.Button" text="Submit" resource-id="com.example.app:id/submit" content-desc="" clickable="true" enabled="true" displayed="true" bounds="[40,780][1040,860]" />
      <android.view.ViewGroup index="7" package="com.example.app" class="android.view.ViewGroup" text="" resource-id="" content-desc="Promotions" clickable="false" enabled="true" displayed="true" bounds="[0,900][1080,1100]" />
      <android.widget.TextView index="8" package="com.example.app" class="android.widget.TextView" text="Hidden hint" resource-id="com.example.app:id/hint" content-desc="" clickable="false" enabled="true" displayed="false" bounds="[40,1140][1040,1200]" />
      <android.widget.Button index="9" package="com.example.app" class="android.widget.Button" text="Load more" resource-id="com.example.app:id/load_more" content-desc="" clickable="true" enabled="true" displayed="true" bounds="[40,2500][1040,2600]" />
    </android.widget.LinearLayout>
  </android.widget.FrameLayout>
</hierarchy>
"""

# Paths of interest:
#   0.0.0.0   "Sign in" static text
#   0.0.0.1   email text field
#   0.0.0.2   login button
#   0.0.0.3   hidden button (visible="false")
#   0.0.0.4   "Promo banner" container with a name
IOS_PAGE_SOURCE = """<?xml version="1.0" encoding="UTF-8"?>
<AppiumAUT>
  <XCUIElementTypeApplication type="XCUIElementTypeApplication" name="Example" label="Example" enabled="true" visible="true" accessible="false" x="0" y="0" width="390" height="844" index="0">
    <XCUIElementTypeWindow type="XCUIElementTypeWindow" enabled="true" visible="true" accessible="false" x="0" y="0" width="390" height="844" index="0">
      <XCUIElementTypeOther type="XCUIElementTypeOther" enabled="true" visible="true" accessible="false" x="0" y="0" width="390" height="844" index="0">
        <XCUIElementTypeStaticText type="XCUIElementTypeStaticText" value="Sign in" name="Sign in" label="Sign in" enabled="true" visible="true" accessible="true" x="20" y="100" width="350" height="40" index="0" />
        <XCUIElementTypeTextField type="XCUIElementTypeTextField" value="you@example.com" name="email_field" label="Email address" enabled="true" visible="true" accessible="true" x="20" y="200" width="350" height="44" index="1" />
        <XCUIElementTypeButton type="XCUIElementTypeButton" name="login_button" label="Log In" enabled="true" visible="true" accessible="true" x="20" y="300" width="350" height="50" index="2" />
        <XCUIElementTypeButton type="XCUIElementTypeButton" name="hidden_button" label="Hidden" enabled="true" visible="false" accessible="true" x="20" y="400" width="350" height="50" index="3" />
        <XCUIElementTypeOther type="XCUIElementTypeOther" name="Promo banner" label="Promo banner" enabled="true" visible="true" accessible="false" x="0" y="500" width="390" height="100" index="4" />
      </XCUIElementTypeOther>
    </XCUIElementTypeWindow>
  </XCUIElementTypeApplication>
</AppiumAUT>
"""

ANDROID_VIEWPORT = {"width": 1080, "height": 2400}
IOS_VIEWPORT = {"width": 390, "height": 844}


@pytest.fixture
def android_source() -> str:
    """Provide an Android UiAutomator2 page source."""
    return ANDROID_PAGE_SOURCE


@pytest.fixture
def ios_source() -> str:
    """Provide an iOS XCUITest page source."""
    return IOS_PAGE_SOURCE


@pytest.fixture
def android_viewport() -> dict:
    """Provide the screen size of the Android page source."""
    return dict(ANDROID_VIEWPORT)


@pytest.fixture
def ios_viewport() -> dict:
    """Provide the screen size of the iOS page source."""
    return dict(IOS_VIEWPORT)


@pytest.fixture
def android_capabilities() -> dict:
    """Provide capabilities for an Android emulator session."""
    return {
        "platformName": "Android",
        "appium:automationName": "UiAutomator2",
        "appium:deviceName": "emulator-5554",
        "appium:app": "/apps/example.apk",
    }


@pytest.fixture
def mock_driver():
    """
    Create a mock Appium WebDriver.

    The driver serves the Android page source and a 1080x2400 screen.
    """
    driver = MagicMock()
    driver.session_id = "session-android-1"
    driver.page_source = ANDROID_PAGE_SOURCE
    driver.get_window_size.return_value = dict(ANDROID_VIEWPORT)
    driver.get_screenshot_as_png.return_value = b"\x89PNG\r\n\x1a\nfake"
    return driver


@pytest.fixture
def mock_session():
    """
    Create a mock AppiumSession for tool tests.

    Async methods are AsyncMocks returning the Android page source data.
    """
    session = MagicMock()
    session.session_id = "session-android-1"
    session.platform = "android"
    session.get_page_source = AsyncMock(return_value=ANDROID_PAGE_SOURCE)
    session.get_window_size = AsyncMock(return_value=dict(ANDROID_VIEWPORT))
    session.find_element = AsyncMock(return_value=MagicMock())
    session.click = AsyncMock(return_value=None)
    session.set_value = AsyncMock(return_value=None)
    session.get_text = AsyncMock(return_value="Welcome back")
    session.is_displayed = AsyncMock(return_value=True)
    session.take_screenshot = AsyncMock(return_value=b"\x89PNG\r\n\x1a\nfake")
    session.query_app_state = AsyncMock(return_value=4)
    session.activate_app = AsyncMock(return_value=None)
    session.terminate_app = AsyncMock(return_value=True)
    session.get_contexts = AsyncMock(return_value=["NATIVE_APP", "WEBVIEW_com.example.app"])
    session.get_current_context = AsyncMock(return_value="NATIVE_APP")
    session.switch_context = AsyncMock(return_value=None)
    session.info.return_value = {
        "session_id": "session-android-1",
        "platform": "android",
        "appium_url": "http://127.0.0.1:4723",
        "automation_name": "UiAutomator2",
        "device_name": "emulator-5554",
    }
    return session


@pytest.fixture
def mock_registry(mock_session):
    """
    Create a mock SessionRegistry whose current session is mock_session.
    """
    registry = MagicMock()
    registry.get = MagicMock(return_value=mock_session)
    registry.create = AsyncMock(return_value=mock_session)
    registry.dispose = AsyncMock(return_value=mock_session.info.return_value)
    registry.list_sessions = MagicMock(
        return_value=[{**mock_session.info.return_value, "is_current": True}]
    )
    registry.current_session_id = "session-android-1"
    return registry
