"""Tests for SessionRegistry"""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from webdriver_mcp.appium.session_registry import SessionRegistry


def make_session(session_id: str, platform: str = "android") -> MagicMock:
    session = MagicMock()
    session.session_id = session_id
    session.platform = platform
    session.close = AsyncMock()
    session.info.side_effect = lambda: {"session_id": session_id, "platform": platform}
    return session


@pytest.fixture
def config():
    return {
        "appium_url": "http://127.0.0.1:4723",
        "new_command_timeout": 300,
        "default_timeout_ms": 3000,
        "viewport_fallback_width": 9999,
        "viewport_fallback_height": 9999,
        "log_file": "logs/webdriver-mcp.log",
        "log_level": "INFO",
        "log_responses": False,
    }


@pytest.fixture
def registry(config):
    return SessionRegistry(config)


@pytest.fixture
def connect():
    """Patch AppiumSession.connect to hand out mock sessions in order."""
    sessions = [make_session("session-1"), make_session("session-2", "ios"), make_session("session-3")]
    with patch(
        "webdriver_mcp.appium.session_registry.AppiumSession.connect",
        new=AsyncMock(side_effect=sessions),
    ) as mock_connect:
        yield mock_connect


@pytest.mark.asyncio
class TestCreate:
    """Tests for creating sessions"""

    async def test_create_becomes_current(self, registry, connect, android_capabilities):
        session = await registry.create(android_capabilities)

        assert registry.current_session_id == "session-1"
        assert registry.get() is session
        connect.assert_awaited_once_with(
            android_capabilities,
            "http://127.0.0.1:4723",
            platform=None,
            new_command_timeout=300,
        )

    async def test_create_logs_redacted_capabilities(self, registry, connect, caplog):
        capabilities = {"platformName": "Android", "appium:accessKey": "hunter2"}

        with caplog.at_level(logging.INFO):
            await registry.create(capabilities)

        assert "platformName: Android" in caplog.text
        assert "hunter2" not in caplog.text

    async def test_create_with_overrides(self, registry, connect):
        await registry.create({"appium:app": "/apps/x.ipa"}, platform="ios", appium_url="http://mac:4723")

        connect.assert_awaited_once_with(
            {"appium:app": "/apps/x.ipa"},
            "http://mac:4723",
            platform="ios",
            new_command_timeout=300,
        )

    async def test_latest_session_is_current(self, registry, connect, android_capabilities):
        await registry.create(android_capabilities)
        second = await registry.create(android_capabilities)

        assert registry.current_session_id == "session-2"
        assert registry.get() is second
        assert len(registry.sessions) == 2

    async def test_connect_failure_leaves_registry_unchanged(self, registry, android_capabilities):
        with patch(
            "webdriver_mcp.appium.session_registry.AppiumSession.connect",
            new=AsyncMock(side_effect=RuntimeError("Failed to create Appium session: refused")),
        ):
            with pytest.raises(RuntimeError, match="refused"):
                await registry.create(android_capabilities)

        assert registry.sessions == {}
        assert registry.current_session_id is None


@pytest.mark.asyncio
class TestGet:
    """Tests for session lookup"""

    async def test_no_session(self, registry):
        with pytest.raises(ValueError, match="No active session. Call start_app_session first."):
            registry.get()

    async def test_unknown_session(self, registry, connect, android_capabilities):
        await registry.create(android_capabilities)

        with pytest.raises(ValueError, match="Session 'nope' not found"):
            registry.get("nope")

    async def test_get_by_id(self, registry, connect, android_capabilities):
        first = await registry.create(android_capabilities)
        await registry.create(android_capabilities)

        assert registry.get("session-1") is first


@pytest.mark.asyncio
class TestDispose:
    """Tests for closing sessions"""

    async def test_dispose_current(self, registry, connect, android_capabilities):
        first = await registry.create(android_capabilities)
        second = await registry.create(android_capabilities)

        info = await registry.dispose()

        assert info == {"session_id": "session-2", "platform": "ios"}
        second.close.assert_awaited_once_with(detach=False)
        first.close.assert_not_awaited()
        assert registry.current_session_id == "session-1"

    async def test_dispose_other_keeps_current(self, registry, connect, android_capabilities):
        first = await registry.create(android_capabilities)
        await registry.create(android_capabilities)

        await registry.dispose("session-1")

        first.close.assert_awaited_once()
        assert registry.current_session_id == "session-2"
        assert "session-1" not in registry.sessions

    async def test_dispose_last_clears_current(self, registry, connect, android_capabilities):
        await registry.create(android_capabilities)

        await registry.dispose()

        assert registry.current_session_id is None
        with pytest.raises(ValueError, match="No active session"):
            registry.get()

    async def test_detach(self, registry, connect, android_capabilities):
        session = await registry.create(android_capabilities)

        await registry.dispose(detach=True)

        session.close.assert_awaited_once_with(detach=True)

    async def test_removed_even_if_close_fails(self, registry, connect, android_capabilities):
        session = await registry.create(android_capabilities)
        session.close.side_effect = RuntimeError("Close session failed: gone")

        with pytest.raises(RuntimeError, match="gone"):
            await registry.dispose()

        assert registry.sessions == {}

    async def test_dispose_without_session(self, registry):
        with pytest.raises(ValueError, match="No active session"):
            await registry.dispose()

    async def test_dispose_all(self, registry, connect, android_capabilities, caplog):
        first = await registry.create(android_capabilities)
        second = await registry.create(android_capabilities)
        first.close.side_effect = RuntimeError("Close session failed: device offline")

        with caplog.at_level(logging.ERROR):
            await registry.dispose_all()

        first.close.assert_awaited_once()
        second.close.assert_awaited_once()
        assert registry.sessions == {}
        assert registry.current_session_id is None
        assert "Error closing session session-1: Close session failed: device offline" in caplog.text


@pytest.mark.asyncio
class TestListSessions:
    """Tests for list_sessions"""

    async def test_empty(self, registry):
        assert registry.list_sessions() == []

    async def test_flags_current(self, registry, connect, android_capabilities):
        await registry.create(android_capabilities)
        await registry.create(android_capabilities)

        assert registry.list_sessions() == [
            {"session_id": "session-1", "platform": "android", "is_current": False},
            {"session_id": "session-2", "platform": "ios", "is_current": True},
        ]
