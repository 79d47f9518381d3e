"""
Session registry

Owns every open Appium session, keyed by session id, and tracks which
one is current. Tools resolve sessions through the registry instead of
module-level driver state.
"""

import asyncio
import logging
from typing import Any

from mobile_locators import Platform

from ..types import SessionInfo
from ..utils.logging_config import log_dict
from .config import AppiumConfig
from .session import AppiumSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Create, look up and dispose Appium sessions."""

    def __init__(self, config: AppiumConfig):
        self.config = config
        self.sessions: dict[str, AppiumSession] = {}
        self.current_session_id: str | None = None
        self._lock = asyncio.Lock()

    async def create(
        self,
        capabilities: dict[str, Any],
        platform: Platform | None = None,
        appium_url: str | None = None,
    ) -> AppiumSession:
        """
        Open a session and make it the current one.

        Args:
            capabilities: W3C capabilities for the new session
            platform: Platform override; detected from capabilities when omitted
            appium_url: Appium server URL (default: configured URL)
        """
        log_dict(logger, "Starting session with capabilities:", capabilities)
        session = await AppiumSession.connect(
            capabilities,
            appium_url or self.config["appium_url"],
            platform=platform,
            new_command_timeout=self.config["new_command_timeout"],
        )

        async with self._lock:
            self.sessions[session.session_id] = session
            self.current_session_id = session.session_id

        logger.info(f"Registered session {session.session_id} ({len(self.sessions)} open)")
        return session

    def get(self, session_id: str | None = None) -> AppiumSession:
        """
        Get a session by id, or the current session.

        Raises:
            ValueError: If the id is unknown or no session is open
        """
        if session_id is None:
            if self.current_session_id is None:
                raise ValueError("No active session. Call start_app_session first.")
            session_id = self.current_session_id

        session = self.sessions.get(session_id)
        if session is None:
            raise ValueError(f"Session '{session_id}' not found")
        return session

    async def dispose(self, session_id: str | None = None, detach: bool = False) -> SessionInfo:
        """
        Close a session (or the current one) and remove it from the registry.

        The session is removed even if closing it on the server fails.

        Returns:
            Description of the disposed session
        """
        session = self.get(session_id)

        async with self._lock:
            self.sessions.pop(session.session_id, None)
            if self.current_session_id == session.session_id:
                # Most recently created remaining session becomes current
                self.current_session_id = next(reversed(self.sessions), None)

        await session.close(detach=detach)
        return session.info()

    async def dispose_all(self) -> None:
        """Close every open session. Failures are logged, not raised."""
        async with self._lock:
            sessions = list(self.sessions.values())
            self.sessions.clear()
            self.current_session_id = None

        for session in sessions:
            try:
                await session.close()
            except RuntimeError as e:
                logger.error(f"Error closing session {session.session_id}: {e}")

    def list_sessions(self) -> list[SessionInfo]:
        """Describe all open sessions, flagging the current one."""
        result = []
        for session_id, session in self.sessions.items():
            info = session.info()
            info["is_current"] = session_id == self.current_session_id
            result.append(info)
        return result
