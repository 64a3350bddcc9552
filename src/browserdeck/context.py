"""
Context handed to tool handlers.

Resolves "the session to use" for tool calls that do not name one.
"""

from typing import TYPE_CHECKING

from browserdeck.config import BrowserConfig
from browserdeck.sessions.manager import BrowserSessionManager
from browserdeck.sessions.models import SessionRecord

if TYPE_CHECKING:
    from playwright.async_api import Page


class ToolContext:
    def __init__(self, manager: BrowserSessionManager, config: BrowserConfig):
        self.manager = manager
        self.config = config

    @property
    def current_session_id(self) -> str:
        return self.manager.get_active_session_id()

    async def get_active_session(self) -> SessionRecord | None:
        """Session for the active id; the default session is created on demand."""
        return await self.manager.get_session(
            self.current_session_id, self.config, create_if_missing=True
        )

    async def get_active_page(self) -> "Page | None":
        session = await self.get_active_session()
        if session is None:
            return None
        return session.page
