"""
In-memory store for screenshots captured during browser sessions.

Screenshots are grouped by the session id they were taken in so that a
session's artifacts can be purged when it is torn down.
"""

from dataclasses import dataclass, field
from datetime import datetime

from browserdeck.logger import get_logger

logger = get_logger(__name__)

SCREENSHOT_URI_PREFIX = "screenshot://"


@dataclass
class Screenshot:
    name: str
    session_id: str
    data: str  # base64
    mime_type: str = "image/png"
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def uri(self) -> str:
        return f"{SCREENSHOT_URI_PREFIX}{self.name}"


class ScreenshotStore:
    """Screenshots keyed by name, grouped by session id."""

    def __init__(self):
        self._by_session: dict[str, dict[str, Screenshot]] = {}

    def register(
        self, session_id: str, name: str, data: str, mime_type: str = "image/png"
    ) -> str:
        """
        Store a screenshot for a session.

        A name already used in another session is moved to this one.

        Returns:
            The resource URI of the stored screenshot.
        """
        for shots in self._by_session.values():
            shots.pop(name, None)

        shot = Screenshot(
            name=name, session_id=session_id, data=data, mime_type=mime_type
        )
        self._by_session.setdefault(session_id, {})[name] = shot
        logger.debug(f"Registered screenshot {name} for session {session_id}")
        return shot.uri

    def get(self, name_or_uri: str) -> Screenshot | None:
        name = name_or_uri.removeprefix(SCREENSHOT_URI_PREFIX)
        for shots in self._by_session.values():
            if name in shots:
                return shots[name]
        return None

    def names(self, session_id: str | None = None) -> list[str]:
        if session_id is not None:
            return list(self._by_session.get(session_id, {}))
        return [name for shots in self._by_session.values() for name in shots]

    def clear_session(self, session_id: str) -> int:
        """
        Drop every screenshot taken in a session.

        Returns:
            Number of screenshots removed.
        """
        removed = len(self._by_session.pop(session_id, {}))
        if removed:
            logger.info(f"Cleared {removed} screenshots for session {session_id}")
        return removed

    def __len__(self) -> int:
        return sum(len(shots) for shots in self._by_session.values())
