"""
Session registry and active-session pointer.

The registry is a plain keyed store. The pointer names the session that
session-less tool calls target and refuses to point at anything that is
neither registered nor the reserved default id.
"""

from typing import Iterator

from browserdeck.logger import get_logger
from browserdeck.sessions.models import SessionRecord

logger = get_logger(__name__)


class SessionRegistry:
    """Mapping from internal session id to session record."""

    def __init__(self):
        self._sessions: dict[str, SessionRecord] = {}

    def put(self, session_id: str, record: SessionRecord) -> None:
        self._sessions[session_id] = record

    def get(self, session_id: str) -> SessionRecord | None:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> SessionRecord | None:
        return self._sessions.pop(session_id, None)

    def all(self) -> list[tuple[str, SessionRecord]]:
        """Snapshot of all entries, safe to iterate while the registry changes."""
        return list(self._sessions.items())

    def clear(self) -> None:
        self._sessions.clear()

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._sessions))


class ActiveSessionPointer:
    """Cursor naming the session used when a tool call omits a session id."""

    def __init__(self, registry: SessionRegistry, default_session_id: str):
        self._registry = registry
        self._default_session_id = default_session_id
        self._active = default_session_id

    def set(self, session_id: str) -> bool:
        """
        Point at ``session_id``.

        Returns:
            True if the pointer moved, False if the id was rejected.
        """
        if session_id == self._default_session_id or session_id in self._registry:
            self._active = session_id
            return True

        logger.warning(f"Set active session failed for non-existent ID: {session_id}")
        return False

    def get(self) -> str:
        return self._active

    def reset(self) -> None:
        self._active = self._default_session_id
