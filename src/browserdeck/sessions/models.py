"""
Data models for the session system.

A session record owns one live remote browser connection. The outcome
types describe best-effort steps (user-agent override, cookie injection,
teardown) whose failures are logged rather than raised.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from browserdeck.exceptions import BrowserSessionError, TeardownError

if TYPE_CHECKING:
    from playwright.async_api import Browser, Page

    from browserdeck.sessions.provisioning import AutomationHandle

DEBUGGER_URL = "https://www.browserbase.com/sessions/{external_id}"


@dataclass
class SessionRecord:
    """
    One live remote browser connection.

    ``internal_id`` is the manager's key; ``external_id`` is the id the
    provisioning service assigned to the same browser.
    """

    internal_id: str
    external_id: str
    browser: "Browser"
    page: "Page"
    automation: "AutomationHandle"
    created_at: datetime = field(default_factory=datetime.now)
    retired: bool = False

    def is_stale(self) -> bool:
        """True once the engine connection dropped or the page was closed."""
        return not self.browser.is_connected() or self.page.is_closed()

    @property
    def debugger_url(self) -> str:
        return DEBUGGER_URL.format(external_id=self.external_id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize session info for listings."""
        return {
            "internal_id": self.internal_id,
            "external_id": self.external_id,
            "debugger_url": self.debugger_url,
            "created_at": self.created_at.isoformat(),
            "stale": self.is_stale(),
        }


@dataclass(frozen=True)
class SessionDisconnected:
    """Posted by the engine's disconnect listener for the manager to reconcile."""

    record: SessionRecord


@dataclass(frozen=True)
class Outcome:
    """Result of a best-effort step."""

    ok: bool
    error: BrowserSessionError | None = None

    @classmethod
    def success(cls) -> "Outcome":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: BrowserSessionError) -> "Outcome":
        return cls(ok=False, error=error)


@dataclass(frozen=True)
class UserAgentOutcome:
    """Which user-agent override techniques took effect."""

    header_applied: bool
    script_applied: bool
    errors: tuple[Exception, ...] = ()

    @property
    def ok(self) -> bool:
        return self.header_applied or self.script_applied

    @property
    def partial(self) -> bool:
        return self.header_applied != self.script_applied


@dataclass
class TeardownReport:
    """What happened while closing one session."""

    session_id: str
    closed: bool = False
    purged_ids: list[str] = field(default_factory=list)
    errors: list[TeardownError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.closed and not self.errors
