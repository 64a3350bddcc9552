"""
Remote browser session management.

- registry: session registry and active-session pointer
- provisioning: Browserbase allocation and Playwright CDP connection
- factory: turns a provisioned browser into a registered session record
- manager: default-session guardian, teardown and the tool-facing contract
"""

from browserdeck.sessions.factory import SessionFactory
from browserdeck.sessions.manager import BrowserSessionManager, make_default_session_id
from browserdeck.sessions.models import (
    Outcome,
    SessionDisconnected,
    SessionRecord,
    TeardownReport,
    UserAgentOutcome,
)
from browserdeck.sessions.provisioning import (
    AutomationHandle,
    BrowserbaseProvisioner,
    ResumeOptions,
)
from browserdeck.sessions.registry import ActiveSessionPointer, SessionRegistry

__all__ = [
    "ActiveSessionPointer",
    "AutomationHandle",
    "BrowserSessionManager",
    "BrowserbaseProvisioner",
    "Outcome",
    "ResumeOptions",
    "SessionDisconnected",
    "SessionFactory",
    "SessionRecord",
    "SessionRegistry",
    "TeardownReport",
    "UserAgentOutcome",
    "make_default_session_id",
]
