"""
Error taxonomy for browser session management.

Creation failures (``ConfigError``, ``SessionCreationError`` and its
subclasses) propagate to the caller. ``UserAgentError``, ``CookieError``
and ``TeardownError`` describe best-effort steps: they are logged and
carried in outcome objects, never raised out of the manager.
"""


class BrowserSessionError(Exception):
    """Base class for all session errors."""

    def __init__(self, message: str, session_id: str | None = None):
        super().__init__(message)
        self.session_id = session_id


class ConfigError(BrowserSessionError):
    """Required provisioning credentials are missing."""


class SessionCreationError(BrowserSessionError):
    """A session could not be created or connected."""


class ProvisioningError(SessionCreationError):
    """The remote provisioning service failed to allocate or resume a browser."""


class EngineError(SessionCreationError):
    """No usable engine connection could be obtained from a provisioned browser."""


class DefaultSessionError(BrowserSessionError):
    """The default session could not be ensured, even after a retry."""


class UserAgentError(BrowserSessionError):
    """Neither user-agent override technique succeeded."""


class CookieError(BrowserSessionError):
    """Cookies could not be injected into the browsing context."""


class TeardownError(BrowserSessionError):
    """Closing a session or purging its artifacts failed."""
