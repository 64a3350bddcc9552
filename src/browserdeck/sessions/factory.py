"""
Session factory.

Turns a provisioned browser into a registered ``SessionRecord``: obtains the
engine connection, subscribes to its disconnect event, applies optional
user-agent and cookie pre-configuration, then hands the record to the
manager.
"""

import asyncio
import json
from typing import Callable

from playwright.async_api import BrowserContext, Page

from browserdeck.config import BrowserConfig, CookieParam
from browserdeck.exceptions import (
    ConfigError,
    CookieError,
    EngineError,
    ProvisioningError,
    UserAgentError,
)
from browserdeck.logger import get_logger
from browserdeck.sessions.models import (
    Outcome,
    SessionDisconnected,
    SessionRecord,
    UserAgentOutcome,
)
from browserdeck.sessions.provisioning import (
    AutomationHandle,
    Provisioner,
    ResumeOptions,
)

logger = get_logger(__name__)

USER_AGENT_SCRIPT = """
Object.defineProperty(navigator, 'userAgent', {
  get: () => %s,
  configurable: true
});
"""


async def apply_user_agent(page: Page, user_agent: str) -> UserAgentOutcome:
    """
    Override the user agent with an HTTP header and an init script.

    Both techniques are attempted independently; the outcome tells which
    ones took effect.
    """
    header_applied = False
    script_applied = False
    errors: list[Exception] = []

    try:
        await page.set_extra_http_headers({"User-Agent": user_agent})
        header_applied = True
        logger.debug(f"Set User-Agent HTTP header: {user_agent[:50]}...")
    except Exception as e:
        errors.append(e)
        logger.warning(f"Failed to set User-Agent header: {e}")

    try:
        await page.add_init_script(USER_AGENT_SCRIPT % json.dumps(user_agent))
        script_applied = True
        logger.debug("Injected User-Agent script for navigator.userAgent")
    except Exception as e:
        errors.append(e)
        logger.warning(f"Failed to inject User-Agent script: {e}")

    return UserAgentOutcome(header_applied, script_applied, tuple(errors))


async def add_cookies(
    context: BrowserContext, cookies: list[CookieParam], session_id: str
) -> Outcome:
    """Add all cookies to the browsing context in a single call."""
    if not cookies:
        return Outcome.success()

    try:
        logger.info(f"Adding {len(cookies)} cookies to session {session_id}")
        await context.add_cookies([cookie.to_playwright() for cookie in cookies])
    except Exception as e:
        error = CookieError(f"Error adding cookies: {e}", session_id=session_id)
        error.__cause__ = e
        return Outcome.failure(error)

    return Outcome.success()


class SessionFactory:
    """
    Creates session records.

    Args:
        provisioner: Callable that allocates or resumes a remote browser.
        events: Queue receiving ``SessionDisconnected`` messages.
        adopt: Called with each successfully created record to register it.
    """

    def __init__(
        self,
        provisioner: Provisioner,
        events: asyncio.Queue,
        adopt: Callable[[SessionRecord], None],
    ):
        self.provisioner = provisioner
        self._events = events
        self._adopt = adopt

    async def create(
        self,
        internal_id: str,
        config: BrowserConfig,
        resume_external_id: str | None = None,
        user_agent: str | None = None,
    ) -> SessionRecord:
        """
        Provision, connect and register a new session.

        Raises:
            ConfigError: If provisioning credentials are missing.
            ProvisioningError: If the remote browser could not be allocated.
            EngineError: If no engine connection could be obtained.
        """
        config.require_credentials()

        action = "Resuming" if resume_external_id else "Creating"
        logger.info(f"{action} session {internal_id}...")

        try:
            handle = await self.provisioner(
                config, ResumeOptions(resume_external_id), internal_id
            )
        except ConfigError:
            raise
        except Exception as e:
            logger.error(f"Creating session {internal_id} failed: {e}")
            raise ProvisioningError(
                f"Failed to create/connect session {internal_id}: {e}",
                session_id=internal_id,
            ) from e

        try:
            browser = handle.page.context.browser
            cause = None
        except Exception as e:
            browser, cause = None, e

        if browser is None:
            logger.error(f"Creating session {internal_id} failed: no browser connection")
            await self._discard(handle, internal_id)
            raise EngineError(
                f"Failed to create/connect session {internal_id}: "
                f"no browser connection available from page context",
                session_id=internal_id,
            ) from cause

        record = SessionRecord(
            internal_id=internal_id,
            external_id=handle.external_id,
            browser=browser,
            page=handle.page,
            automation=handle,
        )
        logger.info(f"Initialized with Browserbase session: {record.external_id}")
        logger.info(f"Browserbase Live Debugger URL: {record.debugger_url}")

        browser.on("disconnected", lambda _: self._notify_disconnected(record))

        if user_agent:
            outcome = await apply_user_agent(record.page, user_agent)
            if not outcome.ok:
                error = UserAgentError(
                    "Failed to set User-Agent: both HTTP header and script "
                    "injection methods failed",
                    session_id=internal_id,
                )
                logger.error(f"{error} (session {internal_id})")
            elif outcome.partial:
                technique = "HTTP headers" if outcome.header_applied else "script"
                logger.info(
                    f"Partially set User-Agent for {internal_id}: {technique} only"
                )
            else:
                logger.info(f"Applied User-Agent for session: {internal_id}")

        if config.cookies:
            outcome = await add_cookies(
                record.page.context, config.cookies, internal_id
            )
            if not outcome.ok:
                logger.error(f"{outcome.error} (session {internal_id})")

        self._adopt(record)
        logger.info(f"Session created and active: {internal_id}")
        return record

    def _notify_disconnected(self, record: SessionRecord) -> None:
        logger.info(f"Disconnected: {record.internal_id}")
        self._events.put_nowait(SessionDisconnected(record))

    @staticmethod
    async def _discard(handle: AutomationHandle, internal_id: str) -> None:
        try:
            await handle.close()
        except Exception as e:
            logger.warning(f"Failed to discard half-created session {internal_id}: {e}")
