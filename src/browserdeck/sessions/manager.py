"""
Manager for remote browser sessions.

Owns the session registry, the active-session pointer and the reference to
the privileged default session. Guarantees that stale sessions are never
handed out, that the default session is recreated when needed, and that
every teardown path purges the session's artifacts.
"""

import asyncio
import time
from typing import Any

from browserdeck.artifacts import ScreenshotStore
from browserdeck.config import BrowserConfig
from browserdeck.exceptions import (
    ConfigError,
    DefaultSessionError,
    SessionCreationError,
    TeardownError,
)
from browserdeck.logger import get_logger
from browserdeck.sessions.factory import SessionFactory
from browserdeck.sessions.models import (
    SessionDisconnected,
    SessionRecord,
    TeardownReport,
)
from browserdeck.sessions.provisioning import BrowserbaseProvisioner, Provisioner
from browserdeck.sessions.registry import ActiveSessionPointer, SessionRegistry

logger = get_logger(__name__)


def make_default_session_id() -> str:
    return f"browserbase_session_main_{int(time.time() * 1000)}"


class BrowserSessionManager:
    """
    Central coordinator for all remote browser sessions.

    Args:
        provisioner: Allocates remote browsers; defaults to Browserbase.
        artifacts: Store purged on every teardown.
        default_session_id: Reserved id of the default session; generated
            once per manager when omitted.
    """

    def __init__(
        self,
        provisioner: Provisioner | None = None,
        artifacts: ScreenshotStore | None = None,
        default_session_id: str | None = None,
    ):
        self.default_session_id = default_session_id or make_default_session_id()
        self.artifacts = artifacts if artifacts is not None else ScreenshotStore()
        self.registry = SessionRegistry()
        self.pointer = ActiveSessionPointer(self.registry, self.default_session_id)
        self._default: SessionRecord | None = None
        self._events: asyncio.Queue[SessionDisconnected] = asyncio.Queue()
        self._watcher: asyncio.Task | None = None
        self._default_lock = asyncio.Lock()
        self.factory = SessionFactory(
            provisioner or BrowserbaseProvisioner(), self._events, self._adopt
        )

    # --- Lifecycle ---

    async def init(self) -> None:
        """Start from an empty state and begin watching for disconnects."""
        self.registry.clear()
        self._default = None
        self.pointer.reset()
        while not self._events.empty():
            self._events.get_nowait()

        if self._watcher is None or self._watcher.done():
            self._watcher = asyncio.create_task(self._watch_disconnects())
        logger.info(f"Session manager ready (default id: {self.default_session_id})")

    async def shutdown(self) -> None:
        """Close every session and stop watching for disconnects."""
        await self.close_all_sessions()

        if self._watcher is not None:
            self._watcher.cancel()
            try:
                await self._watcher
            except asyncio.CancelledError:
                pass
            self._watcher = None

    async def __aenter__(self) -> "BrowserSessionManager":
        await self.init()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.shutdown()

    # --- Active session ---

    @property
    def default_session(self) -> SessionRecord | None:
        return self._default

    def set_active_session_id(self, session_id: str) -> bool:
        self.process_pending_events()
        return self.pointer.set(session_id)

    def get_active_session_id(self) -> str:
        self.process_pending_events()
        return self.pointer.get()

    def list_sessions(self) -> list[dict[str, Any]]:
        self.process_pending_events()
        active = self.pointer.get()
        return [
            {**record.to_dict(), "active": session_id == active}
            for session_id, record in self.registry.all()
        ]

    # --- Creation ---

    async def create_session(
        self,
        internal_id: str,
        config: BrowserConfig,
        resume_external_id: str | None = None,
        user_agent: str | None = None,
    ) -> SessionRecord:
        """
        Create a named session, replacing any existing one with the same id.

        Raises:
            ConfigError: If provisioning credentials are missing.
            SessionCreationError: If provisioning or connecting failed.
        """
        self.process_pending_events()
        if internal_id in self.registry:
            logger.info(f"Replacing existing session: {internal_id}")
            await self.cleanup_session(internal_id)

        return await self.factory.create(
            internal_id, config, resume_external_id, user_agent
        )

    def _adopt(self, record: SessionRecord) -> None:
        self.registry.put(record.internal_id, record)
        if record.internal_id == self.default_session_id:
            self._default = record
        self.pointer.set(record.internal_id)

    # --- Default session ---

    async def ensure_default_session(
        self, config: BrowserConfig, user_agent: str | None = None
    ) -> SessionRecord:
        """
        Return a live default session, creating or recreating it if needed.

        Creation is retried once on failure. Missing credentials are not
        retried. Concurrent callers share a single creation.

        Raises:
            DefaultSessionError: If the session could not be ensured.
        """
        self.process_pending_events()
        record = self._live_default()
        if record is not None:
            return record

        async with self._default_lock:
            self.process_pending_events()
            record = self._live_default()
            if record is not None:
                return record
            return await self._create_default(config, user_agent)

    def _live_default(self) -> SessionRecord | None:
        record = self._default
        if record is None or record.is_stale():
            return None
        self.pointer.set(self.default_session_id)
        return record

    async def _create_default(
        self, config: BrowserConfig, user_agent: str | None
    ) -> SessionRecord:
        session_id = self.default_session_id
        record = self._default

        if record is None:
            logger.info(f"Default session {session_id} not found, creating.")
        else:
            logger.info(f"Default session {session_id} is stale, recreating.")
            await self._retire(record, session_id)

        try:
            return await self.factory.create(session_id, config, user_agent=user_agent)
        except ConfigError as e:
            logger.error(f"Cannot create default session {session_id}: {e}")
            raise DefaultSessionError(
                f"Failed to ensure default session {session_id}: {e}",
                session_id=session_id,
            ) from e
        except SessionCreationError as e:
            logger.warning(
                f"Initial/Recreation attempt for default session {session_id} "
                f"failed. Error: {e}"
            )

        logger.info(f"Retrying creation of default session {session_id} after error...")
        try:
            return await self.factory.create(session_id, config, user_agent=user_agent)
        except (ConfigError, SessionCreationError) as e:
            logger.error(
                f"Failed to recreate default session {session_id} after retry: {e}"
            )
            raise DefaultSessionError(
                f"Failed to ensure default session {session_id} after initial "
                f"error and retry: {e}",
                session_id=session_id,
            ) from e

    async def get_session(
        self,
        session_id: str,
        config: BrowserConfig,
        create_if_missing: bool = True,
    ) -> SessionRecord | None:
        """
        Look up a usable session.

        The default session is created on demand when ``create_if_missing``
        is set; failures yield None. Other sessions are never created here:
        unknown or stale ids yield None, and stale ones are retired.
        """
        if session_id == self.default_session_id and create_if_missing:
            try:
                return await self.ensure_default_session(config)
            except DefaultSessionError:
                logger.error(
                    f"Failed to get default session {session_id}. "
                    f"See previous messages for details."
                )
                return None

        self.process_pending_events()
        logger.debug(f"Getting session: {session_id}")
        record = self.registry.get(session_id)

        if record is None:
            logger.warning(f"Session not found: {session_id}")
            return None

        if record.is_stale():
            logger.warning(f"Found session {session_id} is stale, removing.")
            await self._retire(record, session_id)
            return None

        self.pointer.set(session_id)
        logger.debug(f"Using valid session: {session_id}")
        return record

    # --- Teardown ---

    async def close_record(
        self, record: SessionRecord, session_id: str
    ) -> TeardownReport:
        """Close one session and purge its artifacts. Never raises."""
        record.retired = True
        report = TeardownReport(session_id)

        try:
            logger.info(f"Closing session: {session_id}")
            await record.automation.close()
            report.closed = True
            logger.info(f"Closed browser for session: {session_id}")
        except Exception as e:
            error = TeardownError(
                f"Error closing session {session_id}: {e}", session_id=session_id
            )
            error.__cause__ = e
            report.errors.append(error)
            logger.warning(str(error))

        self._purge(report, session_id, record.external_id)
        return report

    async def cleanup_session(self, session_id: str) -> TeardownReport:
        """Close and forget a session. Safe to call for unknown ids."""
        self.process_pending_events()
        logger.info(f"Cleaning up session: {session_id}")

        record = self.registry.get(session_id)
        if record is not None:
            report = await self.close_record(record, session_id)
        else:
            report = TeardownReport(session_id)
            self._purge(report, session_id)

        self.registry.remove(session_id)
        if session_id == self.default_session_id:
            self._default = None

        if self.pointer.get() == session_id:
            logger.info(f"Cleaned up active session {session_id}, resetting to default.")
            self.pointer.reset()
        return report

    async def close_all_sessions(self) -> list[TeardownReport]:
        """Close every session concurrently, then reset all state."""
        self.process_pending_events()
        logger.info("Closing all sessions...")

        entries = self.registry.all()
        results = await asyncio.gather(
            *(self.close_record(record, session_id) for session_id, record in entries),
            return_exceptions=True,
        )

        reports: list[TeardownReport] = []
        for (session_id, _), result in zip(entries, results):
            if isinstance(result, BaseException):
                logger.error(f"Unexpected error closing session {session_id}: {result}")
                reports.append(TeardownReport(session_id))
            else:
                reports.append(result)

        if any(not report.ok for report in reports):
            logger.warning(
                "Some errors occurred during batch session closing. "
                "See individual messages."
            )

        self.registry.clear()
        self._default = None
        self.pointer.reset()
        logger.info("All sessions closed and cleared.")
        return reports

    async def _retire(self, record: SessionRecord, session_id: str) -> None:
        await self.close_record(record, session_id)
        self._forget(record)

    def _forget(self, record: SessionRecord) -> None:
        session_id = record.internal_id
        if self.registry.get(session_id) is record:
            self.registry.remove(session_id)
        if self._default is record:
            self._default = None
        if self.pointer.get() == session_id and session_id not in self.registry:
            logger.warning(f"Active session {session_id} retired, resetting to default.")
            self.pointer.reset()

    def _purge(
        self, report: TeardownReport, *session_ids: str | None
    ) -> TeardownReport:
        for session_id in session_ids:
            if not session_id:
                continue
            try:
                self.artifacts.clear_session(session_id)
                report.purged_ids.append(session_id)
            except Exception as e:
                error = TeardownError(
                    f"Failed to clear screenshots for {session_id}: {e}",
                    session_id=report.session_id,
                )
                error.__cause__ = e
                report.errors.append(error)
                logger.warning(str(error))
        return report

    # --- Disconnect reconciliation ---

    def process_pending_events(self) -> int:
        """Reconcile all queued disconnect messages. Returns how many were handled."""
        handled = 0
        while True:
            try:
                event = self._events.get_nowait()
            except asyncio.QueueEmpty:
                return handled
            self._handle_disconnect(event)
            handled += 1

    async def _watch_disconnects(self) -> None:
        while True:
            event = await self._events.get()
            self._handle_disconnect(event)

    def _handle_disconnect(self, event: SessionDisconnected) -> None:
        record = event.record
        if record.retired:
            return
        record.retired = True

        if self._default is record:
            logger.info(f"Disconnected (default): {record.internal_id}")
        self._forget(record)
        self._purge(
            TeardownReport(record.internal_id),
            record.internal_id,
            record.external_id,
        )
