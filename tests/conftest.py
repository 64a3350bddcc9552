"""Shared pytest fixtures and fakes for the session system."""

import asyncio
import base64
from unittest.mock import AsyncMock

import pytest

from browserdeck.artifacts import ScreenshotStore
from browserdeck.config import BrowserConfig
from browserdeck.logger import get_logger
from browserdeck.sessions.manager import BrowserSessionManager

DEFAULT_ID = "browserbase_session_main_test"


class FakeBrowser:
    """Stands in for a Playwright Browser connected over CDP."""

    def __init__(self):
        self.connected = True
        self.handlers: dict[str, list] = {}

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def is_connected(self):
        return self.connected

    def disconnect(self):
        """Simulate the engine dropping the connection."""
        if not self.connected:
            return
        self.connected = False
        for handler in self.handlers.get("disconnected", []):
            handler(self)

    async def close(self):
        self.disconnect()


class FakeCDPSession:
    def __init__(self, data=b"\x89PNG fake"):
        self.send = AsyncMock(
            return_value={"data": base64.b64encode(data).decode("ascii")}
        )
        self.detach = AsyncMock()


class FakeContext:
    def __init__(self, browser):
        self.browser = browser
        self.add_cookies = AsyncMock()
        self.cdp = FakeCDPSession()
        self.new_cdp_session = AsyncMock(return_value=self.cdp)


class FakePage:
    def __init__(self, browser):
        self.context = FakeContext(browser)
        self.closed = False
        self.set_extra_http_headers = AsyncMock()
        self.add_init_script = AsyncMock()
        self.screenshot = AsyncMock(return_value=b"\x89PNG fake")
        self.goto = AsyncMock()

    def is_closed(self):
        return self.closed


class FakeAutomation:
    """Stands in for an AutomationHandle."""

    def __init__(self, external_id, page):
        self.external_id = external_id
        self.page = page
        self.close_calls = 0
        self.close_error: Exception | None = None

    @property
    def browser(self):
        return self.page.context.browser

    async def close(self):
        self.close_calls += 1
        if self.browser is not None:
            await self.browser.close()
        if self.close_error is not None:
            raise self.close_error


class FakeProvisioner:
    """Records calls; can be told to fail a number of times."""

    def __init__(self):
        self.calls: list[tuple[str, str | None]] = []
        self.handles: list[FakeAutomation] = []
        self.failures = 0
        self.without_browser = False

    async def __call__(self, config, resume, internal_id):
        self.calls.append((internal_id, resume.external_session_id))
        await asyncio.sleep(0)
        if self.failures:
            self.failures -= 1
            raise RuntimeError("provisioning service unavailable")

        count = sum(1 for call in self.calls if call[0] == internal_id)
        external_id = resume.external_session_id or (
            f"ext-{internal_id}" if count == 1 else f"ext-{internal_id}-{count}"
        )
        browser = None if self.without_browser else FakeBrowser()
        handle = FakeAutomation(external_id, FakePage(browser))
        self.handles.append(handle)
        return handle


class SpyScreenshotStore(ScreenshotStore):
    def __init__(self):
        super().__init__()
        self.cleared: list[str] = []
        self.fail_for: set[str] = set()

    def clear_session(self, session_id):
        self.cleared.append(session_id)
        if session_id in self.fail_for:
            raise OSError(f"cannot purge {session_id}")
        return super().clear_session(session_id)


@pytest.fixture
def config():
    return BrowserConfig(
        browserbase_api_key="bb_live_test_key",
        browserbase_project_id="proj-123",
    )


@pytest.fixture
def provisioner():
    return FakeProvisioner()


@pytest.fixture
def artifacts():
    return SpyScreenshotStore()


@pytest.fixture
def manager(provisioner, artifacts):
    return BrowserSessionManager(
        provisioner=provisioner,
        artifacts=artifacts,
        default_session_id=DEFAULT_ID,
    )


@pytest.fixture
def log_messages():
    """Collect WARNING+ log messages emitted through loguru."""
    messages: list[str] = []
    sink_id = get_logger(__name__).add(
        lambda message: messages.append(message.record["message"]),
        level="WARNING",
    )
    yield messages
    get_logger(__name__).remove(sink_id)
