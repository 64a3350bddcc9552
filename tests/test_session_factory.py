"""
Unit tests for the session factory.
"""

import asyncio
import json

import pytest

from browserdeck.config import BrowserConfig, CookieParam
from browserdeck.exceptions import (
    ConfigError,
    CookieError,
    EngineError,
    ProvisioningError,
    SessionCreationError,
)
from browserdeck.sessions.factory import (
    USER_AGENT_SCRIPT,
    SessionFactory,
    add_cookies,
    apply_user_agent,
)
from browserdeck.sessions.models import SessionDisconnected

from conftest import FakeBrowser, FakePage, FakeProvisioner

UA = "Mozilla/5.0 (X11; Linux x86_64) browserdeck-test"


class TestApplyUserAgent:
    @pytest.mark.asyncio
    async def test_both_techniques(self):
        page = FakePage(FakeBrowser())
        outcome = await apply_user_agent(page, UA)

        assert outcome.ok and not outcome.partial
        page.set_extra_http_headers.assert_awaited_once_with({"User-Agent": UA})
        script = page.add_init_script.await_args[0][0]
        assert json.dumps(UA) in script

    @pytest.mark.asyncio
    async def test_header_only(self):
        page = FakePage(FakeBrowser())
        page.add_init_script.side_effect = RuntimeError("no scripts")

        outcome = await apply_user_agent(page, UA)
        assert outcome.ok
        assert outcome.partial
        assert outcome.header_applied and not outcome.script_applied
        assert len(outcome.errors) == 1

    @pytest.mark.asyncio
    async def test_both_fail(self):
        page = FakePage(FakeBrowser())
        page.set_extra_http_headers.side_effect = RuntimeError("no headers")
        page.add_init_script.side_effect = RuntimeError("no scripts")

        outcome = await apply_user_agent(page, UA)
        assert not outcome.ok
        assert len(outcome.errors) == 2

    def test_script_escapes_quotes(self):
        script = USER_AGENT_SCRIPT % json.dumps("it's \"quoted\"")
        assert "\"it's \\\"quoted\\\"\"" in script


class TestAddCookies:
    @pytest.mark.asyncio
    async def test_single_batch_call(self):
        page = FakePage(FakeBrowser())
        cookies = [
            CookieParam(name="a", value="1", domain=".example.com", path="/"),
            CookieParam(name="b", value="2", url="https://example.com", httpOnly=True),
        ]

        outcome = await add_cookies(page.context, cookies, "s1")

        assert outcome.ok
        page.context.add_cookies.assert_awaited_once()
        sent = page.context.add_cookies.await_args[0][0]
        assert sent[0] == {"name": "a", "value": "1", "domain": ".example.com", "path": "/"}
        assert sent[1]["httpOnly"] is True

    @pytest.mark.asyncio
    async def test_empty_is_noop(self):
        page = FakePage(FakeBrowser())
        outcome = await add_cookies(page.context, [], "s1")
        assert outcome.ok
        page.context.add_cookies.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(self):
        page = FakePage(FakeBrowser())
        page.context.add_cookies.side_effect = RuntimeError("bad cookie")

        outcome = await add_cookies(page.context, [CookieParam(name="a", value="1")], "s1")
        assert not outcome.ok
        assert isinstance(outcome.error, CookieError)
        assert outcome.error.session_id == "s1"


class TestSessionFactory:
    def setup_method(self):
        self.provisioner = FakeProvisioner()
        self.events = asyncio.Queue()
        self.adopted = []
        self.factory = SessionFactory(self.provisioner, self.events, self.adopted.append)

    @pytest.mark.asyncio
    async def test_create(self, config):
        record = await self.factory.create("A", config)

        assert record.internal_id == "A"
        assert record.external_id == "ext-A"
        assert record.debugger_url == "https://www.browserbase.com/sessions/ext-A"
        assert record.browser is record.page.context.browser
        assert self.adopted == [record]
        assert self.provisioner.calls == [("A", None)]

    @pytest.mark.asyncio
    async def test_resume_passes_external_id(self, config):
        record = await self.factory.create("A", config, resume_external_id="bb-42")
        assert self.provisioner.calls == [("A", "bb-42")]
        assert record.external_id == "bb-42"

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        config = BrowserConfig(browserbase_project_id="proj-123")
        with pytest.raises(ConfigError, match="API Key"):
            await self.factory.create("A", config)
        assert self.provisioner.calls == []

    @pytest.mark.asyncio
    async def test_missing_project_id(self):
        config = BrowserConfig(browserbase_api_key="key")
        with pytest.raises(ConfigError, match="Project ID"):
            await self.factory.create("A", config)

    @pytest.mark.asyncio
    async def test_provisioning_failure(self, config):
        self.provisioner.failures = 1

        with pytest.raises(ProvisioningError, match="A") as exc_info:
            await self.factory.create("A", config)

        assert isinstance(exc_info.value, SessionCreationError)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.session_id == "A"
        assert self.adopted == []

    @pytest.mark.asyncio
    async def test_no_browser_connection(self, config):
        self.provisioner.without_browser = True

        with pytest.raises(EngineError):
            await self.factory.create("A", config)

        assert self.adopted == []
        assert self.provisioner.handles[0].close_calls == 1

    @pytest.mark.asyncio
    async def test_user_agent_applied(self, config):
        record = await self.factory.create("A", config, user_agent=UA)
        record.page.set_extra_http_headers.assert_awaited_once_with({"User-Agent": UA})
        record.page.add_init_script.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_user_agent_failure_is_not_fatal(self, config):
        original = self.provisioner.__call__

        async def failing_ua(cfg, resume, internal_id):
            handle = await original(cfg, resume, internal_id)
            handle.page.set_extra_http_headers.side_effect = RuntimeError("x")
            handle.page.add_init_script.side_effect = RuntimeError("y")
            return handle

        self.factory.provisioner = failing_ua
        record = await self.factory.create("A", config, user_agent=UA)
        assert self.adopted == [record]

    @pytest.mark.asyncio
    async def test_cookies_from_config(self, config):
        config.cookies = [CookieParam(name="sid", value="abc", domain=".example.com")]
        record = await self.factory.create("A", config)
        record.page.context.add_cookies.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_cookies_no_call(self, config):
        record = await self.factory.create("A", config)
        record.page.context.add_cookies.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disconnect_posts_event(self, config):
        record = await self.factory.create("A", config)
        assert self.events.empty()

        record.browser.disconnect()

        event = self.events.get_nowait()
        assert isinstance(event, SessionDisconnected)
        assert event.record is record
