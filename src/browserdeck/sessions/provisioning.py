"""
Remote browser provisioning through Browserbase.

A provisioner allocates (or resumes) a remote Chromium, connects Playwright
to it over CDP and returns an ``AutomationHandle`` that owns the result.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol
from urllib.parse import urlencode

import httpx
from playwright.async_api import Browser, Page, Playwright, async_playwright

from browserdeck.config import BrowserConfig
from browserdeck.exceptions import ProvisioningError
from browserdeck.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResumeOptions:
    """Options for attaching to an already running remote session."""

    external_session_id: str | None = None


class AutomationHandle:
    """
    Ownership of one provisioned browser.

    Holds the Playwright driver, the CDP browser connection and the primary
    page. ``close()`` tears all of them down and releases the remote session.
    """

    def __init__(
        self,
        external_id: str,
        playwright: Playwright | None,
        browser: Browser | None,
        page: Page,
        release: Callable[[], Awaitable[None]] | None = None,
    ):
        self.external_id = external_id
        self.playwright = playwright
        self.browser = browser
        self.page = page
        self._release = release
        self._closed = False

    async def close(self) -> None:
        """
        Close browser, stop Playwright and release the remote session.

        Every step is attempted; the first failure is re-raised afterwards.
        """
        if self._closed:
            return
        self._closed = True

        first_error: Exception | None = None
        steps: list[Callable[[], Awaitable[Any]]] = []
        if self.browser is not None:
            steps.append(self.browser.close)
        if self.playwright is not None:
            steps.append(self.playwright.stop)
        if self._release is not None:
            steps.append(self._release)

        for step in steps:
            try:
                await step()
            except Exception as e:
                logger.debug(f"Close step failed for {self.external_id}: {e}")
                if first_error is None:
                    first_error = e

        if first_error is not None:
            raise first_error


class Provisioner(Protocol):
    async def __call__(
        self, config: BrowserConfig, resume: ResumeOptions, internal_id: str
    ) -> AutomationHandle: ...


class BrowserbaseProvisioner:
    """Provisions browsers through the Browserbase REST API."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport

    def _client(self, config: BrowserConfig) -> httpx.AsyncClient:
        api_key, _ = config.require_credentials()
        return httpx.AsyncClient(
            base_url=config.api_url,
            headers={"X-BB-API-Key": api_key, "Content-Type": "application/json"},
            timeout=config.request_timeout,
            transport=self._transport,
        )

    async def __call__(
        self, config: BrowserConfig, resume: ResumeOptions, internal_id: str
    ) -> AutomationHandle:
        if resume.external_session_id:
            session = await self.get_remote_session(config, resume.external_session_id)
        else:
            session = await self.create_remote_session(config, internal_id)

        external_id = session["id"]
        connect_url = session.get("connectUrl") or self._connect_url(
            config, external_id
        )

        playwright = None
        try:
            playwright = await async_playwright().start()
            browser = await playwright.chromium.connect_over_cdp(connect_url)
            context = (
                browser.contexts[0] if browser.contexts else await browser.new_context()
            )
            page = context.pages[0] if context.pages else await context.new_page()
        except Exception:
            if playwright is not None:
                await playwright.stop()
            await self._release_quietly(config, external_id)
            raise

        async def release() -> None:
            await self.release_remote_session(config, external_id)

        return AutomationHandle(
            external_id=external_id,
            playwright=playwright,
            browser=browser,
            page=page,
            release=None if config.keep_alive else release,
        )

    def build_session_payload(
        self, config: BrowserConfig, internal_id: str
    ) -> dict[str, Any]:
        _, project_id = config.require_credentials()

        browser_settings: dict[str, Any] = {
            "viewport": {
                "width": config.browser_width,
                "height": config.browser_height,
            },
        }
        if config.advanced_stealth:
            browser_settings["advancedStealth"] = True
        if config.context_id:
            browser_settings["context"] = {
                "id": config.context_id,
                "persist": config.persist_context,
            }

        payload: dict[str, Any] = {
            "projectId": project_id,
            "browserSettings": browser_settings,
            "userMetadata": {"internalId": internal_id},
        }
        if config.keep_alive:
            payload["keepAlive"] = True
        if config.proxies:
            payload["proxies"] = True
        return payload

    async def create_remote_session(
        self, config: BrowserConfig, internal_id: str
    ) -> dict[str, Any]:
        payload = self.build_session_payload(config, internal_id)
        async with self._client(config) as client:
            response = await client.post("/sessions", json=payload)
            if response.is_error:
                raise ProvisioningError(
                    f"Failed to create Browserbase session: "
                    f"{response.status_code} {response.text[:200]}",
                    session_id=internal_id,
                )
            data = response.json()

        logger.debug(f"Browserbase allocated {data.get('id')} for {internal_id}")
        return data

    async def get_remote_session(
        self, config: BrowserConfig, external_id: str
    ) -> dict[str, Any]:
        async with self._client(config) as client:
            response = await client.get(f"/sessions/{external_id}")
            if response.is_error:
                raise ProvisioningError(
                    f"Cannot resume Browserbase session {external_id}: "
                    f"{response.status_code} {response.text[:200]}"
                )
            data = response.json()

        status = data.get("status")
        if status and status != "RUNNING":
            raise ProvisioningError(
                f"Cannot resume Browserbase session {external_id}: status is {status}"
            )
        data.setdefault("id", external_id)
        return data

    async def release_remote_session(
        self, config: BrowserConfig, external_id: str
    ) -> None:
        _, project_id = config.require_credentials()
        async with self._client(config) as client:
            response = await client.post(
                f"/sessions/{external_id}",
                json={"projectId": project_id, "status": "REQUEST_RELEASE"},
            )
            response.raise_for_status()
        logger.debug(f"Released Browserbase session {external_id}")

    async def _release_quietly(self, config: BrowserConfig, external_id: str) -> None:
        try:
            await self.release_remote_session(config, external_id)
        except Exception as e:
            logger.warning(f"Failed to release Browserbase session {external_id}: {e}")

    @staticmethod
    def _connect_url(config: BrowserConfig, external_id: str) -> str:
        api_key, _ = config.require_credentials()
        query = urlencode({"apiKey": api_key, "sessionId": external_id})
        return f"{config.connect_url}?{query}"
