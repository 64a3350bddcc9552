"""
Configuration for browserdeck.

Settings are read from the environment, optionally seeded from a ``.env``
file at the project root (or a path passed explicitly).
"""

import json
import os
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from browserdeck.exceptions import ConfigError

PROJECT_DIR = Path(__file__).resolve().parent.parent.parent

DEFAULT_API_URL = "https://api.browserbase.com/v1"
DEFAULT_CONNECT_URL = "wss://connect.browserbase.com"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}")


class CookieParam(BaseModel):
    """A cookie in the shape Playwright's ``BrowserContext.add_cookies`` accepts."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    value: str
    url: str | None = None
    domain: str | None = None
    path: str | None = None
    expires: float | None = None
    http_only: bool | None = Field(default=None, alias="httpOnly")
    secure: bool | None = None
    same_site: Literal["Strict", "Lax", "None"] | None = Field(
        default=None, alias="sameSite"
    )

    def to_playwright(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class BrowserConfig(BaseModel):
    """Provisioning credentials and per-session browser settings."""

    browserbase_api_key: str | None = None
    browserbase_project_id: str | None = None
    api_url: str = DEFAULT_API_URL
    connect_url: str = DEFAULT_CONNECT_URL

    proxies: bool = False
    keep_alive: bool = False
    advanced_stealth: bool = False
    context_id: str | None = None
    persist_context: bool = True

    browser_width: int = 1024
    browser_height: int = 768

    cookies: list[CookieParam] = Field(default_factory=list)
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "BrowserConfig":
        """
        Build a configuration from environment variables.

        Args:
            env_file: Optional ``.env`` file; defaults to ``PROJECT_DIR/.env``.
                Variables already present in the environment win.

        Raises:
            ConfigError: If a numeric or cookie setting cannot be parsed.
        """
        load_dotenv(env_file or PROJECT_DIR / ".env")

        timeout = os.getenv("BROWSERDECK_REQUEST_TIMEOUT")
        try:
            request_timeout = float(timeout) if timeout else 30.0
        except ValueError:
            raise ConfigError(
                f"BROWSERDECK_REQUEST_TIMEOUT must be a number, got {timeout!r}"
            )

        return cls(
            browserbase_api_key=os.getenv("BROWSERBASE_API_KEY") or None,
            browserbase_project_id=os.getenv("BROWSERBASE_PROJECT_ID") or None,
            api_url=os.getenv("BROWSERBASE_API_URL") or DEFAULT_API_URL,
            connect_url=os.getenv("BROWSERBASE_CONNECT_URL") or DEFAULT_CONNECT_URL,
            proxies=_env_bool("BROWSERBASE_PROXIES"),
            keep_alive=_env_bool("BROWSERBASE_KEEP_ALIVE"),
            advanced_stealth=_env_bool("BROWSERBASE_ADVANCED_STEALTH"),
            context_id=os.getenv("BROWSERBASE_CONTEXT_ID") or None,
            persist_context=_env_bool("BROWSERBASE_PERSIST_CONTEXT", default=True),
            browser_width=_env_int("BROWSER_WIDTH", 1024),
            browser_height=_env_int("BROWSER_HEIGHT", 768),
            cookies=_load_cookies(),
            request_timeout=request_timeout,
        )

    def require_credentials(self) -> tuple[str, str]:
        """
        Return ``(api_key, project_id)``.

        Raises:
            ConfigError: If either credential is missing.
        """
        if not self.browserbase_api_key:
            raise ConfigError("Browserbase API Key is missing in the configuration.")
        if not self.browserbase_project_id:
            raise ConfigError(
                "Browserbase Project ID is missing in the configuration."
            )
        return self.browserbase_api_key, self.browserbase_project_id

    def masked(self) -> dict[str, Any]:
        """Configuration as a dict with the API key redacted, for display."""
        data = self.model_dump(mode="json")
        key = data.get("browserbase_api_key")
        if key:
            data["browserbase_api_key"] = f"{key[:4]}…" if len(key) > 8 else "***"
        data["cookies"] = len(self.cookies)
        return data


def _load_cookies() -> list[CookieParam]:
    raw = os.getenv("BROWSERDECK_COOKIES")
    cookies_file = os.getenv("BROWSERDECK_COOKIES_FILE")

    if not raw and cookies_file:
        path = Path(cookies_file).expanduser()
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read cookies file {path}: {e}")

    if not raw:
        return []

    try:
        items = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Cookies must be a JSON list: {e}")

    if not isinstance(items, list):
        raise ConfigError("Cookies must be a JSON list of cookie objects")

    try:
        return [CookieParam.model_validate(item) for item in items]
    except ValueError as e:
        raise ConfigError(f"Invalid cookie definition: {e}")
