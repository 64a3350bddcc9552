"""
Top-level CLI commands: open.
"""

import asyncio
import base64
import os
from pathlib import Path
from typing import Optional

import typer

from browserdeck.config import BrowserConfig
from browserdeck.context import ToolContext
from browserdeck.exceptions import BrowserSessionError
from browserdeck.sessions.manager import BrowserSessionManager
from browserdeck.tools.screenshot import take_screenshot


def configure_logging(verbose: bool = False):
    """Configure logging for the CLI."""
    from browserdeck.logger import setup_logging

    log_level = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "WARNING")
    setup_logging(level=log_level, log_file=os.getenv("LOG_FILE"))


async def _open(
    url: str,
    session_id: Optional[str],
    user_agent: Optional[str],
    screenshot: Optional[Path],
    config: BrowserConfig,
) -> None:
    async with BrowserSessionManager() as manager:
        if session_id:
            record = await manager.create_session(
                session_id, config, user_agent=user_agent
            )
        else:
            record = await manager.ensure_default_session(config, user_agent=user_agent)

        typer.echo(f"🌐 Session {record.internal_id}")
        typer.echo(f"   Debugger: {record.debugger_url}")

        await record.page.goto(url)
        typer.echo(f"   Title: {await record.page.title()}")

        if screenshot:
            context = ToolContext(manager, config)
            content = await take_screenshot(context, name=screenshot.stem)
            image = next(item for item in content if item["type"] == "image")
            screenshot.write_bytes(base64.b64decode(image["data"]))
            typer.echo(f"📸 Saved {screenshot}")


def register_commands(app: typer.Typer):
    """Register top-level commands on the given app."""

    @app.command("open")
    def open_url(
        url: str = typer.Argument(help="Page to open"),
        session: Optional[str] = typer.Option(
            None, "--session", "-s", help="Named session id (default session if omitted)"
        ),
        user_agent: Optional[str] = typer.Option(
            None, "--user-agent", help="Override the browser User-Agent"
        ),
        screenshot: Optional[Path] = typer.Option(
            None, "--screenshot", help="Write a PNG screenshot to this path"
        ),
    ):
        """Open a URL in a remote browser session, then close all sessions."""
        try:
            config = BrowserConfig.from_env()
            config.require_credentials()
        except BrowserSessionError as e:
            typer.echo(f"❌ {e}")
            raise typer.Exit(code=1)

        try:
            asyncio.run(_open(url, session, user_agent, screenshot, config))
        except BrowserSessionError as e:
            typer.echo(f"❌ {e}")
            raise typer.Exit(code=1)
