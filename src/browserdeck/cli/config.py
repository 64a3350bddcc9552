"""
CLI subcommands for viewing configuration.

Usage:
    browserdeck config show
"""

import json

import typer

from browserdeck.config import BrowserConfig
from browserdeck.exceptions import ConfigError

config_app = typer.Typer(help="View browserdeck configuration")


@config_app.command("show")
def config_show():
    """Dump the resolved configuration with secrets masked."""
    try:
        config = BrowserConfig.from_env()
    except ConfigError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(code=1)

    typer.echo(json.dumps(config.masked(), indent=2))

    missing = [
        name
        for name, value in (
            ("BROWSERBASE_API_KEY", config.browserbase_api_key),
            ("BROWSERBASE_PROJECT_ID", config.browserbase_project_id),
        )
        if not value
    ]
    if missing:
        typer.echo(f"⚠️  Missing: {', '.join(missing)}")
