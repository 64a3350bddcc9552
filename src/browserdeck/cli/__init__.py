"""
browserdeck CLI.

- main:   open (drive a remote browser session from the terminal)
- config: show
"""

import typer

from browserdeck.cli.config import config_app
from browserdeck.cli.main import configure_logging, register_commands

app = typer.Typer(help="browserdeck - remote browser session manager")


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging (DEBUG level)"
    ),
):
    """
    browserdeck - remote browser session manager.
    """
    configure_logging(verbose)


register_commands(app)

app.add_typer(config_app, name="config")
