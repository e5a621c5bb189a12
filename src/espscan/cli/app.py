from __future__ import annotations

from typing import Annotated

import typer

from espscan.utils.logging import setup_logging

from .commands import config as config_cmd
from .commands.init import register as register_init
from .commands.scan import register as register_scan

app = typer.Typer(
    help="espscan - discover and classify ESP32 boards over Bluetooth LE",
    no_args_is_help=True,
)

app.add_typer(config_cmd.app, name="config")

register_init(app)
register_scan(app)


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit"),
    ] = False,
) -> None:
    """espscan CLI."""
    setup_logging()

    if version:
        from importlib.metadata import version as get_version

        typer.echo(f"espscan version {get_version('espscan')}")
        raise typer.Exit()
