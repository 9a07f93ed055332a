#!/usr/bin/env python3
"""
pebble CLI

Main entrypoint for the pebble command-line tool.
"""

import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from pebblekit import metrics
from pebblekit.logging_config import setup_logging
from pebblekit.storage import RECORD_FORMAT

from cli.commands import records, recover, simulate

# Initialize Typer app
app = typer.Typer(
    name="pebble",
    help="sqrt(T) checkpoint retention tooling",
    add_completion=False,
)

# Console for rich output
console = Console()

# Add command groups
app.add_typer(records.app, name="records", help="Stored record operations")

# Add standalone commands
app.command("recover")(recover.recover_command)
app.command("simulate")(simulate.simulate_command)


@app.callback()
def configure(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Overrides PEBBLE_LOG_LEVEL"
    ),
    log_format: Optional[str] = typer.Option(
        None, "--log-format", help="json or text (overrides PEBBLE_LOG_FORMAT)"
    ),
):
    """Configure logging and metrics before any command runs."""
    setup_logging(level=log_level, log_format=log_format)
    metrics.start_from_env()


@app.command()
def version(json_output: bool = typer.Option(False, "--json", help="Output as JSON")):
    """Show version information."""
    from cli import __version__

    if json_output:
        print(json.dumps({"version": __version__, "record_format": RECORD_FORMAT}))
        return

    table = Table(show_header=False, box=None)
    table.add_row("[bold]pebble[/bold]", f"v{__version__}")
    table.add_row("Record format", str(RECORD_FORMAT))

    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
