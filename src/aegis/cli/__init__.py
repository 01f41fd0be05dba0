"""CLI commands for Aegis.

Provides command-line interface using Typer:
- aegis serve: Run the API server
- aegis official-updates: Run the official-updates cascade once

Usage:
    aegis --help
    aegis serve --port 8002
    aegis official-updates --format json
"""

import typer

from aegis.cli.official_updates_cmd import app as official_updates_app
from aegis.cli.serve import app as serve_app

app = typer.Typer(
    name="aegis",
    help="Aegis: disaster response coordination service",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")
app.add_typer(official_updates_app, name="official-updates")


@app.callback()
def callback() -> None:
    """Aegis: disaster response coordination service."""


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
