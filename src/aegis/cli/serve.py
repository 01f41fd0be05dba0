"""CLI command for running the API server.

Usage:
    aegis serve
    aegis serve --port 8080 --host 0.0.0.0
    aegis serve --reload --log-level debug
"""

from __future__ import annotations

import typer

from aegis.config import settings

app = typer.Typer(help="Run the Aegis API server")


@app.callback(invoke_without_command=True)
def serve(
    host: str = typer.Option(settings.host, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to listen on"),
    reload: bool = typer.Option(
        False,
        "--reload",
        "-r",
        help="Enable auto-reload for development",
    ),
    log_level: str = typer.Option(
        "info",
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error",
    ),
    access_log: bool = typer.Option(
        True,
        "--access-log/--no-access-log",
        help="Enable/disable access logging",
    ),
) -> None:
    """Run the Aegis API server.

    Runs a single worker: the event broadcaster is in-process, so observers
    only see events published by the worker they are connected to.
    """
    import uvicorn

    typer.echo("Starting Aegis server...")
    typer.echo(f"  Host: {host}")
    typer.echo(f"  Port: {port}")
    typer.echo(f"  Cache backend: {settings.cache_backend}")
    typer.echo(f"  Record store backend: {settings.record_store_backend}")
    if reload:
        typer.echo("  Reload: enabled")
    typer.echo()
    typer.echo(f"API documentation: http://{host}:{port}/docs")
    typer.echo()

    uvicorn.run(
        app="aegis.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level.lower(),
        access_log=access_log,
    )
