"""
Cardflow CLI - Serve command.

Run the cardflow HTTP API.
"""

from pathlib import Path

import typer
from rich.console import Console

from cardflow.cli.errors import ExitCode
from cardflow.core.config import load_config
from cardflow.core.db.connection import init_db

console = Console()


def serve(
    ctx: typer.Context,
    host: str | None = typer.Option(
        None,
        "--host",
        help="Interface to bind (defaults to server.host from config)",
    ),
    port: int | None = typer.Option(
        None,
        "--port",
        "-p",
        help="Port to run the server on (defaults to server.port from config)",
    ),
) -> None:
    """
    Run the cardflow API server.

    Serves the module apply endpoint and the cron release endpoint.

    Examples:
        cardflow serve                  # Use configured host/port
        cardflow serve --port 3000      # Launch on port 3000
    """
    debug = ctx.obj.get("debug", False) if ctx.obj else False
    config = load_config()

    import uvicorn

    from cardflow.api.app import app as fastapi_app

    db_path = Path(config.database.path)
    init_db(db_path).close()
    fastapi_app.state.db_path = db_path

    bind_host = host or config.server.host
    bind_port = port or config.server.port
    url = f"http://{bind_host}:{bind_port}"

    console.print("[bold cyan]Starting cardflow server...[/bold cyan]")
    console.print(f"[dim]Database: {db_path}[/dim]")
    console.print(f"[dim]Docs: {url}/docs[/dim]")
    if not config.cron.secret:
        console.print(
            "[yellow]Warning:[/yellow] CRON_SECRET is not set; "
            "the release endpoint will refuse every call"
        )
    console.print("\n[dim]Press Ctrl+C to stop[/dim]\n")

    try:
        uvicorn.run(
            fastapi_app,
            host=bind_host,
            port=bind_port,
            log_level="debug" if debug else config.logging.level.lower(),
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped[/yellow]")
        raise typer.Exit(ExitCode.SUCCESS)
