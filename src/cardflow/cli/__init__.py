"""
Cardflow CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging

import typer
from rich.console import Console

from cardflow import __version__
from cardflow.cli import module, release, serve
from cardflow.core.config import load_config
from cardflow.core.db.connection import init_db
from cardflow.core.db.schema import get_schema_version

app = typer.Typer(
    name="cardflow",
    help="Module instantiation and staged task release for kanban boards",
    no_args_is_help=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    Cardflow - modules and staged task release for kanban boards.

    Quick Start:
        1. cardflow init-db                              # Create the database
        2. cardflow module import character.json         # Add a module
        3. cardflow module apply BOARD MODULE SPRINT     # Instantiate it
        4. cardflow release run --watch                  # Release tasks on schedule
    """
    level = "DEBUG" if debug else load_config().logging.level
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ctx.obj = {"debug": debug}


@app.command(name="init-db")
def init_db_cmd(
    force: bool = typer.Option(
        False, "--force", help="Delete the existing database and start over"
    ),
) -> None:
    """Create the database, or bring its schema up to date."""
    db_path = load_config().database.path
    conn = init_db(db_path, force_recreate=force)
    try:
        schema_version = get_schema_version(conn)
    finally:
        conn.close()
    console.print(f"[green]✓[/green] Database ready at {db_path} [dim](schema v{schema_version})[/dim]")


app.command(name="serve")(serve.serve)
app.add_typer(module.app, name="module")
app.add_typer(release.app, name="release")


@app.command()
def version() -> None:
    """Show cardflow version and exit."""
    console.print(f"cardflow version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
