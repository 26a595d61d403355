"""
Cardflow CLI - Release commands.

Run the staged task scheduler once, or as a polling worker.
"""

import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cardflow.cli.errors import ExitCode, print_error
from cardflow.core.config import load_config
from cardflow.core.db.connection import init_db
from cardflow.core.release.models import ReleaseRunResult, ReleaseStatus, ReleaseSummary
from cardflow.core.services.release import ReleaseService

app = typer.Typer(
    name="release",
    help="Release staged tasks whose release date has arrived",
    no_args_is_help=True,
)

console = Console()
logger = logging.getLogger(__name__)

STATUS_STYLES = {
    ReleaseStatus.RELEASED: "green",
    ReleaseStatus.SKIPPED: "yellow",
    ReleaseStatus.FAILED: "red",
}


def _print_result(result: ReleaseRunResult, *, verbose: bool) -> None:
    stamp = result.started_at.strftime("%Y-%m-%d %H:%M:%S")
    console.print(
        f"[dim]{stamp}[/dim] scanned {result.scanned}: "
        f"[green]{result.released_count} released[/green], "
        f"[yellow]{result.skipped_count} skipped[/yellow], "
        f"[red]{result.failed_count} failed[/red]"
    )
    if not verbose or not result.outcomes:
        return

    table = Table()
    table.add_column("Task", style="dim")
    table.add_column("Status")
    table.add_column("Target list")
    table.add_column("Position", justify="right")
    table.add_column("Reason")
    for outcome in result.outcomes:
        style = STATUS_STYLES[outcome.status]
        table.add_row(
            outcome.task_id,
            f"[{style}]{outcome.status.value}[/{style}]",
            outcome.target_list_id or "-",
            "-" if outcome.position is None else str(outcome.position),
            outcome.reason or "",
        )
    console.print(table)


@app.command()
def run(
    ctx: typer.Context,
    board: str | None = typer.Option(
        None, "--board", "-b", help="Only release tasks on this board"
    ),
    watch: bool = typer.Option(
        False, "--watch", "-w", help="Keep running, re-checking on a fixed interval"
    ),
    interval: int | None = typer.Option(
        None,
        "--interval",
        "-i",
        min=1,
        help="Seconds between passes in --watch mode (defaults to scheduler.interval_seconds)",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output a summary as JSON"),
) -> None:
    """
    Move due staged tasks into their release target lists.

    A task is due once its scheduled release date is on or before today
    (UTC). Running again releases nothing twice.

    Examples:
        cardflow release run
        cardflow release run --board board-1
        cardflow release run --watch --interval 60
    """
    debug = ctx.obj.get("debug", False) if ctx.obj else False
    config = load_config()
    db_path = Path(config.database.path)
    init_db(db_path).close()
    service = ReleaseService(db_path)

    if not watch:
        try:
            result = service.run(board_id=board)
        except Exception as e:
            logger.exception("Release run failed")
            print_error("Release run failed", reason=str(e))
            raise typer.Exit(ExitCode.GENERAL_ERROR)

        if json_output:
            console.print_json(
                json.dumps(ReleaseSummary.from_result(result).model_dump(by_alias=True))
            )
        else:
            _print_result(result, verbose=debug)
        if result.failed_count:
            raise typer.Exit(ExitCode.GENERAL_ERROR)
        return

    seconds = interval or config.scheduler.interval_seconds
    console.print(
        f"[bold cyan]Watching for due staged tasks every {seconds}s[/bold cyan] "
        "[dim](Ctrl+C to stop)[/dim]"
    )
    try:
        service.watch(
            seconds,
            board_id=board,
            on_result=lambda result: _print_result(result, verbose=debug),
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped[/yellow]")
        raise typer.Exit(ExitCode.SIGINT)
