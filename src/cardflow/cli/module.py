"""
Cardflow CLI - Module commands.

Manage the module catalog and apply modules to boards.
"""

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from cardflow.cli.errors import ExitCode, print_error
from cardflow.core.config import load_config
from cardflow.core.db.connection import get_connection, init_db
from cardflow.core.errors import CardflowError, NotFoundError
from cardflow.core.modules.catalog import create_module, list_modules
from cardflow.core.modules.models import ApplyModuleRequest
from cardflow.core.release.models import StagedTaskData
from cardflow.core.services.module_apply import ModuleApplyService

app = typer.Typer(
    name="module",
    help="Manage module definitions and apply them to boards",
    no_args_is_help=True,
)

console = Console()


def _db_path() -> Path:
    db_path = Path(load_config().database.path)
    init_db(db_path).close()
    return db_path


def _pick(data: dict[str, Any], snake: str, camel: str) -> Any:
    return data.get(snake, data.get(camel))


@app.command(name="import")
def import_modules(
    file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="JSON file holding one module definition or a list of them",
    ),
) -> None:
    """
    Load module definitions from a JSON file into the catalog.

    Task templates are normalized on the way in. Either every module in the
    file is imported or none is.

    Examples:
        cardflow module import modules/character.json
    """
    try:
        payload = json.loads(file.read_text())
    except (OSError, json.JSONDecodeError) as e:
        print_error(f"Could not read {file}", reason=str(e))
        raise typer.Exit(ExitCode.USER_ERROR)

    entries = payload if isinstance(payload, list) else [payload]
    if not all(isinstance(entry, dict) for entry in entries):
        print_error(
            f"Unexpected content in {file}",
            reason="Expected a JSON object or a list of objects",
        )
        raise typer.Exit(ExitCode.USER_ERROR)

    with get_connection(_db_path()) as conn:
        try:
            created = [
                create_module(
                    conn,
                    name=entry.get("name", ""),
                    symbol=entry.get("symbol", ""),
                    epic_name=_pick(entry, "epic_name", "epicName") or "",
                    task_templates=_pick(entry, "task_templates", "taskTemplates"),
                    description=entry.get("description"),
                    user_story_title=_pick(entry, "user_story_title", "userStoryTitle"),
                    user_story_description=_pick(
                        entry, "user_story_description", "userStoryDescription"
                    ),
                    user_story_feature_image=_pick(
                        entry, "user_story_feature_image", "userStoryFeatureImage"
                    ),
                    module_id=entry.get("id"),
                )
                for entry in entries
            ]
        except CardflowError as e:
            conn.rollback()
            print_error(e.message, solution="Fix the module file and import it again")
            raise typer.Exit(ExitCode.USER_ERROR)
        conn.commit()

    for module in created:
        console.print(
            f"[green]✓[/green] Imported [bold]{module.symbol}[/bold] {module.name} "
            f"[dim]({len(module.task_templates)} templates, id {module.id})[/dim]"
        )


@app.command(name="list")
def list_cmd(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """
    List modules in the catalog.

    Examples:
        cardflow module list
        cardflow module list --json
    """
    with get_connection(_db_path()) as conn:
        modules = list_modules(conn)

    if json_output:
        console.print_json(
            json.dumps([m.model_dump(mode="json", by_alias=True) for m in modules])
        )
        return

    if not modules:
        console.print("[dim]No modules in the catalog[/dim]")
        return

    table = Table(title="Modules")
    table.add_column("Symbol", style="cyan")
    table.add_column("Name")
    table.add_column("Epic")
    table.add_column("Templates", justify="right")
    table.add_column("ID", style="dim")
    for module in modules:
        table.add_row(
            module.symbol,
            module.name,
            module.epic_name,
            str(len(module.task_templates)),
            module.id,
        )
    console.print(table)


@app.command()
def apply(
    board_id: str = typer.Argument(..., help="Board receiving the cards"),
    module_id: str = typer.Argument(..., help="Module to apply"),
    planning_list_id: str = typer.Argument(..., help="Planning list for the user story"),
    epic_name: str | None = typer.Option(
        None, "--epic-name", help="Override the module's epic name"
    ),
    story_title: str | None = typer.Option(
        None, "--story-title", help="Override the user story title"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """
    Apply a module to a board.

    Creates (or reuses) the epic, a user story in the planning list and one
    task per template, using each template's default destination.

    Examples:
        cardflow module apply board-1 mod-chr sprint-4
        cardflow module apply board-1 mod-chr sprint-4 --story-title "Hero"
    """
    request = ApplyModuleRequest(
        module_id=module_id,
        planning_list_id=planning_list_id,
        epic_name=epic_name,
        user_story_title=story_title,
    )

    try:
        result = ModuleApplyService(_db_path()).apply(board_id, request)
    except NotFoundError as e:
        print_error(e.message, solution="cardflow module list")
        raise typer.Exit(ExitCode.USER_ERROR)
    except CardflowError as e:
        print_error(f"Could not apply module {module_id}", reason=e.message)
        raise typer.Exit(ExitCode.USER_ERROR)

    if json_output:
        console.print_json(result.model_dump_json(by_alias=True))
        return

    epic = result.epic
    story = result.user_story
    if epic is not None:
        suffix = " [dim](reused)[/dim]" if result.epic_reused else ""
        console.print(f"[bold]Epic:[/bold] {epic.title}{suffix}")
    if story is not None:
        console.print(f"[bold]User story:[/bold] {story.title} [dim]in {story.list_info.name}[/dim]")

    table = Table(title="Tasks")
    table.add_column("Title")
    table.add_column("List")
    table.add_column("Mode")
    table.add_column("Release", style="cyan")
    for card in result.tasks:
        if card.task_data is None:
            continue
        data = card.task_data
        release = (
            data.scheduled_release_date.isoformat() if isinstance(data, StagedTaskData) else "now"
        )
        table.add_row(card.title, card.list_info.name, data.release_mode.value, release)
    console.print(table)
