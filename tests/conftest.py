"""
Pytest configuration and shared fixtures.

Provides a temporary cardflow database, a seeded board with TASKS and
PLANNING lists, and a module factory used across the test suite.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from cardflow.core.config import clear_cache
from cardflow.core.db.connection import get_connection, init_db, insert_board, insert_list
from cardflow.core.modules.catalog import create_module
from cardflow.core.modules.models import ModuleDefinition

# Planning block start dates (both Mondays)
SPRINT_4_START = "2026-03-02"
SPRINT_5_START = "2026-03-09"


# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """
    Keep every test away from the real user config and environment.

    Points XDG_CONFIG_HOME at an empty directory, drops cardflow env vars and
    clears the config cache before and after each test.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for var in (
        "CARDFLOW_DB_PATH",
        "CRON_SECRET",
        "CARDFLOW_RELEASE_INTERVAL",
        "CARDFLOW_PORT",
        "CARDFLOW_LOG_LEVEL",
    ):
        # setenv first so values later written straight to os.environ are undone too
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Database Fixtures
# ==============================================================================


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Provide an initialized, empty cardflow database."""
    path = tmp_path / "db" / "cardflow.db"
    init_db(path).close()
    return path


@dataclass
class SeededBoard:
    """Ids of the lists created by the ``board`` fixture."""

    id: str
    backlog: str
    in_progress: str
    sprint_4: str
    sprint_5: str
    someday: str


@pytest.fixture
def board(db_path) -> SeededBoard:
    """
    Provide a board with two TASKS lists and three PLANNING lists.

    Lists:
    - backlog: TASKS, phase BACKLOG (the fallback task list)
    - in-progress: TASKS
    - sprint-4: PLANNING starting Monday 2026-03-02 (first planning list)
    - sprint-5: PLANNING starting Monday 2026-03-09
    - someday: PLANNING without a start date
    """
    with get_connection(db_path) as conn:
        board_id = insert_board(conn, "Season 3", board_id="board-1")
        insert_list(conn, board_id, "In Progress", "TASKS", list_id="in-progress", position=0)
        insert_list(conn, board_id, "Backlog", "TASKS", list_id="backlog",
                    phase="BACKLOG", position=1)
        insert_list(conn, board_id, "Sprint 4", "PLANNING", list_id="sprint-4",
                    position=2, start_date=SPRINT_4_START, end_date="2026-03-13")
        insert_list(conn, board_id, "Sprint 5", "PLANNING", list_id="sprint-5",
                    position=3, start_date=SPRINT_5_START, end_date="2026-03-20")
        insert_list(conn, board_id, "Someday", "PLANNING", list_id="someday", position=4)
        conn.commit()

    return SeededBoard(
        id="board-1",
        backlog="backlog",
        in_progress="in-progress",
        sprint_4="sprint-4",
        sprint_5="sprint-5",
        someday="someday",
    )


@pytest.fixture
def make_module(db_path):
    """
    Factory creating a committed catalog module.

    Example:
        module = make_module([{"id": "t1", "title": "CONCEPT"}], symbol="CHR")
    """
    counter = {"n": 0}

    def _make(
        templates: list[dict[str, Any]],
        *,
        symbol: str | None = None,
        epic_name: str = "Characters",
        **kwargs: Any,
    ) -> ModuleDefinition:
        counter["n"] += 1
        with get_connection(db_path) as conn:
            module = create_module(
                conn,
                name=kwargs.pop("name", f"Module {counter['n']}"),
                symbol=symbol or f"M{counter['n']}",
                epic_name=epic_name,
                task_templates=templates,
                **kwargs,
            )
            conn.commit()
        return module

    return _make


@pytest.fixture
def card_count(db_path):
    """Callable returning the number of cards in the database."""

    def _count() -> int:
        with get_connection(db_path) as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM cards").fetchone()
        return row["n"]

    return _count


@pytest.fixture
def fetch_card(db_path):
    """Callable returning a raw card row by id."""

    def _fetch(card_id: str) -> dict[str, Any]:
        with get_connection(db_path) as conn:
            return conn.execute("SELECT * FROM cards WHERE id = ?", (card_id,)).fetchone()

    return _fetch
