"""
Database query functions for the apply and release flows.

Bridges raw SQLite rows and the typed models used by the services. All
functions take an open connection; transaction boundaries belong to the
caller.
"""

import sqlite3
from collections.abc import Iterable
from typing import Any

from cardflow.core.db.connection import execute_one, execute_query
from cardflow.core.release.models import (
    CardType,
    CardView,
    ListSummary,
    UserStoryData,
    task_data_from_row,
)

# Phase that marks a board's backlog column
BACKLOG_PHASE = "BACKLOG"


def _placeholders(count: int) -> str:
    return ",".join("?" * count)


def get_list(conn: sqlite3.Connection, list_id: str) -> dict[str, Any] | None:
    """Fetch a list by id regardless of board or view type."""
    return execute_one(conn, "SELECT * FROM lists WHERE id = ?", (list_id,))


def get_board_list(
    conn: sqlite3.Connection, board_id: str, list_id: str, view_type: str
) -> dict[str, Any] | None:
    """Fetch a list only if it belongs to the board and has the given view type."""
    return execute_one(
        conn,
        "SELECT * FROM lists WHERE id = ? AND board_id = ? AND view_type = ?",
        (list_id, board_id, view_type),
    )


def get_board_lists(
    conn: sqlite3.Connection, board_id: str, list_ids: Iterable[str], view_type: str
) -> dict[str, dict[str, Any]]:
    """
    Fetch several lists of one view type on a board in a single query.

    Ids that are unknown, on another board, or of another view type are
    simply absent from the result.
    """
    ids = sorted(set(list_ids))
    if not ids:
        return {}
    rows = execute_query(
        conn,
        f"""
        SELECT * FROM lists
        WHERE board_id = ? AND view_type = ? AND id IN ({_placeholders(len(ids))})
        """,
        (board_id, view_type, *ids),
    )
    return {row["id"]: row for row in rows}


def find_fallback_task_list(conn: sqlite3.Connection, board_id: str) -> dict[str, Any] | None:
    """
    Find the TASKS list module tasks land in when no list is given.

    Prefers the first BACKLOG-phase list, then the first TASKS list by position.
    """
    return execute_one(
        conn,
        """
        SELECT * FROM lists
        WHERE board_id = ? AND view_type = 'TASKS'
        ORDER BY CASE WHEN phase = ? THEN 0 ELSE 1 END, position ASC, created_at ASC
        LIMIT 1
        """,
        (board_id, BACKLOG_PHASE),
    )


def find_epic_placement_list(conn: sqlite3.Connection, board_id: str) -> dict[str, Any] | None:
    """First PLANNING list of the board, falling back to its first list of any kind."""
    return execute_one(
        conn,
        """
        SELECT * FROM lists
        WHERE board_id = ?
        ORDER BY CASE WHEN view_type = 'PLANNING' THEN 0 ELSE 1 END, position ASC, created_at ASC
        LIMIT 1
        """,
        (board_id,),
    )


def find_epic_by_title(
    conn: sqlite3.Connection, board_id: str, title: str
) -> dict[str, Any] | None:
    """Find a non-archived epic on the board whose title matches case-insensitively."""
    return execute_one(
        conn,
        """
        SELECT c.* FROM cards c
        JOIN lists l ON l.id = c.list_id
        WHERE l.board_id = ?
          AND c.type = 'EPIC'
          AND c.archived_at IS NULL
          AND casefold(c.title) = casefold(?)
        ORDER BY c.created_at ASC
        LIMIT 1
        """,
        (board_id, title),
    )


def get_max_positions(conn: sqlite3.Connection, list_ids: Iterable[str]) -> dict[str, int]:
    """
    Highest non-archived card position per list, in one aggregate query.

    Lists without live cards are absent from the result.
    """
    ids = sorted(set(list_ids))
    if not ids:
        return {}
    rows = execute_query(
        conn,
        f"""
        SELECT list_id, MAX(position) AS max_position
        FROM cards
        WHERE archived_at IS NULL AND list_id IN ({_placeholders(len(ids))})
        GROUP BY list_id
        """,
        tuple(ids),
    )
    return {row["list_id"]: row["max_position"] for row in rows if row["max_position"] is not None}


def row_to_card_view(row: dict[str, Any]) -> CardView:
    """
    Convert a card row joined with its list to a CardView.

    Expects the list columns aliased as list_name and list_phase.
    """
    card_type = CardType(row["type"])
    user_story_data = None
    task_data = None
    if card_type == CardType.USER_STORY and row.get("linked_epic_id"):
        user_story_data = UserStoryData(linked_epic_id=row["linked_epic_id"])
    elif card_type == CardType.TASK:
        task_data = task_data_from_row(row)

    return CardView(
        id=row["id"],
        type=card_type,
        title=row["title"],
        description=row.get("description"),
        color=row.get("color"),
        feature_image=row.get("feature_image"),
        list_id=row["list_id"],
        position=row["position"],
        list_info=ListSummary(
            id=row["list_id"],
            name=row["list_name"],
            phase=row.get("list_phase"),
        ),
        user_story_data=user_story_data,
        task_data=task_data,
    )


def get_card_views(conn: sqlite3.Connection, card_ids: list[str]) -> list[CardView]:
    """
    Load cards with their list association, preserving the order of card_ids.
    """
    if not card_ids:
        return []
    rows = execute_query(
        conn,
        f"""
        SELECT c.*, l.name AS list_name, l.phase AS list_phase
        FROM cards c
        JOIN lists l ON l.id = c.list_id
        WHERE c.id IN ({_placeholders(len(card_ids))})
        """,
        tuple(card_ids),
    )
    by_id = {row["id"]: row_to_card_view(row) for row in rows}
    return [by_id[card_id] for card_id in card_ids if card_id in by_id]


def find_due_staged_tasks(
    conn: sqlite3.Connection, today: str, board_id: str | None = None
) -> list[dict[str, Any]]:
    """
    Find staged tasks that are due for release.

    A task is due when it is STAGED, not yet released, not archived and its
    scheduled release date is on or before ``today`` (ISO date). Each row
    carries the board id of the list the task currently sits in.

    Args:
        conn: SQLite connection
        today: ISO date to compare scheduled release dates against
        board_id: Restrict the scan to one board
    """
    query = """
        SELECT c.*, l.board_id AS board_id
        FROM cards c
        JOIN lists l ON l.id = c.list_id
        WHERE c.type = 'TASK'
          AND c.release_mode = 'STAGED'
          AND c.released_at IS NULL
          AND c.archived_at IS NULL
          AND c.scheduled_release_date <= ?
    """
    params: list[Any] = [today]
    if board_id is not None:
        query += " AND l.board_id = ?"
        params.append(board_id)
    query += " ORDER BY c.scheduled_release_date ASC, c.created_at ASC, c.position ASC"
    return execute_query(conn, query, tuple(params))


def release_staged_task(
    conn: sqlite3.Connection,
    task_id: str,
    target_list_id: str,
    position: int,
    released_at: str,
) -> int:
    """
    Move a staged task into its target list and mark it released.

    Guarded by ``released_at IS NULL`` so a task can only ever be released
    once: a concurrent or repeated run matches zero rows.

    Returns:
        Number of rows updated (1 on release, 0 if already released)
    """
    cursor = conn.execute(
        """
        UPDATE cards
        SET list_id = ?, position = ?, released_at = ?, updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
          AND release_mode = 'STAGED'
          AND released_at IS NULL
          AND archived_at IS NULL
        """,
        (target_list_id, position, released_at, task_id),
    )
    return cursor.rowcount
