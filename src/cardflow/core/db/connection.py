"""
Database connection management for cardflow.

Provides transaction management and query helpers for the cardflow SQLite
database.

The connection module configures every connection with:
- WAL mode for better concurrency
- Foreign key enforcement
- Row factory for dict-like access
- Context managers for safe transaction handling

Usage:
    from cardflow.core.db import get_connection, init_db, transaction

    init_db(db_path)

    with get_connection(db_path) as conn:
        with transaction(conn):
            conn.execute("INSERT INTO cards (...) VALUES (...)")
        # Committed on successful exit, rolled back on exception
"""

import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from cardflow.core.db.schema import create_schema, needs_migration, validate_list_view_type

# Seconds a writer waits for the database lock before giving up
BUSY_TIMEOUT_SECONDS = 30.0


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """
    Row factory that returns rows as dictionaries.

    Enables dict-like access to query results: row["column_name"]
    instead of positional access: row[0].
    """
    fields = [column[0] for column in cursor.description]
    return dict(zip(fields, row))


def _casefold(value: str | None) -> str | None:
    return value.casefold() if value is not None else None


def configure_connection(conn: sqlite3.Connection) -> None:
    """
    Configure a SQLite connection with optimal settings.

    Settings applied:
    - WAL mode: Better concurrency for reads/writes
    - Foreign keys: Enforce referential integrity
    - dict_factory: Enable dict-like row access
    - casefold(text): Unicode case folding for SQL comparisons
    """
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = dict_factory
    # NOCASE only folds ASCII
    conn.create_function("casefold", 1, _casefold, deterministic=True)


def connect(db_path: Path | str) -> sqlite3.Connection:
    """Open and configure a connection without touching the schema."""
    conn = sqlite3.connect(str(db_path), timeout=BUSY_TIMEOUT_SECONDS)
    configure_connection(conn)
    return conn


def init_db(db_path: Path | str, *, force_recreate: bool = False) -> sqlite3.Connection:
    """
    Initialize the cardflow database.

    Creates the database file if it doesn't exist, applies the schema,
    and returns a configured connection.

    Args:
        db_path: Path to the SQLite database file
        force_recreate: If True, delete existing database and recreate

    Returns:
        Configured SQLite connection
    """
    db_path = Path(db_path)

    if force_recreate and db_path.exists():
        db_path.unlink()

    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = connect(db_path)

    if needs_migration(conn):
        create_schema(conn)

    return conn


@contextmanager
def get_connection(db_path: Path | str) -> Iterator[sqlite3.Connection]:
    """
    Get a database connection as a context manager.

    The connection is automatically closed when the context exits.
    If an exception occurs, any open transaction is rolled back.

    Args:
        db_path: Path to the SQLite database file

    Yields:
        Configured SQLite connection
    """
    db_path = Path(db_path)

    if not db_path.exists():
        init_db(db_path).close()

    conn = connect(db_path)

    try:
        yield conn
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    Run a block inside a single write transaction.

    Uses BEGIN IMMEDIATE so the write lock is taken up front: concurrent
    writers serialize here instead of failing halfway through. Commits on
    success and rolls back every statement of the block on any exception.

    Example:
        >>> with transaction(conn):
        ...     conn.execute("UPDATE cards SET title = ? WHERE id = ?", ("New", "c1"))
    """
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()


def new_id() -> str:
    """Generate a new opaque row id."""
    return uuid.uuid4().hex


def execute_query(
    conn: sqlite3.Connection,
    query: str,
    params: tuple[Any, ...] | dict[str, Any] | None = None,
) -> list[dict[str, Any]]:
    """
    Execute a query and return all results as a list of dicts.
    """
    if params is None:
        params = ()

    cursor = conn.execute(query, params)
    return cursor.fetchall()


def execute_one(
    conn: sqlite3.Connection,
    query: str,
    params: tuple[Any, ...] | dict[str, Any] | None = None,
) -> dict[str, Any] | None:
    """
    Execute a query and return the first result as a dict, or None.
    """
    if params is None:
        params = ()

    cursor = conn.execute(query, params)
    result = cursor.fetchone()
    # fetchone() returns dict[str, Any] or None when dict_factory is configured
    return result  # type: ignore[no-any-return]


def insert_board(conn: sqlite3.Connection, name: str, *, board_id: str | None = None) -> str:
    """
    Insert a board and return its id.

    Example:
        >>> board_id = insert_board(conn, "Season 3")
        >>> conn.commit()
    """
    board_id = board_id or new_id()
    conn.execute("INSERT INTO boards (id, name) VALUES (?, ?)", (board_id, name))
    return board_id


def insert_list(
    conn: sqlite3.Connection,
    board_id: str,
    name: str,
    view_type: str,
    *,
    list_id: str | None = None,
    phase: str | None = None,
    position: int = 0,
    start_date: str | None = None,
    end_date: str | None = None,
) -> str:
    """
    Insert a list on a board and return its id.

    Args:
        conn: SQLite connection
        board_id: Owning board
        name: Display name
        view_type: TASKS or PLANNING
        list_id: Explicit id (generated when omitted)
        phase: Optional phase marker such as BACKLOG
        position: Ordering among the board's lists
        start_date: ISO date a planning block starts on
        end_date: ISO date a planning block ends on

    Raises:
        ValueError: If view_type is invalid

    Example:
        >>> insert_list(conn, board_id, "Sprint 4", "PLANNING", start_date="2026-03-02")
    """
    validate_list_view_type(view_type)
    list_id = list_id or new_id()
    conn.execute(
        """
        INSERT INTO lists (id, board_id, name, view_type, phase, position, start_date, end_date)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (list_id, board_id, name, view_type, phase, position, start_date, end_date),
    )
    return list_id


def insert_card(conn: sqlite3.Connection, card_type: str, list_id: str, title: str,
                position: int, **kwargs: Any) -> str:
    """
    Insert a card and return its id.

    Additional columns (description, color, release descriptor fields, ...)
    are passed as keyword arguments.

    Example:
        >>> insert_card(conn, "TASK", list_id, "Rig", 0,
        ...             release_mode="IMMEDIATE", release_target_list_id=list_id,
        ...             released_at="2026-03-02T09:00:00+00:00")
    """
    card_id = kwargs.pop("id", None) or new_id()
    columns = ["id", "type", "list_id", "title", "position"]
    values: list[Any] = [card_id, card_type, list_id, title, position]

    for key, value in kwargs.items():
        columns.append(key)
        values.append(value)

    placeholders = ",".join("?" * len(columns))
    conn.execute(
        f"INSERT INTO cards ({','.join(columns)}) VALUES ({placeholders})",
        tuple(values),
    )
    return card_id
