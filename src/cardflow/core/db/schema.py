"""
SQLite schema for the cardflow database.

Schema Design:
- boards: Boards owning lists
- lists: Board lists, either TASKS (working columns) or PLANNING (time-boxed
  blocks with an optional start/end date used for staging)
- board_modules: Module catalog (epic name, user story template, task templates)
- cards: Epics, user stories and tasks, including the task release descriptor
- schema_info: Version tracking for migrations

Release descriptor columns on cards:
- release_mode: IMMEDIATE or STAGED (NULL for epics and user stories)
- staged_from_planning_list_id / scheduled_release_date: STAGED only
- release_target_list_id: required for every task
- released_at: NULL until the task is live; set exactly once
"""

import sqlite3

# Schema version for migrations
SCHEMA_VERSION = 2

LIST_VIEW_TYPES = ["TASKS", "PLANNING"]

# Columns added after version 1, by table
ADDED_COLUMNS: dict[str, dict[str, str]] = {
    "board_modules": {"user_story_feature_image": "TEXT"},
    "cards": {"feature_image": "TEXT"},
}


SCHEMA_DDL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_info (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    description TEXT
);

CREATE TABLE IF NOT EXISTS boards (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS lists (
    id TEXT PRIMARY KEY,
    board_id TEXT NOT NULL,
    name TEXT NOT NULL,
    view_type TEXT NOT NULL CHECK(view_type IN ('TASKS', 'PLANNING')),
    phase TEXT,
    position INTEGER NOT NULL DEFAULT 0,

    -- Planning block dates (ISO dates)
    start_date DATE,
    end_date DATE,

    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,

    FOREIGN KEY (board_id) REFERENCES boards(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS board_modules (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    symbol TEXT NOT NULL UNIQUE,
    description TEXT,
    epic_name TEXT NOT NULL,
    user_story_title TEXT,
    user_story_description TEXT,
    user_story_feature_image TEXT,

    -- JSON array of task templates
    task_templates JSON NOT NULL,

    position INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS cards (
    id TEXT PRIMARY KEY,
    list_id TEXT NOT NULL,
    type TEXT NOT NULL CHECK(type IN ('EPIC', 'USER_STORY', 'TASK')),
    title TEXT NOT NULL,
    description TEXT,
    color TEXT,
    feature_image TEXT,
    position INTEGER NOT NULL,

    -- Hierarchy links
    linked_epic_id TEXT,
    linked_user_story_id TEXT,
    story_points INTEGER,
    depends_on_task_id TEXT,

    -- Release descriptor (tasks only)
    release_mode TEXT CHECK(release_mode IS NULL OR release_mode IN ('IMMEDIATE', 'STAGED')),
    staged_from_planning_list_id TEXT,
    scheduled_release_date DATE,
    release_target_list_id TEXT,
    released_at TIMESTAMP,

    archived_at TIMESTAMP,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,

    FOREIGN KEY (list_id) REFERENCES lists(id) ON DELETE CASCADE,

    -- Tasks always carry a release mode; other cards never do
    CHECK ((type = 'TASK') = (release_mode IS NOT NULL)),
    -- STAGED tasks always know where they came from, when and where they go
    CHECK (release_mode IS NOT 'STAGED' OR (
        staged_from_planning_list_id IS NOT NULL
        AND scheduled_release_date IS NOT NULL
        AND release_target_list_id IS NOT NULL
    )),
    -- IMMEDIATE tasks are live from creation and never carry staging fields
    CHECK (release_mode IS NOT 'IMMEDIATE' OR (
        staged_from_planning_list_id IS NULL
        AND scheduled_release_date IS NULL
        AND released_at IS NOT NULL
    ))
);

-- Indexes for performance
CREATE INDEX IF NOT EXISTS idx_lists_board ON lists(board_id, view_type, position);
CREATE INDEX IF NOT EXISTS idx_cards_list ON cards(list_id);
CREATE INDEX IF NOT EXISTS idx_cards_type ON cards(type);
CREATE INDEX IF NOT EXISTS idx_cards_release_due
    ON cards(release_mode, released_at, scheduled_release_date);

-- Positions are unique among live cards of a list
CREATE UNIQUE INDEX IF NOT EXISTS idx_cards_list_position
    ON cards(list_id, position) WHERE archived_at IS NULL;
"""


def _add_missing_columns(conn: sqlite3.Connection) -> None:
    """Bring tables created by an older schema up to the current column set."""
    for table, columns in ADDED_COLUMNS.items():
        rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
        existing = {row["name"] if isinstance(row, dict) else row[1] for row in rows}
        for column, column_type in columns.items():
            if column not in existing:
                conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {column_type}")


def create_schema(conn: sqlite3.Connection) -> None:
    """
    Create the database schema.

    Executes all DDL statements to create tables and indexes.
    This is idempotent - safe to call multiple times.

    Args:
        conn: SQLite database connection

    Example:
        >>> import sqlite3
        >>> conn = sqlite3.connect(":memory:")
        >>> create_schema(conn)
        >>> cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        >>> tables = [row[0] for row in cursor.fetchall()]
        >>> assert "cards" in tables
    """
    conn.executescript(SCHEMA_DDL)
    _add_missing_columns(conn)

    conn.execute(
        """
        INSERT OR REPLACE INTO schema_info (version, description)
        VALUES (?, ?)
        """,
        (SCHEMA_VERSION, "Feature images on module stories, templates and cards"),
    )

    conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """
    Get the current schema version from the database.

    Returns:
        Current schema version, or None if schema_info table doesn't exist
    """
    try:
        cursor = conn.execute("SELECT MAX(version) AS version FROM schema_info")
        row = cursor.fetchone()
    except sqlite3.OperationalError:
        # schema_info table doesn't exist
        return None
    if row is None:
        return None
    version = row["version"] if isinstance(row, dict) else row[0]
    return int(version) if version is not None else None


def needs_migration(conn: sqlite3.Connection) -> bool:
    """
    Check if database needs migration to current schema version.

    Example:
        >>> import sqlite3
        >>> conn = sqlite3.connect(":memory:")
        >>> assert needs_migration(conn) is True  # No schema yet
        >>> create_schema(conn)
        >>> assert needs_migration(conn) is False  # Up to date
    """
    current_version = get_schema_version(conn)
    if current_version is None:
        return True
    return current_version < SCHEMA_VERSION


def validate_list_view_type(view_type: str) -> None:
    """
    Validate that a list view type is one of the allowed types.

    Raises:
        ValueError: If the view type is invalid
    """
    if view_type not in LIST_VIEW_TYPES:
        raise ValueError(
            f"Invalid list view type: {view_type}. Must be one of: {', '.join(LIST_VIEW_TYPES)}"
        )
