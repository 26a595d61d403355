"""
Module catalog storage primitives.

The catalog is owned by the settings screens; the apply flow only reads it.
These helpers cover what the rest of cardflow needs: create a module, fetch
one by id, and list them in display order.
"""

import json
import logging
import sqlite3
from typing import Any

from cardflow.core.db.connection import execute_one, execute_query, new_id
from cardflow.core.errors import ValidationError
from cardflow.core.modules.models import ModuleDefinition
from cardflow.core.modules.normalize import normalize_task_templates

logger = logging.getLogger(__name__)


def row_to_module(row: dict[str, Any]) -> ModuleDefinition:
    """
    Convert a board_modules row to a ModuleDefinition.

    Task templates are re-normalized on read so rows written by older
    versions still load.
    """
    raw_templates = json.loads(row["task_templates"]) if row.get("task_templates") else []
    return ModuleDefinition(
        id=row["id"],
        name=row["name"],
        symbol=row["symbol"],
        description=row.get("description"),
        epic_name=row["epic_name"],
        user_story_title=row.get("user_story_title"),
        user_story_description=row.get("user_story_description"),
        user_story_feature_image=row.get("user_story_feature_image"),
        task_templates=normalize_task_templates(raw_templates),
        position=row.get("position") or 0,
    )


def get_module(conn: sqlite3.Connection, module_id: str) -> ModuleDefinition | None:
    """Fetch a module by id, or None if it does not exist."""
    row = execute_one(conn, "SELECT * FROM board_modules WHERE id = ?", (module_id,))
    if row is None:
        return None
    return row_to_module(row)


def list_modules(conn: sqlite3.Connection) -> list[ModuleDefinition]:
    """List all modules in display order."""
    rows = execute_query(conn, "SELECT * FROM board_modules ORDER BY position ASC, name ASC")
    return [row_to_module(row) for row in rows]


def create_module(
    conn: sqlite3.Connection,
    *,
    name: str,
    symbol: str,
    epic_name: str,
    task_templates: Any,
    description: str | None = None,
    user_story_title: str | None = None,
    user_story_description: str | None = None,
    user_story_feature_image: str | None = None,
    module_id: str | None = None,
) -> ModuleDefinition:
    """
    Create a module in the catalog.

    The symbol is upper-cased and must be unique. Templates are normalized
    and at least one must survive normalization. The caller commits.

    Raises:
        ValidationError: On a missing name/symbol/epic name, a duplicate
            symbol, or an empty template set

    Example:
        >>> module = create_module(
        ...     conn,
        ...     name="Character",
        ...     symbol="chr",
        ...     epic_name="Characters",
        ...     task_templates=[{"title": "CONCEPT"}],
        ... )
        >>> module.symbol
        'CHR'
    """
    name = (name or "").strip()
    symbol = (symbol or "").strip().upper()
    epic_name = (epic_name or "").strip()

    if not name:
        raise ValidationError("Module name is required")
    if not symbol:
        raise ValidationError("Module symbol is required")
    if not epic_name:
        raise ValidationError("Epic name is required")

    existing = execute_one(conn, "SELECT id FROM board_modules WHERE symbol = ?", (symbol,))
    if existing is not None:
        raise ValidationError("A module with this symbol already exists")

    templates = normalize_task_templates(task_templates)
    if not templates:
        raise ValidationError("At least one task template is required")

    max_row = execute_one(conn, "SELECT MAX(position) AS max_position FROM board_modules")
    max_position = max_row["max_position"] if max_row else None
    position = (max_position if max_position is not None else -1) + 1

    module = ModuleDefinition(
        id=module_id or new_id(),
        name=name,
        symbol=symbol,
        description=(description or "").strip() or None,
        epic_name=epic_name,
        user_story_title=(user_story_title or "").strip() or None,
        user_story_description=(user_story_description or "").strip() or None,
        user_story_feature_image=(user_story_feature_image or "").strip() or None,
        task_templates=templates,
        position=position,
    )

    conn.execute(
        """
        INSERT INTO board_modules (
            id, name, symbol, description, epic_name,
            user_story_title, user_story_description, user_story_feature_image,
            task_templates, position
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            module.id,
            module.name,
            module.symbol,
            module.description,
            module.epic_name,
            module.user_story_title,
            module.user_story_description,
            module.user_story_feature_image,
            json.dumps([t.model_dump(mode="json") for t in module.task_templates]),
            module.position,
        ),
    )
    logger.info("Created module %s (%s) with %d templates", module.symbol, module.id,
                len(module.task_templates))
    return module
